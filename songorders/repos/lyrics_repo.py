from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID, uuid4

import asyncpg

from songorders.domain.enums import EventType, OrderStatus
from songorders.domain.errors import InvalidTransition, LyricsAlreadyPersisted
from songorders.domain.models import Lyric, LyricDraft
from songorders.repos.events_repo import append_event


class LyricsRepo:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def count_for_order(self, order_id: UUID) -> int:
        n = await self.pool.fetchval("SELECT count(*) FROM lyrics WHERE order_id = $1", order_id)
        return int(n or 0)

    async def list_for_order(self, order_id: UUID) -> List[Lyric]:
        rows = await self.pool.fetch(
            "SELECT * FROM lyrics WHERE order_id = $1 ORDER BY version ASC",
            order_id,
        )
        return [Lyric(**dict(r)) for r in rows]

    async def get_in_order(self, *, lyric_id: UUID, order_id: UUID) -> Optional[Lyric]:
        row = await self.pool.fetchrow(
            "SELECT * FROM lyrics WHERE id = $1 AND order_id = $2",
            lyric_id,
            order_id,
        )
        return Lyric(**dict(row)) if row else None

    async def persist_pair(
        self,
        order_id: UUID,
        drafts: Sequence[LyricDraft],
        *,
        prompt_json: Dict[str, Any],
        expected_status: OrderStatus,
        next_status: OrderStatus,
        story_summary: Optional[str],
    ) -> List[Lyric]:
        """
        Insert both drafts, bump the order and advance its status in one
        transaction. Either the whole pair lands or nothing does.

        Raises LyricsAlreadyPersisted when another writer already stored the
        pair (unique (order_id, version)).
        """
        if len(drafts) != 2:
            raise ValueError("lyrics are persisted in pairs")

        lyrics: List[Lyric] = []
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                try:
                    for draft in drafts:
                        row = await conn.fetchrow(
                            """
                            INSERT INTO lyrics(id, order_id, version, title, body, prompt_json)
                            VALUES ($1, $2, $3, $4, $5, $6::jsonb)
                            RETURNING *
                            """,
                            uuid4(),
                            order_id,
                            draft.version,
                            draft.title,
                            draft.body,
                            prompt_json,
                        )
                        lyrics.append(Lyric(**dict(row)))
                except asyncpg.exceptions.UniqueViolationError as e:
                    raise LyricsAlreadyPersisted(str(order_id)) from e

                updated = await conn.fetchval(
                    """
                    UPDATE orders
                       SET status = $3,
                           story_summary = COALESCE($4, story_summary),
                           updated_at = now()
                     WHERE id = $1
                       AND status = $2
                    RETURNING id
                    """,
                    order_id,
                    expected_status.value,
                    next_status.value,
                    story_summary,
                )
                if not updated:
                    raise InvalidTransition(expected_status.value, "lyrics_generated", code="stale_status")

                await append_event(
                    conn,
                    order_id=order_id,
                    event_type=EventType.LYRICS_GENERATED,
                    payload={
                        "lyrics_count": len(lyrics),
                        "versions": [ly.version for ly in lyrics],
                        "lyric_ids": [str(ly.id) for ly in lyrics],
                    },
                )
        return lyrics
