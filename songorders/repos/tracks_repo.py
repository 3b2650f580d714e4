from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

import asyncpg

from songorders.domain.enums import EventType, OrderStatus, TrackStatus
from songorders.domain.errors import AlreadyApproved, InvalidTransition
from songorders.domain.models import Lyric, Track
from songorders.repos.events_repo import append_event


class TracksRepo:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get_for_order(self, order_id: UUID) -> Optional[Track]:
        row = await self.pool.fetchrow("SELECT * FROM tracks WHERE order_id = $1", order_id)
        return Track(**dict(row)) if row else None

    async def approve_and_queue(
        self,
        *,
        order_id: UUID,
        lyric: Lyric,
        expected_status: OrderStatus,
        next_status: OrderStatus,
    ) -> Track:
        """
        Approval handoff in one transaction:
          1) insert the production track (unique per order)
          2) stamp lyric.approved_at
          3) point the order at the lyric and advance its status (CAS)
          4) append LYRIC_APPROVED
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                try:
                    row = await conn.fetchrow(
                        """
                        INSERT INTO tracks(id, order_id, lyric_id, status)
                        VALUES ($1, $2, $3, $4)
                        RETURNING *
                        """,
                        uuid4(),
                        order_id,
                        lyric.id,
                        TrackStatus.queued.value,
                    )
                    await conn.execute(
                        """
                        UPDATE lyrics
                           SET approved_at = now()
                         WHERE id = $1
                           AND order_id = $2
                        """,
                        lyric.id,
                        order_id,
                    )
                except asyncpg.exceptions.UniqueViolationError as e:
                    raise AlreadyApproved(str(order_id)) from e

                track = Track(**dict(row))

                updated = await conn.fetchval(
                    """
                    UPDATE orders
                       SET approved_lyric_id = $3,
                           status = $4,
                           updated_at = now()
                     WHERE id = $1
                       AND status = $2
                    RETURNING id
                    """,
                    order_id,
                    expected_status.value,
                    lyric.id,
                    next_status.value,
                )
                if not updated:
                    raise InvalidTransition(expected_status.value, "approve", code="stale_status")

                await append_event(
                    conn,
                    order_id=order_id,
                    event_type=EventType.LYRIC_APPROVED,
                    payload={
                        "lyric_id": str(lyric.id),
                        "version": lyric.version,
                        "track_id": str(track.id),
                    },
                )
        return track

    async def set_status(
        self, order_id: UUID, status: TrackStatus, *, audio_url: Optional[str] = None
    ) -> Optional[Track]:
        row = await self.pool.fetchrow(
            """
            UPDATE tracks
               SET status = $2,
                   audio_url = COALESCE($3, audio_url),
                   updated_at = now()
             WHERE order_id = $1
            RETURNING *
            """,
            order_id,
            status.value,
            audio_url,
        )
        return Track(**dict(row)) if row else None
