from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

import asyncpg

from songorders.domain.enums import EventType, OrderStatus, PaymentStatus
from songorders.domain.errors import InvalidTransition
from songorders.domain.models import Order
from songorders.repos.events_repo import append_event


def _order(row: Optional[asyncpg.Record]) -> Optional[Order]:
    return Order(**dict(row)) if row else None


class OrdersRepo:
    """
    Orders are only ever mutated through compare-and-set on `status`, so a
    transition computed against a stale read fails instead of overwriting.
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def create(self, *, user_id: UUID, brief: Dict[str, Any]) -> Order:
        oid = uuid4()
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    INSERT INTO orders(id, user_id, occasion, style, tone, duration_target_sec,
                                       story_raw, price, status, payment_status)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                    RETURNING *
                    """,
                    oid,
                    user_id,
                    brief.get("occasion") or "",
                    brief.get("style") or "",
                    brief.get("tone") or "",
                    int(brief.get("duration_target_sec") or 120),
                    brief.get("story_raw") or "",
                    brief.get("price") or 0,
                    OrderStatus.DRAFT.value,
                    PaymentStatus.PENDING.value,
                )
                await append_event(
                    conn,
                    order_id=oid,
                    event_type=EventType.ORDER_CREATED,
                    payload={"user_id": str(user_id), "occasion": brief.get("occasion") or ""},
                )
        return _order(row)

    async def get(self, order_id: UUID) -> Optional[Order]:
        row = await self.pool.fetchrow("SELECT * FROM orders WHERE id = $1", order_id)
        return _order(row)

    async def transition(
        self,
        order_id: UUID,
        *,
        expected: OrderStatus,
        to: OrderStatus,
        trigger: str,
        payment_status: Optional[PaymentStatus] = None,
        meta: Optional[Dict[str, Optional[str]]] = None,
    ) -> Order:
        meta = meta or {}
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    UPDATE orders
                       SET status = $3,
                           payment_status = COALESCE($4, payment_status),
                           song_title = COALESCE($5, song_title),
                           style_prompt = COALESCE($6, style_prompt),
                           cover_url = COALESCE($7, cover_url),
                           updated_at = now()
                     WHERE id = $1
                       AND status = $2
                    RETURNING *
                    """,
                    order_id,
                    expected.value,
                    to.value,
                    payment_status.value if payment_status else None,
                    meta.get("song_title"),
                    meta.get("style_prompt"),
                    meta.get("cover_url"),
                )
                if not row:
                    # Someone moved the order since we read it.
                    raise InvalidTransition(expected.value, trigger, code="stale_status")

                await append_event(
                    conn,
                    order_id=order_id,
                    event_type=EventType.STATUS_CHANGED,
                    payload={"from": expected.value, "to": to.value, "trigger": trigger},
                )
        return _order(row)

    async def set_production_meta(self, order_id: UUID, meta: Dict[str, Optional[str]]) -> Optional[Order]:
        row = await self.pool.fetchrow(
            """
            UPDATE orders
               SET song_title = COALESCE($2, song_title),
                   style_prompt = COALESCE($3, style_prompt),
                   cover_url = COALESCE($4, cover_url),
                   updated_at = now()
             WHERE id = $1
            RETURNING *
            """,
            order_id,
            meta.get("song_title"),
            meta.get("style_prompt"),
            meta.get("cover_url"),
        )
        return _order(row)

    async def list_paid_without_lyrics(self, *, limit: int = 50) -> List[Order]:
        limit = max(1, int(limit))
        rows = await self.pool.fetch(
            """
            SELECT o.*
              FROM orders o
             WHERE o.payment_status = $1
               AND o.status = ANY($2::text[])
               AND NOT EXISTS (SELECT 1 FROM lyrics l WHERE l.order_id = o.id)
             ORDER BY o.updated_at ASC
             LIMIT $3
            """,
            PaymentStatus.PAID.value,
            [OrderStatus.PAID.value, OrderStatus.LYRICS_PENDING.value],
            limit,
        )
        return [Order(**dict(r)) for r in rows]
