from __future__ import annotations

from typing import List, Optional
from uuid import UUID

import asyncpg

from songorders.domain.models import PushEndpoint


class PushSubscriptionsRepo:
    """Endpoint registry for the notification dispatcher: read active endpoints, retire dead ones."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def list_active(self, recipient_id: Optional[UUID] = None) -> List[PushEndpoint]:
        if recipient_id is None:
            rows = await self.pool.fetch(
                "SELECT * FROM push_subscriptions WHERE is_active ORDER BY created_at ASC"
            )
        else:
            rows = await self.pool.fetch(
                """
                SELECT *
                  FROM push_subscriptions
                 WHERE is_active
                   AND user_id = $1
                 ORDER BY created_at ASC
                """,
                recipient_id,
            )
        return [PushEndpoint(**dict(r)) for r in rows]

    async def deactivate(self, endpoint_id: UUID) -> None:
        await self.pool.execute(
            "UPDATE push_subscriptions SET is_active = false WHERE id = $1",
            endpoint_id,
        )
