from __future__ import annotations

from typing import Optional
from uuid import UUID

import asyncpg


class NotificationLogsRepo:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def insert(
        self,
        *,
        recipient_id: Optional[UUID],
        order_id: Optional[UUID],
        title: str,
        body: str,
        status: str,
        error_message: Optional[str],
    ) -> None:
        await self.pool.execute(
            """
            INSERT INTO notification_logs(user_id, order_id, title, body, status, error_message)
            VALUES ($1, $2, $3, $4, $5, $6)
            """,
            recipient_id,
            order_id,
            title,
            body,
            status,
            error_message,
        )
