from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

import asyncpg

from songorders.domain.enums import EventType


async def append_event(
    conn: asyncpg.Connection,
    *,
    order_id: Optional[UUID],
    event_type: EventType,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Append-only order audit trail.

    Always called on the caller's connection so the entry commits or rolls
    back together with the change it describes.
    """
    await conn.execute(
        """
        INSERT INTO event_logs(order_id, type, payload)
        VALUES ($1, $2, $3::jsonb)
        """,
        order_id,
        event_type.value,
        payload or {},
    )

