from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from songorders.domain.enums import OrderStatus, OrderTrigger
from songorders.domain.errors import AlreadyApproved, NotFoundOrForbidden
from songorders.domain.models import ApproveLyricOut
from songorders.domain.state_machine import plan
from songorders.services.notifications import NotificationDispatcher

logger = logging.getLogger("approval_service")


class ApprovalService:
    def __init__(self, *, orders, lyrics, tracks, notifier: Optional[NotificationDispatcher] = None):
        self.orders = orders
        self.lyrics = lyrics
        self.tracks = tracks
        self.notifier = notifier

    async def approve_lyric(self, *, user_id: UUID, order_id: UUID, lyric_id: UUID) -> ApproveLyricOut:
        """
        Preconditions are all checked before anything is written; the write
        itself is a single transaction in the tracks repo, guarded by the
        one-track-per-order constraint so a racing second approval fails
        with AlreadyApproved and leaves no trace.
        """
        order = await self.orders.get(order_id)
        if order is None or order.user_id != user_id:
            raise NotFoundOrForbidden("order not found", code="order_not_found")

        lyric = await self.lyrics.get_in_order(lyric_id=lyric_id, order_id=order_id)
        if lyric is None:
            raise NotFoundOrForbidden("lyric not found", code="lyric_not_found")

        if order.approved_lyric_id is not None:
            raise AlreadyApproved(str(order_id))

        t = plan(order.status, OrderTrigger.approve)
        if not t.changed:
            raise AlreadyApproved(str(order_id))

        track = await self.tracks.approve_and_queue(
            order_id=order_id,
            lyric=lyric,
            expected_status=t.from_status,
            next_status=t.to_status,
        )
        logger.info(
            "lyric approved order_id=%s lyric_id=%s version=%s track_id=%s",
            order_id,
            lyric_id,
            lyric.version,
            track.id,
        )

        if self.notifier is not None:
            approved = order.model_copy(update={"status": OrderStatus.APPROVED, "approved_lyric_id": lyric.id})
            await self.notifier.notify_status(approved, OrderStatus.APPROVED)

        return ApproveLyricOut(
            order_id=order_id,
            lyric_id=lyric.id,
            version=lyric.version,
            track=track,
            message=f"Lyric {lyric.version} approved! Your song will be produced shortly.",
        )
