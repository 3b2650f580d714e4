from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple
from uuid import UUID

from songorders.domain.enums import OrderStatus, OrderTrigger, PaymentStatus, TrackStatus
from songorders.domain.errors import InvalidTransition, NotFoundOrForbidden
from songorders.domain.models import CreateOrderIn, Order, OrderOut
from songorders.domain.state_machine import plan, trigger_for_target
from songorders.services.moderation import ContentModerator
from songorders.services.notifications import NotificationDispatcher

logger = logging.getLogger("order_transitions")

# Triggers that other services (checkout, music production) may fire.
# start_lyrics / lyrics_generated / approve belong to the pipeline and the approval handoff.
EXTERNAL_TRIGGERS = frozenset(
    {
        OrderTrigger.submit,
        OrderTrigger.confirm_payment,
        OrderTrigger.start_music,
        OrderTrigger.music_ready,
        OrderTrigger.complete,
    }
)

_TRACK_STATUS_ON: Dict[OrderTrigger, TrackStatus] = {
    OrderTrigger.start_music: TrackStatus.generating,
    OrderTrigger.music_ready: TrackStatus.ready,
}


def _clean_meta(meta: Optional[Dict[str, Optional[str]]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for k in ("song_title", "style_prompt", "cover_url"):
        v = (meta or {}).get(k)
        if v is not None and str(v).strip():
            out[k] = str(v).strip()
    return out


class OrderTransitionService:
    def __init__(
        self,
        *,
        orders,
        lyrics,
        tracks,
        moderator: ContentModerator,
        notifier: Optional[NotificationDispatcher] = None,
    ):
        self.orders = orders
        self.lyrics = lyrics
        self.tracks = tracks
        self.moderator = moderator
        self.notifier = notifier

    async def create_order(self, user_id: UUID, req: CreateOrderIn) -> Order:
        # rejected stories never reach storage
        self.moderator.check(f"{req.occasion}\n{req.story_raw}")
        order = await self.orders.create(user_id=user_id, brief=req.model_dump())
        logger.info("order created order_id=%s user_id=%s", order.id, user_id)
        return order

    async def get_order_view(self, user_id: UUID, order_id: UUID) -> OrderOut:
        order = await self.orders.get(order_id)
        if order is None or order.user_id != user_id:
            raise NotFoundOrForbidden("order not found", code="order_not_found")
        lyrics = await self.lyrics.list_for_order(order_id)
        track = await self.tracks.get_for_order(order_id)
        return OrderOut(order=order, lyrics=lyrics, track=track)

    async def fire(
        self,
        order_id: UUID,
        target_status: OrderStatus,
        *,
        meta: Optional[Dict[str, Optional[str]]] = None,
    ) -> Tuple[Order, bool]:
        """
        Apply an external event that names the status the order should reach.
        Returns (order, changed). Re-delivered events are no-ops, apart from
        storing any production metadata they carry.
        """
        order = await self.orders.get(order_id)
        if order is None:
            raise NotFoundOrForbidden("order not found", code="order_not_found")

        trigger = trigger_for_target(target_status)
        if trigger not in EXTERNAL_TRIGGERS:
            raise InvalidTransition(
                order.status.value,
                trigger.value,
                message=f"{trigger.value} cannot be fired by an external event",
                code="internal_trigger",
            )

        extra = _clean_meta(meta)
        t = plan(order.status, trigger)
        if not t.changed:
            if extra:
                order = await self.orders.set_production_meta(order_id, extra) or order
            logger.info("event is a no-op order_id=%s status=%s", order_id, order.status.value)
            return order, False

        updated = await self.orders.transition(
            order_id,
            expected=t.from_status,
            to=t.to_status,
            trigger=trigger.value,
            payment_status=PaymentStatus.PAID if trigger == OrderTrigger.confirm_payment else None,
            meta=extra,
        )
        logger.info(
            "order transitioned order_id=%s from=%s to=%s trigger=%s",
            order_id,
            t.from_status.value,
            t.to_status.value,
            trigger.value,
        )

        track_status = _TRACK_STATUS_ON.get(trigger)
        if track_status is not None:
            track = await self.tracks.set_status(order_id, track_status)
            if track is None:
                logger.warning("no track to update order_id=%s status=%s", order_id, track_status.value)

        if self.notifier is not None:
            song_title = await self._song_title(updated) if updated.status == OrderStatus.MUSIC_READY else None
            await self.notifier.notify_status(updated, updated.status, song_title=song_title)

        return updated, True

    async def _song_title(self, order: Order) -> Optional[str]:
        if order.song_title:
            return order.song_title
        if order.approved_lyric_id is None:
            return None
        lyric = await self.lyrics.get_in_order(lyric_id=order.approved_lyric_id, order_id=order.id)
        return lyric.title if lyric else None
