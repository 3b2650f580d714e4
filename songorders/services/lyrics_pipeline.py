from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from songorders.domain.enums import OrderStatus, OrderTrigger, PaymentStatus
from songorders.domain.errors import (
    InvalidTransition,
    LyricsAlreadyPersisted,
    NotFoundOrForbidden,
    ProviderError,
    ValidationError,
)
from songorders.domain.models import GenerateLyricsResult, LyricDraft, Order
from songorders.domain.state_machine import plan
from songorders.services.lyrics_text import (
    build_messages,
    extract_title_and_body,
    split_two_lyrics,
    summarize_story,
)
from songorders.services.moderation import ContentModerator
from songorders.services.notifications import NotificationDispatcher
from songorders.services.providers.base import TextProvider

logger = logging.getLogger("lyrics_pipeline")


class LyricsPipeline:
    """
    generate_lyrics(order_id):
      1) idempotency guard: any existing lyric row -> success, no provider call
      2) build prompts from the brief
      3) moderate the raw story (ContentRejected, no provider call)
      4) mark the order LYRICS_PENDING, call the provider once (no internal retry)
      5) split into two drafts, 6) extract titles
      7) persist the pair + order bump + LYRICS_GENERATED in one transaction
      8) notify (never fails the caller)

    Concurrent runs for the same order may both reach the provider; the
    (order_id, version) constraint lets exactly one pair land and the loser
    reports idempotent success with its output discarded.
    """

    def __init__(
        self,
        *,
        orders,
        lyrics,
        provider: TextProvider,
        moderator: ContentModerator,
        notifier: Optional[NotificationDispatcher] = None,
        temperature: float = 0.9,
        max_tokens: int = 1200,
        timeout_ms: Optional[int] = None,
    ):
        self.orders = orders
        self.lyrics = lyrics
        self.provider = provider
        self.moderator = moderator
        self.notifier = notifier
        self.temperature = float(temperature)
        self.max_tokens = int(max_tokens)
        self.timeout_ms = timeout_ms

    async def generate_lyrics(self, order_id: UUID, *, user_id: Optional[UUID] = None) -> GenerateLyricsResult:
        order = await self.orders.get(order_id)
        if order is None or (user_id is not None and order.user_id != user_id):
            raise NotFoundOrForbidden("order not found", code="order_not_found")

        existing = await self.lyrics.count_for_order(order_id)
        if existing > 0:
            logger.info("lyrics already exist, skipping generation order_id=%s count=%s", order_id, existing)
            return GenerateLyricsResult(order_id=order_id, created=False, message="lyrics_already_exist")

        if order.payment_status != PaymentStatus.PAID:
            raise InvalidTransition(order.status.value, OrderTrigger.start_lyrics.value, code="order_not_paid")
        # PAID or an earlier attempt's LYRICS_PENDING; anything else raises
        plan(order.status, OrderTrigger.start_lyrics)

        story = (order.story_raw or "").strip()
        if not story:
            raise ValidationError("order has no story to write about", code="missing_story")

        messages, prompt_record = build_messages(order)
        self.moderator.check(story)

        order = await self._mark_pending(order)

        logger.info("requesting lyrics order_id=%s provider=%s", order_id, getattr(self.provider, "provider_name", "?"))
        text = await self.provider.complete(
            messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout_ms=self.timeout_ms,
        )
        text = (text or "").strip()
        if not text:
            raise ProviderError("provider returned empty content", code="empty_completion")

        drafts = self._drafts(text)

        flagged = self.moderator.find_terms("\n".join(f"{d.title}\n{d.body}" for d in drafts))
        if flagged:
            logger.warning("generated lyrics failed moderation order_id=%s terms=%s", order_id, len(flagged))
            raise ProviderError("generated lyrics failed moderation", code="generated_content_rejected")

        prompt_json = dict(prompt_record)
        prompt_json.update({"temperature": self.temperature, "max_tokens": self.max_tokens})

        try:
            saved = await self.lyrics.persist_pair(
                order_id,
                drafts,
                prompt_json=prompt_json,
                expected_status=OrderStatus.LYRICS_PENDING,
                next_status=OrderStatus.LYRICS_GENERATED,
                story_summary=summarize_story(story),
            )
        except LyricsAlreadyPersisted:
            logger.info("concurrent generation already stored lyrics, discarding output order_id=%s", order_id)
            return GenerateLyricsResult(order_id=order_id, created=False, message="lyrics_already_exist")

        logger.info("lyrics generated order_id=%s lyric_ids=%s", order_id, [str(ly.id) for ly in saved])

        if self.notifier is not None:
            generated = order.model_copy(update={"status": OrderStatus.LYRICS_GENERATED})
            await self.notifier.notify_status(generated, OrderStatus.LYRICS_GENERATED)

        return GenerateLyricsResult(
            order_id=order_id,
            created=True,
            lyric_ids=[ly.id for ly in saved],
            message="2 lyrics generated",
        )

    async def _mark_pending(self, order: Order) -> Order:
        t = plan(order.status, OrderTrigger.start_lyrics)
        if not t.changed:
            return order
        try:
            return await self.orders.transition(
                order.id,
                expected=t.from_status,
                to=t.to_status,
                trigger=t.trigger.value,
            )
        except InvalidTransition:
            # a concurrent run may have just started generation for this order
            fresh = await self.orders.get(order.id)
            if fresh is not None and fresh.status == OrderStatus.LYRICS_PENDING:
                return fresh
            raise

    @staticmethod
    def _drafts(text: str) -> List[LyricDraft]:
        v1, v2 = split_two_lyrics(text)
        drafts: List[LyricDraft] = []
        for version, raw in ((1, v1), (2, v2)):
            if not raw.strip():
                raise ProviderError(
                    f"could not extract lyric version {version} from the completion",
                    code="incomplete_completion",
                )
            title, body = extract_title_and_body(raw)
            drafts.append(LyricDraft(version=version, title=title, body=body))
        return drafts
