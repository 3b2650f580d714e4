from __future__ import annotations

import asyncpg

from songorders.config import settings
from songorders.repos.lyrics_repo import LyricsRepo
from songorders.repos.notification_logs_repo import NotificationLogsRepo
from songorders.repos.orders_repo import OrdersRepo
from songorders.repos.push_subscriptions_repo import PushSubscriptionsRepo
from songorders.repos.tracks_repo import TracksRepo
from songorders.services.approval_service import ApprovalService
from songorders.services.lyrics_pipeline import LyricsPipeline
from songorders.services.moderation import ContentModerator
from songorders.services.notifications import NotificationDispatcher, WebPushTransport
from songorders.services.order_transitions import OrderTransitionService
from songorders.services.providers.openai_text import OpenAITextProvider, ProviderConfig
from songorders.services.recovery_sweep import RecoverySweep

# Settings are read here and nowhere below: every component gets explicit config.


def build_moderator() -> ContentModerator:
    return ContentModerator(extra_terms=settings.moderation_extra_terms())


def build_dispatcher(pool: asyncpg.Pool) -> NotificationDispatcher:
    return NotificationDispatcher(
        endpoints=PushSubscriptionsRepo(pool),
        logs=NotificationLogsRepo(pool),
        transport=WebPushTransport(
            vapid_private_key=settings.VAPID_PRIVATE_KEY,
            vapid_subject=settings.VAPID_SUBJECT,
            ttl_seconds=settings.PUSH_TTL_SECONDS,
            timeout_s=settings.PUSH_TIMEOUT_SECONDS,
        ),
        timeout_s=settings.PUSH_TIMEOUT_SECONDS,
        max_concurrency=settings.PUSH_MAX_CONCURRENCY,
        icon_path=settings.PUSH_ICON_PATH,
        base_url=settings.APP_BASE_URL,
    )


def build_pipeline(pool: asyncpg.Pool) -> LyricsPipeline:
    return LyricsPipeline(
        orders=OrdersRepo(pool),
        lyrics=LyricsRepo(pool),
        provider=OpenAITextProvider(ProviderConfig.from_settings(settings)),
        moderator=build_moderator(),
        notifier=build_dispatcher(pool),
        temperature=settings.LYRICS_TEMPERATURE,
        max_tokens=settings.LYRICS_MAX_TOKENS,
        timeout_ms=settings.LYRICS_TIMEOUT_MS,
    )


def build_approval(pool: asyncpg.Pool) -> ApprovalService:
    return ApprovalService(
        orders=OrdersRepo(pool),
        lyrics=LyricsRepo(pool),
        tracks=TracksRepo(pool),
        notifier=build_dispatcher(pool),
    )


def build_transitions(pool: asyncpg.Pool) -> OrderTransitionService:
    return OrderTransitionService(
        orders=OrdersRepo(pool),
        lyrics=LyricsRepo(pool),
        tracks=TracksRepo(pool),
        moderator=build_moderator(),
        notifier=build_dispatcher(pool),
    )


def build_sweep(pool: asyncpg.Pool) -> RecoverySweep:
    return RecoverySweep(
        orders=OrdersRepo(pool),
        pipeline=build_pipeline(pool),
        batch_limit=settings.RECOVERY_BATCH_LIMIT,
    )
