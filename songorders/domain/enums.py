from __future__ import annotations
from enum import Enum


class OrderStatus(str, Enum):
    DRAFT = "DRAFT"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    PAID = "PAID"
    LYRICS_PENDING = "LYRICS_PENDING"
    LYRICS_GENERATED = "LYRICS_GENERATED"
    APPROVED = "APPROVED"
    MUSIC_GENERATING = "MUSIC_GENERATING"
    MUSIC_READY = "MUSIC_READY"
    COMPLETED = "COMPLETED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class OrderTrigger(str, Enum):
    submit = "submit"
    confirm_payment = "confirm_payment"
    start_lyrics = "start_lyrics"
    lyrics_generated = "lyrics_generated"
    approve = "approve"
    start_music = "start_music"
    music_ready = "music_ready"
    complete = "complete"


class TrackStatus(str, Enum):
    queued = "queued"
    generating = "generating"
    ready = "ready"
    failed = "failed"


class EventType(str, Enum):
    ORDER_CREATED = "ORDER_CREATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    LYRICS_GENERATED = "LYRICS_GENERATED"
    LYRIC_APPROVED = "LYRIC_APPROVED"


class NotificationStatus(str, Enum):
    sent = "sent"
    failed = "failed"
    no_subscriptions = "no_subscriptions"
