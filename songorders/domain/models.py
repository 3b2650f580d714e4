from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .enums import OrderStatus, PaymentStatus, TrackStatus

# -----------------------------
# Rows
# -----------------------------


class Order(BaseModel):
    id: UUID
    user_id: UUID
    occasion: str = ""
    style: str = ""
    tone: str = ""
    duration_target_sec: int = 120
    story_raw: str = ""
    story_summary: Optional[str] = None
    price: Decimal = Decimal("0")
    status: OrderStatus = OrderStatus.DRAFT
    payment_status: PaymentStatus = PaymentStatus.PENDING
    approved_lyric_id: Optional[UUID] = None

    # production metadata
    song_title: Optional[str] = None
    style_prompt: Optional[str] = None
    cover_url: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Lyric(BaseModel):
    id: UUID
    order_id: UUID
    version: Literal[1, 2]
    title: str = Field(max_length=120)
    body: str
    prompt_json: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None


class Track(BaseModel):
    id: UUID
    order_id: UUID
    lyric_id: UUID
    status: TrackStatus = TrackStatus.queued
    audio_url: Optional[str] = None
    created_at: Optional[datetime] = None


class PushEndpoint(BaseModel):
    id: UUID
    user_id: UUID
    endpoint: str
    p256dh: str = ""
    auth: str = ""
    is_active: bool = True


class LyricDraft(BaseModel):
    """One of the two drafts split out of a single completion, before persistence."""
    version: Literal[1, 2]
    title: str
    body: str


# -----------------------------
# Pipeline results
# -----------------------------


class GenerateLyricsResult(BaseModel):
    order_id: UUID
    created: bool
    lyric_ids: List[UUID] = Field(default_factory=list)
    message: str = ""


class DispatchSummary(BaseModel):
    sent: int = 0
    total: int = 0
    errors: List[str] = Field(default_factory=list)
    status: str = ""


class SweepItem(BaseModel):
    order_id: UUID
    status: Literal["success", "error"]
    created: bool = False
    error: Optional[str] = None


class SweepReport(BaseModel):
    total_orders: int = 0
    processed: int = 0
    results: List[SweepItem] = Field(default_factory=list)


# -----------------------------
# API
# -----------------------------


class CreateOrderIn(BaseModel):
    occasion: str = Field(min_length=1, max_length=200)
    style: str = Field(default="Pop", max_length=200)
    tone: str = Field(default="", max_length=200)
    duration_target_sec: int = Field(default=120, ge=30, le=600)
    story_raw: str = Field(min_length=1, max_length=10000)
    price: Decimal = Field(default=Decimal("0"), ge=0)


class OrderOut(BaseModel):
    order: Order
    lyrics: List[Lyric] = Field(default_factory=list)
    track: Optional[Track] = None


class OrderEventIn(BaseModel):
    target_status: OrderStatus
    song_title: Optional[str] = Field(default=None, max_length=200)
    style_prompt: Optional[str] = None
    cover_url: Optional[str] = None


class OrderEventOut(BaseModel):
    order_id: UUID
    status: OrderStatus
    changed: bool
    generation_scheduled: bool = False


class ApproveLyricOut(BaseModel):
    order_id: UUID
    lyric_id: UUID
    version: int
    track: Track
    message: str = ""


class PushNotificationIn(BaseModel):
    recipient_id: Optional[UUID] = None
    order_id: Optional[UUID] = None
    title: str = Field(min_length=1, max_length=200)
    body: str = Field(min_length=1, max_length=2000)
    url: Optional[str] = None
