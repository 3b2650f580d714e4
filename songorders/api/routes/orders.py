from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from songorders.api.deps import get_approval, get_current_user_id, get_pipeline, get_transitions
from songorders.domain.models import (
    ApproveLyricOut,
    CreateOrderIn,
    GenerateLyricsResult,
    Order,
    OrderOut,
)
from songorders.services.approval_service import ApprovalService
from songorders.services.lyrics_pipeline import LyricsPipeline
from songorders.services.order_transitions import OrderTransitionService

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=Order, status_code=201)
async def create_order(
    req: CreateOrderIn,
    user_id: UUID = Depends(get_current_user_id),
    svc: OrderTransitionService = Depends(get_transitions),
) -> Order:
    return await svc.create_order(user_id, req)


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    svc: OrderTransitionService = Depends(get_transitions),
) -> OrderOut:
    return await svc.get_order_view(user_id, order_id)


@router.post("/{order_id}/lyrics/generate", response_model=GenerateLyricsResult)
async def generate_lyrics(
    order_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    pipeline: LyricsPipeline = Depends(get_pipeline),
) -> GenerateLyricsResult:
    return await pipeline.generate_lyrics(order_id, user_id=user_id)


@router.post("/{order_id}/lyrics/{lyric_id}/approve", response_model=ApproveLyricOut)
async def approve_lyric(
    order_id: UUID,
    lyric_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    svc: ApprovalService = Depends(get_approval),
) -> ApproveLyricOut:
    return await svc.approve_lyric(user_id=user_id, order_id=order_id, lyric_id=lyric_id)
