from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends

from songorders.api.deps import get_pipeline, get_transitions, require_service
from songorders.domain.enums import OrderStatus
from songorders.domain.errors import OrderPipelineError
from songorders.domain.models import OrderEventIn, OrderEventOut
from songorders.services.lyrics_pipeline import LyricsPipeline
from songorders.services.order_transitions import OrderTransitionService
from songorders.services.retry_policy import run_with_retry

logger = logging.getLogger("order_events")

router = APIRouter(prefix="/api/internal/orders", tags=["internal"])


async def _kick_generation(pipeline: LyricsPipeline, order_id: UUID) -> None:
    # runs after the response; the recovery sweep picks up anything left behind
    try:
        res = await run_with_retry(lambda: pipeline.generate_lyrics(order_id))
        logger.info("background generation done order_id=%s created=%s", order_id, res.created)
    except OrderPipelineError as e:
        logger.warning("background generation failed order_id=%s code=%s err=%s", order_id, e.code, e)
    except Exception:
        logger.exception("background generation crashed order_id=%s", order_id)


@router.post("/{order_id}/events", response_model=OrderEventOut)
async def fire_event(
    order_id: UUID,
    req: OrderEventIn,
    background: BackgroundTasks,
    _claims: dict = Depends(require_service),
    svc: OrderTransitionService = Depends(get_transitions),
    pipeline: LyricsPipeline = Depends(get_pipeline),
) -> OrderEventOut:
    meta = req.model_dump(include={"song_title", "style_prompt", "cover_url"})
    order, changed = await svc.fire(order_id, req.target_status, meta=meta)

    scheduled = False
    if req.target_status == OrderStatus.PAID and order.status == OrderStatus.PAID:
        background.add_task(_kick_generation, pipeline, order_id)
        scheduled = True

    return OrderEventOut(order_id=order_id, status=order.status, changed=changed, generation_scheduled=scheduled)
