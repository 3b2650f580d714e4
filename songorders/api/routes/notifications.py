from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from songorders.api.deps import get_dispatcher, require_service
from songorders.config import settings
from songorders.domain.models import DispatchSummary, PushNotificationIn
from songorders.services.notifications import NotificationDispatcher

router = APIRouter(prefix="/api/internal/notifications", tags=["internal"])


@router.post("/push", response_model=DispatchSummary)
async def push(
    req: PushNotificationIn,
    _claims: dict = Depends(require_service),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> DispatchSummary:
    return await dispatcher.notify(
        title=req.title,
        body=req.body,
        recipient_id=req.recipient_id,
        order_id=req.order_id,
        url=req.url,
    )


public_router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@public_router.get("/vapid-public-key")
async def vapid_public_key():
    # browsers need this to create a subscription the server can sign for
    if not settings.VAPID_PUBLIC_KEY:
        raise HTTPException(status_code=404, detail="push_not_configured")
    return {"public_key": settings.VAPID_PUBLIC_KEY}
