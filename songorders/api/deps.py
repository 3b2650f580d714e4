from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from songorders.db import get_pool
from songorders.security import decode_access_jwt, is_service
from songorders.services import factory
from songorders.services.approval_service import ApprovalService
from songorders.services.lyrics_pipeline import LyricsPipeline
from songorders.services.notifications import NotificationDispatcher
from songorders.services.order_transitions import OrderTransitionService
from songorders.services.recovery_sweep import RecoverySweep

bearer = HTTPBearer(auto_error=False)


def get_current_claims(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> dict:
    if not creds or not creds.credentials:
        raise HTTPException(status_code=401, detail="missing_token")
    try:
        return decode_access_jwt(creds.credentials)
    except Exception as e:
        raise HTTPException(status_code=401, detail=f"invalid_token: {e}")


def require_service(claims: dict = Depends(get_current_claims)) -> dict:
    if is_service(claims) or "admin" in (claims.get("roles") or []):
        return claims
    raise HTTPException(status_code=403, detail="service_token_required")


async def get_current_user_id(
    claims: dict = Depends(get_current_claims),
    x_actor_user_id: str | None = Header(default=None, alias="X-Actor-User-Id"),
) -> UUID:
    # service token acting on behalf of a user
    if is_service(claims):
        if not x_actor_user_id:
            raise HTTPException(status_code=401, detail="missing_actor_user_id")
        try:
            return UUID(str(x_actor_user_id))
        except ValueError:
            raise HTTPException(status_code=401, detail="invalid_actor_user_id")

    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="missing_user_id")
    try:
        return UUID(str(user_id))
    except ValueError:
        raise HTTPException(status_code=401, detail="invalid_user_id")


# Service providers; tests override these with in-memory wiring.


async def get_pipeline() -> LyricsPipeline:
    return factory.build_pipeline(await get_pool())


async def get_approval() -> ApprovalService:
    return factory.build_approval(await get_pool())


async def get_transitions() -> OrderTransitionService:
    return factory.build_transitions(await get_pool())


async def get_sweep() -> RecoverySweep:
    return factory.build_sweep(await get_pool())


async def get_dispatcher() -> NotificationDispatcher:
    return factory.build_dispatcher(await get_pool())
