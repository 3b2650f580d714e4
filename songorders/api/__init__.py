from __future__ import annotations
from fastapi import APIRouter

def build_router() -> APIRouter:
    router = APIRouter()

    from songorders.api.health import router as health_router
    from songorders.api.routes.orders import router as orders_router
    from songorders.api.routes.order_events import router as order_events_router
    from songorders.api.routes.recovery import router as recovery_router
    from songorders.api.routes.notifications import router as notifications_router
    from songorders.api.routes.notifications import public_router as push_keys_router

    router.include_router(health_router)
    router.include_router(orders_router)
    router.include_router(order_events_router)
    router.include_router(recovery_router)
    router.include_router(notifications_router)
    router.include_router(push_keys_router)

    return router
