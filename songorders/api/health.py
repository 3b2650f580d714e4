from __future__ import annotations

import os

from fastapi import APIRouter, HTTPException

from songorders.config import settings
from songorders.db import get_pool

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": os.getenv("SERVICE_VERSION", "1.0.0"),
    }


@router.get("/health/ready")
async def ready():
    try:
        pool = await get_pool()
        await pool.fetchval("SELECT 1")
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"db_unavailable: {type(e).__name__}")
    return {"status": "ready", "service": settings.SERVICE_NAME}
