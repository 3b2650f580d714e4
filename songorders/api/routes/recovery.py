from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from songorders.api.deps import get_sweep, require_service
from songorders.domain.models import SweepReport
from songorders.services.recovery_sweep import RecoverySweep

router = APIRouter(prefix="/api/internal/recovery", tags=["internal"])


@router.post("/sweep", response_model=SweepReport)
async def run_sweep(
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    _claims: dict = Depends(require_service),
    sweep: RecoverySweep = Depends(get_sweep),
) -> SweepReport:
    return await sweep.sweep(limit=limit)
