from __future__ import annotations

import logging
from typing import List, Optional

from songorders.domain.errors import OrderPipelineError
from songorders.domain.models import SweepItem, SweepReport
from songorders.services.lyrics_pipeline import LyricsPipeline

logger = logging.getLogger("recovery_sweep")


class RecoverySweep:
    """
    Backfill for orders that were paid but never got lyrics. Safe to run
    repeatedly and alongside organic generation: the pipeline's idempotency
    guard and the lyrics uniqueness constraint do the coordination.
    """

    def __init__(self, *, orders, pipeline: LyricsPipeline, batch_limit: int = 50):
        self.orders = orders
        self.pipeline = pipeline
        self.batch_limit = max(1, int(batch_limit))

    async def sweep(self, *, limit: Optional[int] = None) -> SweepReport:
        candidates = await self.orders.list_paid_without_lyrics(limit=limit or self.batch_limit)
        logger.info("recovery sweep found %s paid orders without lyrics", len(candidates))

        results: List[SweepItem] = []
        processed = 0
        for order in candidates:
            try:
                res = await self.pipeline.generate_lyrics(order.id)
            except OrderPipelineError as e:
                logger.warning("recovery failed order_id=%s code=%s err=%s", order.id, e.code, e)
                results.append(SweepItem(order_id=order.id, status="error", error=f"{e.code}: {e}"))
                continue
            except Exception as e:
                logger.exception("recovery crashed order_id=%s", order.id)
                results.append(SweepItem(order_id=order.id, status="error", error=str(e) or type(e).__name__))
                continue

            results.append(SweepItem(order_id=order.id, status="success", created=res.created))
            if res.created:
                processed += 1
                logger.info("recovered lyrics order_id=%s", order.id)

        logger.info("recovery sweep done processed=%s total=%s", processed, len(candidates))
        return SweepReport(total_orders=len(candidates), processed=processed, results=results)
