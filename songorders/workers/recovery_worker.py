from __future__ import annotations

import asyncio
import logging

from songorders.config import settings
from songorders.db import close_pool, get_pool
from songorders.logging import configure_logging
from songorders.services.factory import build_sweep

logger = logging.getLogger("recovery_worker")


class RecoveryWorker:
    def __init__(self):
        self.interval_secs = float(settings.RECOVERY_SWEEP_INTERVAL_SECS)
        self.batch_limit = int(settings.RECOVERY_BATCH_LIMIT)

        self.pool = None
        self.sweep = None

    async def _ensure_init(self) -> None:
        if self.pool is not None:
            return
        self.pool = await get_pool()
        self.sweep = build_sweep(self.pool)

    async def run_once(self) -> None:
        await self._ensure_init()
        report = await self.sweep.sweep(limit=self.batch_limit)
        failed = sum(1 for r in report.results if r.status == "error")
        logger.info(
            "RecoveryWorker pass total=%s processed=%s failed=%s",
            report.total_orders,
            report.processed,
            failed,
        )

    async def run_forever(self) -> None:
        await self._ensure_init()
        logger.info("RecoveryWorker started interval_secs=%s batch_limit=%s", self.interval_secs, self.batch_limit)

        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Worker loop error")
            await asyncio.sleep(self.interval_secs)


async def main() -> None:
    worker = RecoveryWorker()
    try:
        await worker.run_forever()
    finally:
        await close_pool()


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
