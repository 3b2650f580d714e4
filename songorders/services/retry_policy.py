from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from songorders.config import settings
from songorders.domain.errors import ProviderError

logger = logging.getLogger("retry_policy")

T = TypeVar("T")


async def run_with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: Optional[int] = None,
    wait_seconds: Optional[float] = None,
) -> T:
    """
    Caller-side retry for generation. Only provider failures (timeouts
    included) are retried; validation, moderation and state errors surface
    on the first attempt.
    """
    attempts = max(1, int(attempts if attempts is not None else settings.GENERATION_RETRY_ATTEMPTS))
    wait_s = float(wait_seconds if wait_seconds is not None else settings.GENERATION_RETRY_WAIT_SECONDS)

    retrying = AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=wait_s, min=wait_s, max=max(wait_s, wait_s * 8)),
        retry=retry_if_exception_type(ProviderError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    async for attempt in retrying:
        with attempt:
            result = await fn()
    return result
