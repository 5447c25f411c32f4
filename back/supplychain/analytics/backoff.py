from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from supplychain.core.exceptions import RateLimitedError, RetriesExhaustedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

BASE_DELAY_SECONDS = 30.0
MAX_DELAY_SECONDS = 60.0
DEFAULT_MAX_RETRIES = 3


class BackoffRetrier:
    """
    Повтор операции только на RateLimitedError (HTTP 429 от внешнего API).
    Задержка min(base * 2**attempt, max). Остальные ошибки пробрасываются сразу.

    sleep внедряется, чтобы тесты не ждали реальные секунды.
    asyncio.sleep приостанавливает только вызывающую задачу.
    """

    def __init__(
        self,
        base_delay: float = BASE_DELAY_SECONDS,
        max_delay: float = MAX_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> T:
        last_error: Optional[RateLimitedError] = None

        for attempt in range(max_retries + 1):
            try:
                return await operation()
            except RateLimitedError as e:
                last_error = e
                if attempt >= max_retries:
                    break
                delay = self.delay_for(attempt)
                logger.warning(
                    "backoff.rate_limited",
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay=delay,
                    retry_after=e.retry_after,
                )
                await self._sleep(delay)

        logger.error("backoff.exhausted", attempts=max_retries + 1)
        raise RetriesExhaustedError(max_retries + 1) from last_error
