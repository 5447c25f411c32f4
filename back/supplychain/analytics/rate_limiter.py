from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict

import structlog

logger = structlog.get_logger(__name__)

WINDOW_DURATION_SECONDS = 60 * 60
MAX_PER_WINDOW = 45  # держимся ниже дневной квоты Gemini


@dataclass
class RateWindow:
    count: int
    reset_at: float


class RateLimiter:
    """
    Счётчик вызовов AI по бакетам в окне фиксированной длины.

    Бакет = вид анализа ("sales_quantity", "stock_levels", ...) плюс общий
    "comprehensive". Окно сбрасывается лениво, при первом вызове после reset_at.

    admit() синхронный и не содержит await между чтением и инкрементом,
    поэтому в одном event loop он атомарен относительно других задач.
    """

    def __init__(
        self,
        max_calls: int = MAX_PER_WINDOW,
        window_seconds: float = WINDOW_DURATION_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}

    def admit(self, bucket: str) -> bool:
        now = self._clock()
        window = self._windows.get(bucket)

        if window is None or now > window.reset_at:
            self._windows[bucket] = RateWindow(count=1, reset_at=now + self.window_seconds)
            return True

        if window.count < self.max_calls:
            window.count += 1
            return True

        logger.warning(
            "rate_limit.denied",
            bucket=bucket,
            count=window.count,
            reset_in=round(window.reset_at - now, 1),
        )
        return False

    def remaining(self, bucket: str) -> int:
        window = self._windows.get(bucket)
        if window is None or self._clock() > window.reset_at:
            return self.max_calls
        return max(0, self.max_calls - window.count)

    def reset(self) -> None:
        self._windows.clear()
