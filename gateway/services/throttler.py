# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Dispatch throttler — minimum spacing between upstream attempts.

The check-then-update sequence runs under a lock and the wait happens while
holding it, so consecutive attempts across all concurrent requests are spaced
by at least ``min_interval`` seconds.
"""

import asyncio
import time
from typing import Awaitable, Callable

from gateway.metrics.prometheus import THROTTLE_WAIT


class DispatchThrottler:
    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_attempt: float | None = None
        self._lock = asyncio.Lock()

    @property
    def last_attempt(self) -> float | None:
        return self._last_attempt

    async def await_slot(self) -> float:
        """Delay the caller until the spacing has elapsed, then record now. Returns the wait."""
        async with self._lock:
            waited = 0.0
            if self._last_attempt is not None:
                elapsed = self._clock() - self._last_attempt
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    await self._sleep(waited)
            self._last_attempt = self._clock()
        THROTTLE_WAIT.observe(waited)
        return waited
