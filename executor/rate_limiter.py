"""Fixed-period request pacing shared by every call in one pipeline execution."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional


class RateLimiter:
    """
    Hands out one tick per period.

    Ticks sit on a fixed grid of ``1 / requests_per_second`` seconds; a
    caller waits for the next free slot on that grid. How long the call
    made after a tick takes has no effect on later ticks. An idle limiter
    does not bank ticks: after a pause the next caller goes immediately
    and the grid restarts from that moment.
    """

    def __init__(
        self,
        requests_per_second: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be > 0")
        self._period = 1.0 / float(requests_per_second)
        self._clock = clock
        self._sleep = sleep
        self._next_tick: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def period(self) -> float:
        return self._period

    async def acquire(self) -> None:
        """Wait for the next tick."""
        async with self._lock:
            now = self._clock()
            if self._next_tick is None or now >= self._next_tick:
                self._next_tick = now + self._period
                return

            wait = self._next_tick - now
            self._next_tick += self._period
            await self._sleep(wait)
