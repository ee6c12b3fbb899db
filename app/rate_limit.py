"""Sliding-window request budgets for the upstream providers."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Callable


class SlidingWindowRateLimiter:
    """Allow at most ``max_requests`` within any ``window_seconds`` span."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._max_requests = max(max_requests, 0)
        self._window = window_seconds
        self._clock = clock
        self._timestamps: deque[float] = deque()
        self._lock = asyncio.Lock()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self._window:
            self._timestamps.popleft()

    def can_acquire(self) -> bool:
        self._prune(self._clock())
        return len(self._timestamps) < self._max_requests

    def record(self) -> None:
        self._timestamps.append(self._clock())

    def try_acquire(self) -> bool:
        """Record a request if the budget allows it."""

        if not self.can_acquire():
            return False
        self.record()
        return True

    def remaining(self) -> int:
        self._prune(self._clock())
        return max(self._max_requests - len(self._timestamps), 0)

    def seconds_until_available(self) -> float:
        now = self._clock()
        self._prune(now)
        if len(self._timestamps) < self._max_requests:
            return 0.0
        if not self._timestamps:
            return self._window
        return max(self._timestamps[0] + self._window - now, 0.0)

    async def acquire(self) -> None:
        """Wait until a request slot is free, then take it."""

        if self._max_requests == 0:
            raise RuntimeError("Rate limiter has no request budget")
        async with self._lock:
            while not self.try_acquire():
                await asyncio.sleep(self.seconds_until_available())
