from __future__ import annotations

import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict


@dataclass
class RateLimitResult:
    allowed: bool
    retry_after: float


class RateLimiter:
    def __init__(
        self,
        max_calls: int,
        period_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_calls = max_calls
        self.period_seconds = period_seconds
        self._clock = clock
        self._calls: Dict[str, Deque[float]] = defaultdict(deque)

    def _trim(self, window: Deque[float], now: float) -> None:
        while window and now - window[0] >= self.period_seconds:
            window.popleft()

    def allow(self, key: str) -> RateLimitResult:
        now = self._clock()
        window = self._calls[key]
        self._trim(window, now)
        if len(window) >= self.max_calls:
            retry_after = self.period_seconds - (now - window[0])
            return RateLimitResult(False, max(retry_after, 0))
        window.append(now)
        return RateLimitResult(True, 0)

    def prune(self) -> int:
        """Drop keys whose window has fully expired. Returns how many were dropped."""
        now = self._clock()
        expired = []
        for key, window in self._calls.items():
            self._trim(window, now)
            if not window:
                expired.append(key)
        for key in expired:
            del self._calls[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._calls)
