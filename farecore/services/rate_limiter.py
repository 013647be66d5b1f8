"""Sliding-window request admission for one upstream provider."""

import threading
import time
from collections import deque
from typing import Callable

MINUTE = 60
HOUR = 60 * 60


class RateLimiter:
    """Client-side request budget with per-minute and per-hour windows.

    State is local to this process. ``try_acquire`` checks both windows
    against one snapshot of ``now`` and records the request only when
    both have room.
    """

    def __init__(
        self,
        requests_per_minute: int,
        requests_per_hour: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rpm = requests_per_minute
        self.rph = requests_per_hour
        self._clock = clock
        self._timestamps: deque[float] = deque()
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        with self._lock:
            now = self._clock()
            hour_ago = now - HOUR
            while self._timestamps and self._timestamps[0] <= hour_ago:
                self._timestamps.popleft()

            minute_ago = now - MINUTE
            last_minute = sum(1 for t in self._timestamps if t > minute_ago)
            if last_minute >= self.rpm or len(self._timestamps) >= self.rph:
                return False

            self._timestamps.append(now)
            return True

    def usage(self) -> dict:
        """Current request counts in each window."""
        with self._lock:
            now = self._clock()
            return {
                "last_minute": sum(1 for t in self._timestamps if t > now - MINUTE),
                "last_hour": sum(1 for t in self._timestamps if t > now - HOUR),
                "rpm": self.rpm,
                "rph": self.rph,
            }
