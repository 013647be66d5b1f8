"""In-process TTL cache for raw upstream API responses."""

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_TTL = 5 * 60  # 5 minutes
DEFAULT_MAX_SIZE = 1000


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float
    expires_at: float


class ResponseCache:
    """TTL key/value cache owned by a single provider.

    Entries are only visible while ``now < expires_at``. When the entry
    count goes over ``max_size`` the expired entries are swept; live
    entries are never evicted, so the size limit is soft.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def make_key(method: str, url: str, params: dict | None = None) -> str:
        """Canonical JSON of the request with sorted keys."""
        return json.dumps(
            {"method": method.upper(), "url": url, "params": params or {}},
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )

    def get(self, key: str) -> tuple[Any, bool]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None, False
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None, False
            return entry.value, True

    def set(self, key: str, value: Any) -> None:
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(value=value, stored_at=now, expires_at=now + self.ttl)
            if len(self._entries) > self.max_size:
                self._sweep(now)

    def _sweep(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug(f"Response cache swept {len(expired)} expired entries")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
