"""
Process-local TTL cache for read-mostly reference data.

Each server process holds its own copy, so with several instances a
write in one process is only seen by the others after the TTL runs
out. Writers must call invalidate() on the process that did the write.
"""

import threading
import time
from typing import Any, Callable

from ftms.config import get_settings


class TTLCache:
    """Key/value cache whose entries expire ttl_seconds after being set."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return default
            expires_at, value = item
            if self._clock() >= expires_at:
                del self._entries[key]
                return default
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def get_or_set(self, key: str, loader: Callable[[], Any]) -> Any:
        """
        Return the cached value for key, calling loader on a miss.

        A loader result of None is returned but not stored, so a row
        that does not exist yet is looked up again next time.
        """
        sentinel = object()
        value = self.get(key, sentinel)
        if value is not sentinel:
            return value
        value = loader()
        if value is not None:
            self.set(key, value)
        return value

    def invalidate(self, prefix: str | None = None) -> None:
        """Drop every entry, or only those whose key starts with prefix."""
        with self._lock:
            if prefix is None:
                self._entries.clear()
                return
            for key in [k for k in self._entries if k.startswith(prefix)]:
                del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


reference_cache = TTLCache(get_settings().REFRESH_INTERVAL)
