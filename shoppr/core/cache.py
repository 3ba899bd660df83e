"""
Time-based in-memory cache.

Used twice: the server keeps generative-language responses for 10 minutes and
the client keeps whole search results for 5 minutes. Entries expire a fixed
duration after insertion; there is no capacity bound.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Callable, Hashable
from typing import Any

logger = logging.getLogger(__name__)

_MISSING = object()


class TTLCache:
    """
    Key-value cache with per-entry expiry.

    Expiry is lazy (an expired entry is evicted by the ``get`` that finds it)
    plus an explicit ``sweep`` for bounding memory. All operations hold a lock
    so the instance can be shared by concurrent requests, including requests
    served from FastAPI's threadpool.

    Args:
        ttl: Entry lifetime in seconds, measured from insertion
        timer: Monotonic clock, injectable for tests
    """

    def __init__(self, ttl: float, timer: Callable[[], float] = time.monotonic):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._timer = timer
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def _expired(self, inserted_at: float, now: float) -> bool:
        return now - inserted_at >= self.ttl

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                return default
            inserted_at, value = entry
            if self._expired(inserted_at, self._timer()):
                del self._entries[key]
                return default
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._timer(), value)

    def sweep(self) -> int:
        """Evict every expired entry. Returns how many were removed."""
        with self._lock:
            now = self._timer()
            expired = [k for k, (inserted_at, _) in self._entries.items() if self._expired(inserted_at, now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CacheSweeper:
    """Background task that calls ``cache.sweep()`` every ``interval`` seconds."""

    def __init__(self, cache: TTLCache, interval: float):
        self.cache = cache
        self.interval = interval
        self._task: asyncio.Task | None = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            removed = self.cache.sweep()
            if removed:
                logger.debug(f"Cache sweep evicted {removed} expired entries")

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
