"""
In-Memory Counter Store
=======================
Process-local fixed-window counters, safe under threads and asyncio tasks.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from .models import CounterStore, RateLimitInfo


@dataclass
class _Window:
    started_at: float
    expires_at: float
    count: int


class InMemoryCounterStore(CounterStore):
    """
    Fixed-window counters held in a dict guarded by a lock.

    Suitable for a single process. Use RedisCounterStore when several
    instances must share the same limits.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        purge_every: int = 1000,
    ):
        """
        Args:
            clock: Monotonic time source in seconds
            purge_every: Drop expired windows after this many calls
        """
        self._clock = clock
        self._purge_every = purge_every
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._calls = 0

    def consume(self, key: str, limit: int, window_seconds: float) -> RateLimitInfo:
        """Synchronous check-and-increment."""
        with self._lock:
            now = self._clock()
            self._calls += 1
            if self._calls % self._purge_every == 0:
                self._purge(now)

            window = self._windows.get(key)
            if window is None or now >= window.expires_at:
                window = _Window(started_at=now, expires_at=now + window_seconds, count=0)
                self._windows[key] = window

            if window.count >= limit:
                return RateLimitInfo(
                    allowed=False,
                    remaining=0,
                    limit=limit,
                    reset_at=time.time() + (window.expires_at - now),
                    retry_after=max(window.expires_at - now, 0.0),
                )

            window.count += 1
            return RateLimitInfo(
                allowed=True,
                remaining=limit - window.count,
                limit=limit,
                reset_at=time.time() + (window.expires_at - now),
            )

    async def try_consume(self, key: str, limit: int, window_seconds: float) -> RateLimitInfo:
        return self.consume(key, limit, window_seconds)

    def reset(self, key: str) -> None:
        """Forget the counter for a key."""
        with self._lock:
            self._windows.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _purge(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now >= w.expires_at]
        for k in expired:
            del self._windows[k]
