"""
Rate Limiting
=============
Fixed-window send limits with in-memory and Redis counter stores.
"""

from .models import CounterStore, RateLimitInfo, RateLimitResult
from .in_memory import InMemoryCounterStore
from .redis_store import RedisCounterStore, FIXED_WINDOW_SCRIPT
from .limiter import RateLimiter

__all__ = [
    # Models
    "CounterStore",
    "RateLimitInfo",
    "RateLimitResult",
    # Stores
    "InMemoryCounterStore",
    "RedisCounterStore",
    "FIXED_WINDOW_SCRIPT",
    # Limiter
    "RateLimiter",
]
