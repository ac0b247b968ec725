"""
Scoped Rate Limiter
===================
Binds a counter store to one scope (phone, IP, ...) and its limit.
"""

from .models import CounterStore, RateLimitInfo


class RateLimiter:
    """
    Send limit for one scope.

    Usage:
        store = InMemoryCounterStore()
        per_phone = RateLimiter(store, "phone", limit=3, window_seconds=300)
        info = await per_phone.try_consume("+989123456789")
    """

    def __init__(self, store: CounterStore, scope: str, limit: int, window_seconds: float):
        self.store = store
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds

    def key_for(self, identifier: str) -> str:
        return f"otp:send:{self.scope}:{identifier}"

    async def try_consume(self, identifier: str) -> RateLimitInfo:
        return await self.store.try_consume(
            self.key_for(identifier),
            self.limit,
            self.window_seconds,
        )
