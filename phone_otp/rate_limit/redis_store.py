"""
Redis Counter Store
===================
Fixed-window counters shared between instances, using a Lua script for an
atomic check-and-increment.
"""

import time
from typing import Optional

import structlog

from .models import CounterStore, RateLimitInfo

logger = structlog.get_logger(__name__)

# KEYS[1] = counter key, ARGV[1] = limit, ARGV[2] = window in milliseconds
FIXED_WINDOW_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local window_ms = tonumber(ARGV[2])

local current = tonumber(redis.call('GET', key) or '0')
if current >= limit then
    local ttl = redis.call('PTTL', key)
    return {0, 0, ttl}
end

current = redis.call('INCR', key)
if current == 1 or redis.call('PTTL', key) < 0 then
    redis.call('PEXPIRE', key, window_ms)
end

return {1, limit - current, redis.call('PTTL', key)}
"""


class RedisCounterStore(CounterStore):
    """
    Redis-backed fixed-window counters.

    Fails closed: if Redis cannot be reached the hit is denied, so an
    outage never turns OTP sending into an unlimited SMS relay.
    """

    def __init__(self, redis_client, key_prefix: str = ""):
        """
        Args:
            redis_client: Async Redis client (``redis.asyncio.Redis``)
            key_prefix: Optional namespace prepended to every key
        """
        self.redis = redis_client
        self.key_prefix = key_prefix
        self._script_sha: Optional[str] = None

    async def _ensure_script(self) -> str:
        """Load the Lua script into Redis if needed."""
        if self._script_sha is None:
            self._script_sha = await self.redis.script_load(FIXED_WINDOW_SCRIPT)
        return self._script_sha

    async def try_consume(self, key: str, limit: int, window_seconds: float) -> RateLimitInfo:
        full_key = f"{self.key_prefix}{key}"
        window_ms = int(window_seconds * 1000)

        try:
            script_sha = await self._ensure_script()
            allowed, remaining, ttl_ms = await self.redis.evalsha(
                script_sha,
                1,
                full_key,
                limit,
                window_ms,
            )
        except Exception as e:
            logger.error("Rate limit check failed, denying", key=full_key, error=str(e))
            return RateLimitInfo(
                allowed=False,
                remaining=0,
                limit=limit,
                reset_at=time.time() + window_seconds,
                retry_after=float(window_seconds),
            )

        ttl_seconds = max(int(ttl_ms), 0) / 1000.0
        return RateLimitInfo(
            allowed=bool(int(allowed)),
            remaining=int(remaining),
            limit=limit,
            reset_at=time.time() + ttl_seconds,
            retry_after=None if int(allowed) else ttl_seconds,
        )
