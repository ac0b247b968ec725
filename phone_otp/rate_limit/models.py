"""
Rate Limit Models
=================
Data models and the counter store interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RateLimitResult(str, Enum):
    """Rate limit decision result."""
    ALLOWED = "allowed"
    DENIED = "denied"


@dataclass
class RateLimitInfo:
    """Rate limit decision with quota information."""
    allowed: bool
    remaining: int
    limit: int
    reset_at: float  # Unix time at which the window ends
    retry_after: Optional[float] = None  # Seconds until the window resets

    @property
    def result(self) -> RateLimitResult:
        return RateLimitResult.ALLOWED if self.allowed else RateLimitResult.DENIED


class CounterStore(ABC):
    """
    Fixed-window counter storage.

    Implementations must perform the check-and-increment as one atomic
    unit: concurrent callers on the same key never get more than ``limit``
    allowed decisions within a window.
    """

    @abstractmethod
    async def try_consume(self, key: str, limit: int, window_seconds: float) -> RateLimitInfo:
        """
        Count one hit against ``key``.

        Args:
            key: Counter key
            limit: Maximum hits allowed per window
            window_seconds: Window length; the window starts at the first hit

        Returns:
            RateLimitInfo; ``allowed`` is False once the limit is reached
        """
        raise NotImplementedError
