"""
Retry Backoff
=============
Exponential backoff with jitter and a per-attempt timeout.
"""

import asyncio
import random
from functools import wraps
from typing import Awaitable, Callable, Optional, Set, Type, TypeVar

import structlog

from ..exceptions import RetryExhausted

logger = structlog.get_logger(__name__)

T = TypeVar('T')


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """Delay before the attempt following ``attempt`` (1-based)."""
    delay = min(base_delay * (exponential_base ** (attempt - 1)), max_delay)
    if jitter:
        delay = min(delay * (0.5 + random.random()), max_delay)
    return delay


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    attempt_timeout: Optional[float] = None,
    retryable_exceptions: Optional[Set[Type[Exception]]] = None,
    **kwargs,
) -> T:
    """
    Execute a coroutine function with exponential backoff retry.

    Args:
        func: Async function to execute
        *args: Positional arguments for func
        max_attempts: Maximum number of attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential calculation
        jitter: Add random jitter to delays
        attempt_timeout: Hard timeout for each attempt, in seconds
        retryable_exceptions: Set of exception types to retry on
        **kwargs: Keyword arguments for func

    Returns:
        Result of func

    Raises:
        RetryExhausted: If all attempts fail
    """
    retryable = set(retryable_exceptions or {Exception})
    if attempt_timeout is not None:
        retryable.add(asyncio.TimeoutError)
    attempts = max(1, max_attempts)
    last_exception: Optional[Exception] = None

    for attempt in range(1, attempts + 1):
        try:
            if attempt_timeout is not None:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=attempt_timeout)
            return await func(*args, **kwargs)
        except tuple(retryable) as e:
            last_exception = e

            if attempt == attempts:
                logger.error(
                    "Retry exhausted",
                    func=func.__name__,
                    attempts=attempt,
                    error=str(e) or type(e).__name__,
                )
                raise RetryExhausted(
                    f"Failed after {attempts} attempts: {e!r}",
                    last_exception=e,
                )

            delay = compute_delay(attempt, base_delay, max_delay, exponential_base, jitter)

            logger.warning(
                "Retrying after failure",
                func=func.__name__,
                attempt=attempt,
                delay=round(delay, 3),
                error=str(e) or type(e).__name__,
            )

            await asyncio.sleep(delay)

    raise RetryExhausted(f"Failed after {attempts} attempts", last_exception)


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    attempt_timeout: Optional[float] = None,
    retryable_exceptions: Optional[Set[Type[Exception]]] = None,
):
    """
    Decorator for retry with exponential backoff.

    Usage:
        @with_retry(max_attempts=5, attempt_timeout=10)
        async def post_message():
            ...
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await retry_with_backoff(
                func,
                *args,
                max_attempts=max_attempts,
                base_delay=base_delay,
                max_delay=max_delay,
                attempt_timeout=attempt_timeout,
                retryable_exceptions=retryable_exceptions,
                **kwargs,
            )
        return wrapper
    return decorator
