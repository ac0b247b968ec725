"""
Message Delivery
================
Channels that carry OTP messages, with retry and backoff.
"""

from .base import MessageChannel, MessageStatus, SendResult, LoggingChannel
from .retry import retry_with_backoff, with_retry, compute_delay
from .gateway import HttpSmsGateway

__all__ = [
    # Channels
    "MessageChannel",
    "MessageStatus",
    "SendResult",
    "LoggingChannel",
    "HttpSmsGateway",
    # Retry
    "retry_with_backoff",
    "with_retry",
    "compute_delay",
]
