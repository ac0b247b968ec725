"""
OTP Exceptions
==============
Exception classes for infrastructure failures.

Expected security outcomes (invalid phone, wrong code, lockout, rate
limiting) are never raised; they are returned as results.
"""

from typing import Optional


class OtpError(Exception):
    """Base exception for the phone OTP package."""
    pass


class ConfigurationError(OtpError):
    """Raised when settings are missing or unusable."""
    pass


class SessionStoreError(OtpError):
    """Raised when the challenge/session store cannot be reached."""
    pass


class DeliveryError(OtpError):
    """Raised by a delivery attempt that failed at the transport level."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DeliveryTimeout(DeliveryError):
    """Raised when a single delivery attempt exceeds its timeout."""
    pass


class RetryExhausted(OtpError):
    """Raised when all retry attempts have been exhausted."""

    def __init__(self, message: str, last_exception: Optional[Exception] = None):
        super().__init__(message)
        self.last_exception = last_exception
