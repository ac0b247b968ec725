"""
Phone OTP
=========
One-time-password login for phone numbers: normalization, send limits,
session-bound challenges, lockout and constant-time verification.
"""

__version__ = "1.0.0"

# Configuration
from phone_otp.config import AuthSettings, GatewayConfig

# Exceptions
from phone_otp.exceptions import (
    OtpError,
    ConfigurationError,
    SessionStoreError,
    DeliveryError,
    DeliveryTimeout,
    RetryExhausted,
)

# Phone
from phone_otp.phone import normalize_phone, is_valid_phone, has_allowed_prefix, mask_phone

# Rate Limiting
from phone_otp.rate_limit import (
    CounterStore,
    InMemoryCounterStore,
    RedisCounterStore,
    RateLimiter,
    RateLimitInfo,
)

# OTP
from phone_otp.otp import (
    OtpChallenge,
    LockoutState,
    VerifyOutcome,
    VerifyResult,
    generate_otp,
    hash_otp,
    digests_match,
    RegistrationToken,
)

# Sessions
from phone_otp.session import ClientSession, SessionStore, InMemorySessionStore, LockoutTracker

# Delivery
from phone_otp.delivery import (
    MessageChannel,
    SendResult,
    LoggingChannel,
    HttpSmsGateway,
    retry_with_backoff,
)

# Audit
from phone_otp.audit import OtpRequestRecord, InMemoryOtpAuditLog

# Flow
from phone_otp.auth import OtpIssuer, OtpVerifier, OtpFlow, build_otp_flow

__all__ = [
    # Configuration
    "AuthSettings",
    "GatewayConfig",
    # Exceptions
    "OtpError",
    "ConfigurationError",
    "SessionStoreError",
    "DeliveryError",
    "DeliveryTimeout",
    "RetryExhausted",
    # Phone
    "normalize_phone",
    "is_valid_phone",
    "has_allowed_prefix",
    "mask_phone",
    # Rate Limiting
    "CounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
    "RateLimiter",
    "RateLimitInfo",
    # OTP
    "OtpChallenge",
    "LockoutState",
    "VerifyOutcome",
    "VerifyResult",
    "generate_otp",
    "hash_otp",
    "digests_match",
    "RegistrationToken",
    # Sessions
    "ClientSession",
    "SessionStore",
    "InMemorySessionStore",
    "LockoutTracker",
    # Delivery
    "MessageChannel",
    "SendResult",
    "LoggingChannel",
    "HttpSmsGateway",
    "retry_with_backoff",
    # Audit
    "OtpRequestRecord",
    "InMemoryOtpAuditLog",
    # Flow
    "OtpIssuer",
    "OtpVerifier",
    "OtpFlow",
    "build_otp_flow",
]
