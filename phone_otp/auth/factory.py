"""
OTP Flow Factory
================
Wires issuer and verifier around shared stores.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..accounts import AccountStore, SignIn
from ..audit import InMemoryOtpAuditLog, OtpAuditLog
from ..config import AuthSettings
from ..delivery import MessageChannel
from ..otp import RegistrationToken, utc_now
from ..rate_limit import CounterStore, InMemoryCounterStore, RateLimiter
from ..session import InMemorySessionStore, LockoutTracker, SessionStore
from .issuer import OtpIssuer
from .verifier import OtpVerifier


@dataclass
class OtpFlow:
    """Issuer and verifier sharing one session store."""
    issuer: OtpIssuer
    verifier: OtpVerifier
    session_store: SessionStore
    counter_store: CounterStore
    audit_log: OtpAuditLog
    registration_tokens: RegistrationToken


def build_otp_flow(
    settings: AuthSettings,
    channel: MessageChannel,
    accounts: AccountStore,
    sign_in: Optional[SignIn] = None,
    counter_store: Optional[CounterStore] = None,
    session_store: Optional[SessionStore] = None,
    audit_log: Optional[OtpAuditLog] = None,
    clock: Callable[[], datetime] = utc_now,
    monotonic: Callable[[], float] = time.monotonic,
) -> OtpFlow:
    """
    Build an OTP flow with in-memory defaults for every store not given.

    Args:
        settings: Validated on construction
        channel: Message channel for delivery
        accounts: Account lookup
        sign_in: Sign-in hook called on SUCCESS
        counter_store: Rate-limit counters (RedisCounterStore for clusters)
        session_store: Per-session challenge store
        audit_log: OTP audit trail
        clock: UTC wall clock for expiry and lockout
        monotonic: Clock for the in-memory rate-limit windows
    """
    settings.validate()
    counter_store = counter_store or InMemoryCounterStore(clock=monotonic)
    session_store = session_store or InMemorySessionStore(
        ttl=timedelta(minutes=settings.session_ttl_minutes),
        clock=clock,
    )
    audit_log = audit_log or InMemoryOtpAuditLog(clock=clock)

    lockouts = LockoutTracker(
        session_store,
        max_failed_attempts=settings.max_failed_attempts,
        lockout_duration=timedelta(minutes=settings.lockout_minutes),
        clock=clock,
    )
    registration_tokens = RegistrationToken(
        settings.hash_key,
        ttl_seconds=settings.registration_token_minutes * 60,
        clock=lambda: clock().timestamp(),
    )

    issuer = OtpIssuer(
        settings,
        store=session_store,
        phone_limiter=RateLimiter(
            counter_store, "phone", settings.max_sends_per_phone, settings.send_window_seconds
        ),
        ip_limiter=RateLimiter(
            counter_store, "ip", settings.max_sends_per_ip, settings.send_window_seconds
        ),
        lockouts=lockouts,
        channel=channel,
        audit_log=audit_log,
        clock=clock,
    )
    verifier = OtpVerifier(
        settings,
        store=session_store,
        lockouts=lockouts,
        accounts=accounts,
        sign_in=sign_in,
        registration_tokens=registration_tokens,
        audit_log=audit_log,
        clock=clock,
    )
    return OtpFlow(
        issuer=issuer,
        verifier=verifier,
        session_store=session_store,
        counter_store=counter_store,
        audit_log=audit_log,
        registration_tokens=registration_tokens,
    )
