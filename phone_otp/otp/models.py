"""
OTP Models
==========
Challenge, lockout and verification result models.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OtpChallenge:
    """
    An outstanding verification attempt held in the client's session.

    Only the keyed digest of the code is kept, never the code itself.
    """
    phone: str
    code_digest: str
    issued_at: datetime
    expires_at: datetime
    bound_ip: str
    bound_user_agent: str
    consumed: bool = False

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_bound_to(self, ip: str, user_agent: str) -> bool:
        return self.bound_ip == ip and self.bound_user_agent == user_agent


@dataclass
class LockoutState:
    """Failed verification attempts for one phone within one session."""
    phone: str
    failed_attempts: int = 0
    locked_until: Optional[datetime] = None

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and now < self.locked_until


class VerifyOutcome(str, Enum):
    """Result of an OTP verification."""
    SUCCESS = "success"
    REQUIRES_REGISTRATION = "requires_registration"
    FAILURE = "failure"
    LOCKED_OUT = "locked_out"


@dataclass
class VerifyResult:
    """
    Outcome of ``OtpVerifier.verify``.

    ``account`` is set on SUCCESS; ``registration_token`` on
    REQUIRES_REGISTRATION. FAILURE never says which check failed.
    """
    outcome: VerifyOutcome
    phone: str = ""
    account: Any = None
    registration_token: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome in (VerifyOutcome.SUCCESS, VerifyOutcome.REQUIRES_REGISTRATION)

    @classmethod
    def failure(cls, phone: str = "") -> "VerifyResult":
        return cls(outcome=VerifyOutcome.FAILURE, phone=phone)

    @classmethod
    def locked_out(cls, phone: str) -> "VerifyResult":
        return cls(outcome=VerifyOutcome.LOCKED_OUT, phone=phone)
