"""
OTP Generation and Hashing
==========================
Code generation, keyed digests and the records built around them.
"""

from .models import (
    OtpChallenge,
    LockoutState,
    VerifyOutcome,
    VerifyResult,
    utc_now,
)
from .hashing import generate_otp, hash_otp, digests_match, verify_otp_hash
from .registration_token import RegistrationToken

__all__ = [
    # Models
    "OtpChallenge",
    "LockoutState",
    "VerifyOutcome",
    "VerifyResult",
    "utc_now",
    # Hashing
    "generate_otp",
    "hash_otp",
    "digests_match",
    "verify_otp_hash",
    # Registration
    "RegistrationToken",
]
