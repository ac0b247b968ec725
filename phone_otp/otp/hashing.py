"""
OTP Hashing Utilities
=====================
Code generation, keyed hashing and constant-time comparison.
"""

import base64
import hashlib
import hmac
import secrets
from typing import Optional


def generate_otp(length: int = 6) -> str:
    """
    Generate a numeric OTP from a cryptographically secure source.

    Args:
        length: Number of digits

    Returns:
        OTP string of exactly ``length`` digits
    """
    if length <= 0:
        raise ValueError("OTP length must be positive")
    return "".join(str(b % 10) for b in secrets.token_bytes(length))


def hash_otp(code: str, phone: str, key: str) -> str:
    """
    Keyed digest of an OTP bound to its phone number.

    HMAC-SHA256 over ``phone|code`` (UTF-8), base64 encoded.

    Args:
        code: Plain OTP
        phone: Canonical phone number the code was issued to
        key: Server-held secret

    Returns:
        44-character printable digest
    """
    mac = hmac.new(
        key.encode("utf-8"),
        f"{phone}|{code}".encode("utf-8"),
        hashlib.sha256,
    )
    return base64.b64encode(mac.digest()).decode("ascii")


def digests_match(expected: Optional[str], actual: Optional[str]) -> bool:
    """
    Compare two digests in constant time.

    The running time does not depend on the position of the first
    differing byte. A missing digest on either side never matches.
    """
    if expected is None or actual is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), actual.encode("utf-8"))


def verify_otp_hash(code: str, phone: str, key: str, stored_digest: Optional[str]) -> bool:
    """Hash a submitted code and compare it with the stored digest."""
    return digests_match(stored_digest, hash_otp(code, phone, key))
