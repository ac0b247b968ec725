"""
Registration Token
==================
Signed proof that a phone number passed OTP verification, handed to the
account-creation flow when no account exists yet.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

TOKEN_VERSION = "1"


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64decode(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


class RegistrationToken:
    """Generates and verifies URL-safe registration tokens."""

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = 15 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _sign(self, payload_b64: str) -> str:
        return hmac.new(
            self.secret.encode("utf-8"),
            f"registration:{payload_b64}".encode("ascii"),
            hashlib.sha256,
        ).hexdigest()

    def generate(self, phone: str) -> str:
        """
        Create a token for a verified phone number.

        Args:
            phone: Canonical phone number

        Returns:
            ``<payload>.<signature>``
        """
        payload = {
            "ph": phone,
            "exp": int(self._clock()) + self.ttl_seconds,
            "ver": TOKEN_VERSION,
        }
        payload_b64 = _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
        return f"{payload_b64}.{self._sign(payload_b64)}"

    def verify(self, token: str) -> Optional[str]:
        """
        Verify a registration token.

        Returns:
            The verified phone number, or None if the token is forged,
            malformed or expired
        """
        if not token or token.count(".") != 1:
            return None

        payload_b64, signature = token.split(".")
        try:
            expected = self._sign(payload_b64)
        except UnicodeEncodeError:
            return None
        if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("ascii")):
            logger.warning("Registration token signature mismatch")
            return None

        try:
            payload = json.loads(_b64decode(payload_b64))
        except (binascii.Error, ValueError):
            return None

        if not isinstance(payload, dict) or payload.get("ver") != TOKEN_VERSION:
            return None
        expires_at = payload.get("exp")
        if not isinstance(expires_at, int) or self._clock() > expires_at:
            logger.info("Expired registration token presented")
            return None

        phone = payload.get("ph")
        return phone if isinstance(phone, str) else None
