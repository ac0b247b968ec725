"""
OTP Issuer
==========
Validates a login request, creates a challenge bound to the client session
and hands the code to the message channel.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Optional, Set

import structlog

from ..audit import OtpAuditLog
from ..config import AuthSettings
from ..delivery import MessageChannel
from ..otp import OtpChallenge, generate_otp, hash_otp, utc_now
from ..phone import has_allowed_prefix, mask_phone, normalize_phone
from ..rate_limit import RateLimiter
from ..session import ClientSession, LockoutTracker, SessionStore

logger = structlog.get_logger(__name__)


class OtpIssuer:
    """
    Issues login OTPs.

    ``issue`` returns False for every rejected request and never raises.
    Delivery runs in a background task: the challenge stays valid even if
    the message channel fails.
    """

    def __init__(
        self,
        settings: AuthSettings,
        store: SessionStore,
        phone_limiter: RateLimiter,
        ip_limiter: RateLimiter,
        lockouts: LockoutTracker,
        channel: MessageChannel,
        audit_log: Optional[OtpAuditLog] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings.validate()
        self.store = store
        self.phone_limiter = phone_limiter
        self.ip_limiter = ip_limiter
        self.lockouts = lockouts
        self.channel = channel
        self.audit_log = audit_log
        self._clock = clock
        self._deliveries: Set[asyncio.Task] = set()

    def _reject(self, reason: str, phone: str, session: ClientSession, **extra) -> bool:
        logger.warning(
            "OTP issue rejected",
            reason=reason,
            phone=mask_phone(phone),
            client_ip=session.ip,
            **extra,
        )
        return False

    async def issue(self, raw_phone: str, session: ClientSession) -> bool:
        """
        Issue an OTP for a phone number to the given client session.

        Args:
            raw_phone: Phone number as entered by the user
            session: Requesting client

        Returns:
            True if a challenge was created and delivery was scheduled
        """
        phone = normalize_phone(raw_phone)
        if not phone:
            return self._reject("invalid_phone", "", session)

        if not has_allowed_prefix(phone, self.settings.allowed_prefixes):
            return self._reject("prefix_not_allowed", phone, session)

        try:
            phone_quota = await self.phone_limiter.try_consume(phone)
            if not phone_quota.allowed:
                return self._reject(
                    "rate_limited_phone", phone, session,
                    retry_after=phone_quota.retry_after,
                )

            ip_quota = await self.ip_limiter.try_consume(session.ip)
            if not ip_quota.allowed:
                return self._reject(
                    "rate_limited_ip", phone, session,
                    retry_after=ip_quota.retry_after,
                )

            lockout = await self.lockouts.active_lockout(session, phone)
            if lockout is not None:
                return self._reject(
                    "locked_out", phone, session,
                    locked_until=lockout.locked_until.isoformat(),
                )

            code = generate_otp(self.settings.otp_length)
            digest = hash_otp(code, phone, self.settings.hash_key)
            now = self._clock()
            challenge = OtpChallenge(
                phone=phone,
                code_digest=digest,
                issued_at=now,
                expires_at=now + timedelta(minutes=self.settings.otp_expiry_minutes),
                bound_ip=session.ip,
                bound_user_agent=session.user_agent,
            )
            body = self.settings.message_template.format(code=code)
            await self.store.set_challenge(session.session_id, challenge)
        except Exception:
            logger.exception(
                "OTP issue failed",
                phone=mask_phone(phone),
                client_ip=session.ip,
            )
            return False

        await self._record_audit(phone, digest, session)
        self._schedule_delivery(phone, body)

        logger.info(
            "OTP issued",
            phone=mask_phone(phone),
            client_ip=session.ip,
            expires_at=challenge.expires_at.isoformat(),
        )
        return True

    async def _record_audit(self, phone: str, digest: str, session: ClientSession) -> None:
        if self.audit_log is None:
            return
        try:
            await self.audit_log.record_issued(phone, digest, session.ip)
        except Exception:
            logger.exception("Failed to record OTP audit entry", phone=mask_phone(phone))

    def _schedule_delivery(self, phone: str, body: str) -> None:
        task = asyncio.get_running_loop().create_task(self._deliver(phone, body))
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _deliver(self, phone: str, body: str) -> None:
        try:
            result = await self.channel.send(phone, body)
        except Exception:
            logger.exception("OTP delivery raised", phone=mask_phone(phone))
            return

        if not result.success:
            logger.error(
                "OTP delivery failed",
                phone=mask_phone(phone),
                status=result.status.value,
                error_code=result.error_code,
                attempts=result.attempts,
            )

    @property
    def pending_deliveries(self) -> int:
        return len(self._deliveries)

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown, tests)."""
        if self._deliveries:
            await asyncio.gather(*list(self._deliveries), return_exceptions=True)
