"""
OTP Verifier
============
Checks a submitted code against the session's challenge and resolves the
account on success.
"""

from datetime import datetime
from typing import Callable, Optional

import structlog

from ..accounts import AccountStore, SignIn
from ..audit import OtpAuditLog
from ..config import AuthSettings
from ..otp import (
    OtpChallenge,
    RegistrationToken,
    VerifyOutcome,
    VerifyResult,
    utc_now,
    verify_otp_hash,
)
from ..phone import has_allowed_prefix, mask_phone, normalize_phone, to_ascii_digits
from ..session import ClientSession, LockoutTracker, SessionStore

logger = structlog.get_logger(__name__)


class OtpVerifier:
    """
    Verifies login OTPs.

    Every rejection is returned as FAILURE or LOCKED_OUT; the caller is not
    told which check failed. Failed checks count towards the lockout, except
    when the phone is already locked.
    """

    def __init__(
        self,
        settings: AuthSettings,
        store: SessionStore,
        lockouts: LockoutTracker,
        accounts: AccountStore,
        sign_in: Optional[SignIn] = None,
        registration_tokens: Optional[RegistrationToken] = None,
        audit_log: Optional[OtpAuditLog] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings.validate()
        self.store = store
        self.lockouts = lockouts
        self.accounts = accounts
        self.sign_in = sign_in
        self.registration_tokens = registration_tokens or RegistrationToken(
            settings.hash_key,
            ttl_seconds=settings.registration_token_minutes * 60,
            clock=lambda: clock().timestamp(),
        )
        self.audit_log = audit_log
        self._clock = clock

    async def verify(self, raw_phone: str, submitted_code: str, session: ClientSession) -> VerifyResult:
        """
        Verify a submitted OTP for the given client session.

        Args:
            raw_phone: Phone number as entered by the user
            submitted_code: Code typed by the user
            session: Verifying client

        Returns:
            VerifyResult with SUCCESS, REQUIRES_REGISTRATION, FAILURE or
            LOCKED_OUT
        """
        phone = normalize_phone(raw_phone)
        if not phone or not has_allowed_prefix(phone, self.settings.allowed_prefixes):
            logger.warning("OTP verify rejected", reason="invalid_phone", client_ip=session.ip)
            return VerifyResult.failure()

        try:
            return await self._verify(phone, submitted_code, session)
        except Exception:
            logger.exception(
                "OTP verify failed",
                phone=mask_phone(phone),
                client_ip=session.ip,
            )
            return VerifyResult.failure(phone)

    async def _verify(self, phone: str, submitted_code: str, session: ClientSession) -> VerifyResult:
        lockout = await self.lockouts.active_lockout(session, phone)
        if lockout is not None:
            logger.warning(
                "OTP verify rejected",
                reason="locked_out",
                phone=mask_phone(phone),
                client_ip=session.ip,
                locked_until=lockout.locked_until.isoformat(),
            )
            return VerifyResult.locked_out(phone)

        challenge = await self.store.get_challenge(session.session_id)

        if challenge is not None and not challenge.is_bound_to(session.ip, session.user_agent):
            return await self._fail("binding_mismatch", phone, session)

        if not self._is_live(challenge, phone):
            return await self._fail("challenge_missing_or_expired", phone, session)

        code = to_ascii_digits(submitted_code).strip() if isinstance(submitted_code, str) else ""
        if not verify_otp_hash(code, phone, self.settings.hash_key, challenge.code_digest):
            return await self._fail("code_mismatch", phone, session)

        # Single use: the challenge is gone before the account is resolved.
        challenge.consumed = True
        await self.store.clear_challenge(session.session_id)
        await self.lockouts.reset(session, phone)
        await self._mark_audit(phone, challenge.code_digest)

        account = await self.accounts.find_account_by_phone(phone)
        if account is None:
            logger.info("OTP verified, registration required", phone=mask_phone(phone))
            return VerifyResult(
                outcome=VerifyOutcome.REQUIRES_REGISTRATION,
                phone=phone,
                registration_token=self.registration_tokens.generate(phone),
            )

        if self.sign_in is not None:
            await self.sign_in.sign_in(account, session)
        logger.info("OTP verified, signed in", phone=mask_phone(phone), client_ip=session.ip)
        return VerifyResult(outcome=VerifyOutcome.SUCCESS, phone=phone, account=account)

    def _is_live(self, challenge: Optional[OtpChallenge], phone: str) -> bool:
        return (
            challenge is not None
            and not challenge.consumed
            and challenge.phone == phone
            and not challenge.is_expired(self._clock())
        )

    async def _fail(self, reason: str, phone: str, session: ClientSession) -> VerifyResult:
        state = await self.lockouts.register_failure(session, phone)
        logger.warning(
            "OTP verify rejected",
            reason=reason,
            phone=mask_phone(phone),
            client_ip=session.ip,
            failed_attempts=state.failed_attempts,
        )
        return VerifyResult.failure(phone)

    async def _mark_audit(self, phone: str, digest: str) -> None:
        if self.audit_log is None:
            return
        try:
            await self.audit_log.mark_verified(phone, digest)
        except Exception:
            logger.exception("Failed to update OTP audit entry", phone=mask_phone(phone))
