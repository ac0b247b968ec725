"""
Lockout Tracker
===============
Counts failed verifications per phone and suspends verification once the
maximum is reached.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from ..otp.models import LockoutState, utc_now
from ..phone import mask_phone
from .models import ClientSession
from .store import SessionStore

logger = structlog.get_logger(__name__)


class LockoutTracker:
    """Failure accounting on top of a SessionStore."""

    def __init__(
        self,
        store: SessionStore,
        max_failed_attempts: int = 5,
        lockout_duration: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.max_failed_attempts = max_failed_attempts
        self.lockout_duration = lockout_duration
        self._clock = clock

    async def active_lockout(self, session: ClientSession, phone: str) -> Optional[LockoutState]:
        """Return the lockout state if verification is currently suspended."""
        state = await self.store.get_lockout(session.session_id, phone)
        if state is not None and state.is_locked(self._clock()):
            return state
        return None

    async def register_failure(self, session: ClientSession, phone: str) -> LockoutState:
        """
        Record one failed attempt.

        A lockout that has already run out starts a fresh count.
        """
        now = self._clock()
        state = await self.store.get_lockout(session.session_id, phone)
        if state is None or (state.locked_until is not None and now >= state.locked_until):
            state = LockoutState(phone=phone)

        state.failed_attempts += 1
        if state.failed_attempts >= self.max_failed_attempts:
            state.locked_until = now + self.lockout_duration
            logger.warning(
                "Phone locked out after failed OTP attempts",
                phone=mask_phone(phone),
                failed_attempts=state.failed_attempts,
                locked_until=state.locked_until.isoformat(),
            )

        await self.store.set_lockout(session.session_id, state)
        return state

    async def reset(self, session: ClientSession, phone: str) -> None:
        await self.store.clear_lockout(session.session_id, phone)
