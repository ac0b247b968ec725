"""
Challenge Store
===============
Per-session storage for the current OTP challenge and lockout counters.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

import structlog

from ..otp.models import LockoutState, OtpChallenge, utc_now

logger = structlog.get_logger(__name__)


class SessionStore(ABC):
    """
    Storage for session-owned OTP state.

    Records are keyed by the server-side session id; one session holds at
    most one challenge and one lockout state per phone. Implementations
    raise SessionStoreError when the backing store is unavailable.
    """

    @abstractmethod
    async def get_challenge(self, session_id: str) -> Optional[OtpChallenge]:
        ...

    @abstractmethod
    async def set_challenge(self, session_id: str, challenge: OtpChallenge) -> None:
        """Store a challenge, replacing any previous one for the session."""
        ...

    @abstractmethod
    async def clear_challenge(self, session_id: str) -> None:
        ...

    @abstractmethod
    async def get_lockout(self, session_id: str, phone: str) -> Optional[LockoutState]:
        ...

    @abstractmethod
    async def set_lockout(self, session_id: str, state: LockoutState) -> None:
        ...

    @abstractmethod
    async def clear_lockout(self, session_id: str, phone: str) -> None:
        ...


@dataclass
class _SessionRecord:
    touched_at: datetime
    challenge: Optional[OtpChallenge] = None
    lockouts: Dict[str, LockoutState] = field(default_factory=dict)


class InMemorySessionStore(SessionStore):
    """
    Process-local session store with idle expiry.

    A session untouched for ``ttl`` disappears together with its challenge
    and lockout state, like a server-side session timing out.
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(minutes=20),
        clock: Callable[[], datetime] = utc_now,
    ):
        self.ttl = ttl
        self._clock = clock
        self._sessions: Dict[str, _SessionRecord] = {}
        self._lock = threading.Lock()

    def _record(self, session_id: str, create: bool) -> Optional[_SessionRecord]:
        now = self._clock()
        record = self._sessions.get(session_id)
        if record is not None and now - record.touched_at > self.ttl:
            logger.debug("Session expired", session_id=session_id)
            del self._sessions[session_id]
            record = None
        if record is None and create:
            record = _SessionRecord(touched_at=now)
            self._sessions[session_id] = record
        if record is not None:
            record.touched_at = now
        return record

    async def get_challenge(self, session_id: str) -> Optional[OtpChallenge]:
        with self._lock:
            record = self._record(session_id, create=False)
            return record.challenge if record else None

    async def set_challenge(self, session_id: str, challenge: OtpChallenge) -> None:
        with self._lock:
            self._record(session_id, create=True).challenge = challenge

    async def clear_challenge(self, session_id: str) -> None:
        with self._lock:
            record = self._record(session_id, create=False)
            if record:
                record.challenge = None

    async def get_lockout(self, session_id: str, phone: str) -> Optional[LockoutState]:
        with self._lock:
            record = self._record(session_id, create=False)
            return record.lockouts.get(phone) if record else None

    async def set_lockout(self, session_id: str, state: LockoutState) -> None:
        with self._lock:
            self._record(session_id, create=True).lockouts[state.phone] = state

    async def clear_lockout(self, session_id: str, phone: str) -> None:
        with self._lock:
            record = self._record(session_id, create=False)
            if record:
                record.lockouts.pop(phone, None)

    def purge_expired(self) -> int:
        """Drop idle sessions. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [
                sid for sid, record in self._sessions.items()
                if now - record.touched_at > self.ttl
            ]
            for sid in expired:
                del self._sessions[sid]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
