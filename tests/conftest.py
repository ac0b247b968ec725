"""
Shared fixtures: a controllable clock and fakes for the external
collaborators (message channel, account store, sign-in).
"""

from datetime import datetime, timedelta, timezone

import pytest

from phone_otp.config import AuthSettings
from phone_otp.delivery import MessageChannel, MessageStatus, SendResult
from phone_otp.session import ClientSession

TEST_HASH_KEY = "test-hash-key-0123456789abcdef"
PHONE = "+989123456789"


class FakeClock:
    """Wall clock and monotonic clock that only move when told to."""

    def __init__(self, start=datetime(2026, 1, 1, 8, 0, 0, tzinfo=timezone.utc)):
        self.start = start
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def monotonic(self) -> float:
        return (self.current - self.start).total_seconds()

    def timestamp(self) -> float:
        return self.current.timestamp()

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingChannel(MessageChannel):
    """Keeps every message instead of sending it."""

    name = "recording"

    def __init__(self, fail: bool = False, raise_error: bool = False):
        self.fail = fail
        self.raise_error = raise_error
        self.sent = []

    async def send(self, destination: str, body: str) -> SendResult:
        self.sent.append((destination, body))
        if self.raise_error:
            raise ConnectionError("gateway down")
        if self.fail:
            return SendResult(success=False, status=MessageStatus.FAILED, attempts=3)
        return SendResult(success=True)

    def last_code(self) -> str:
        _, body = self.sent[-1]
        return body.rsplit(" ", 1)[-1]


class FakeAccounts:
    def __init__(self, accounts=None):
        self.accounts = dict(accounts or {})
        self.lookups = []

    async def find_account_by_phone(self, phone):
        self.lookups.append(phone)
        return self.accounts.get(phone)


class RecordingSignIn:
    def __init__(self):
        self.signed_in = []

    async def sign_in(self, account, session):
        self.signed_in.append((account, session.session_id))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return AuthSettings(hash_key=TEST_HASH_KEY)


@pytest.fixture
def session():
    return ClientSession(session_id="sess-1", ip="10.0.0.1", user_agent="Mozilla/5.0 (test)")


@pytest.fixture
def sign_in():
    return RecordingSignIn()


@pytest.fixture
def accounts():
    return FakeAccounts({PHONE: {"id": 7, "phone": PHONE}})


@pytest.fixture
def make_flow(settings, clock, accounts, sign_in):
    """Build an OTP flow on the fake clock; the channel is ``flow.issuer.channel``."""
    from phone_otp.auth import build_otp_flow

    def factory(fail=False, raise_error=False, **kwargs):
        return build_otp_flow(
            settings,
            RecordingChannel(fail=fail, raise_error=raise_error),
            accounts,
            sign_in=sign_in,
            clock=clock,
            monotonic=clock.monotonic,
            **kwargs,
        )
    return factory


@pytest.fixture
def flow(make_flow):
    return make_flow()
