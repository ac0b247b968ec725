"""
End-to-end tests for issuing and verifying login OTPs.
"""

import pytest

PHONE = "+989123456789"

PERSIAN_DIGITS = str.maketrans("0123456789", "۰۱۲۳۴۵۶۷۸۹")


async def issue_and_read_code(flow, session, raw_phone=PHONE):
    assert await flow.issuer.issue(raw_phone, session) is True
    await flow.issuer.drain()
    return flow.issuer.channel.last_code()


def wrong_code(code):
    return "".join(str((int(d) + 1) % 10) for d in code)


class BrokenStore:
    """Session store whose backend is unreachable."""

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            from phone_otp.exceptions import SessionStoreError

            raise SessionStoreError("store unreachable")
        return fail


class TestIssue:
    """Tests for OtpIssuer."""

    @pytest.mark.asyncio
    async def test_issue_sends_code(self, flow, session):
        """Should deliver a 6-digit code to the normalized phone."""
        code = await issue_and_read_code(flow, session, "09123456789")

        destination, body = flow.issuer.channel.sent[0]
        assert destination == PHONE
        assert body == f"Your login code: {code}"
        assert len(code) == 6 and code.isdigit()

    @pytest.mark.asyncio
    async def test_challenge_holds_digest_only(self, flow, session):
        code = await issue_and_read_code(flow, session)

        challenge = await flow.session_store.get_challenge(session.session_id)

        assert challenge.phone == PHONE
        assert challenge.bound_ip == session.ip
        assert challenge.bound_user_agent == session.user_agent
        assert code not in challenge.code_digest
        assert len(challenge.code_digest) == 44

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["", "not a phone", "12345", None])
    async def test_invalid_phone(self, flow, session, raw):
        """Should reject invalid numbers without sending anything."""
        assert await flow.issuer.issue(raw, session) is False
        await flow.issuer.drain()

        assert flow.issuer.channel.sent == []

    @pytest.mark.asyncio
    async def test_disallowed_prefix(self, flow, session):
        assert await flow.issuer.issue("+14155551234", session) is False
        assert flow.issuer.channel.sent == []

    @pytest.mark.asyncio
    async def test_phone_rate_limit(self, flow, session, clock):
        """Should allow 3 sends per phone per 5 minutes."""
        for _ in range(3):
            assert await flow.issuer.issue(PHONE, session) is True

        assert await flow.issuer.issue(PHONE, session) is False

        clock.advance(seconds=300)
        assert await flow.issuer.issue(PHONE, session) is True

    @pytest.mark.asyncio
    async def test_phone_rate_limit_spans_spellings(self, flow, session):
        """Different spellings of one number share a counter."""
        for raw in ("09123456789", "+989123456789", "۰۹۱۲۳۴۵۶۷۸۹"):
            assert await flow.issuer.issue(raw, session) is True

        assert await flow.issuer.issue("00989123456789", session) is False

    @pytest.mark.asyncio
    async def test_ip_rate_limit(self, flow, session):
        """Should allow 10 sends per IP per 5 minutes, across phones."""
        for i in range(10):
            assert await flow.issuer.issue(f"+98912345670{i}", session) is True

        assert await flow.issuer.issue("+989000000000", session) is False

    @pytest.mark.asyncio
    async def test_ip_limit_is_per_ip(self, flow, session):
        from phone_otp.session import ClientSession

        for i in range(10):
            await flow.issuer.issue(f"+98912345670{i}", session)

        other = ClientSession(session_id="sess-2", ip="10.0.0.99", user_agent="ua")
        assert await flow.issuer.issue("+989000000000", other) is True

    @pytest.mark.asyncio
    async def test_delivery_failure_keeps_challenge(self, make_flow, session):
        """A failed send still leaves a usable challenge."""
        from phone_otp.otp import VerifyOutcome

        flow = make_flow(fail=True)

        code = await issue_and_read_code(flow, session)
        result = await flow.verifier.verify(PHONE, code, session)

        assert result.outcome == VerifyOutcome.SUCCESS

    @pytest.mark.asyncio
    async def test_delivery_exception_is_contained(self, make_flow, session):
        flow = make_flow(raise_error=True)

        assert await flow.issuer.issue(PHONE, session) is True
        await flow.issuer.drain()

        assert flow.issuer.pending_deliveries == 0

    @pytest.mark.asyncio
    async def test_store_failure(self, make_flow, session):
        """Infrastructure errors should yield False, not raise."""
        flow = make_flow(session_store=BrokenStore())

        assert await flow.issuer.issue(PHONE, session) is False
        await flow.issuer.drain()
        assert flow.issuer.channel.sent == []

    @pytest.mark.asyncio
    async def test_unrenderable_template(self, flow, session):
        """A broken template yields False and leaves no challenge behind."""
        flow.issuer.settings.message_template = "Code {code} for {app}"

        assert await flow.issuer.issue(PHONE, session) is False
        await flow.issuer.drain()

        assert await flow.session_store.get_challenge(session.session_id) is None
        assert flow.audit_log.records(PHONE) == []
        assert flow.issuer.channel.sent == []

    @pytest.mark.asyncio
    async def test_audit_record(self, flow, session):
        """Issued OTPs are recorded by digest, never by code."""
        code = await issue_and_read_code(flow, session)

        records = flow.audit_log.records(PHONE)

        assert len(records) == 1
        assert records[0].client_ip == session.ip
        assert records[0].verified is False
        assert code not in records[0].code_digest

    @pytest.mark.asyncio
    async def test_code_never_logged(self, flow, session):
        """Neither issuing nor verifying may log the plaintext code."""
        from structlog.testing import capture_logs

        with capture_logs() as logs:
            code = await issue_and_read_code(flow, session)
            await flow.verifier.verify(PHONE, wrong_code(code), session)
            await flow.verifier.verify(PHONE, code, session)

        assert logs
        assert code not in repr(logs)
        assert "9123456789" not in repr(logs)


class TestVerify:
    """Tests for OtpVerifier."""

    @pytest.mark.asyncio
    async def test_success_signs_in(self, flow, session, sign_in):
        """Correct code for a known phone should sign the account in."""
        from phone_otp.otp import VerifyOutcome

        code = await issue_and_read_code(flow, session)

        result = await flow.verifier.verify("09123456789", code, session)

        assert result.outcome == VerifyOutcome.SUCCESS
        assert result.ok is True
        assert result.account == {"id": 7, "phone": PHONE}
        assert sign_in.signed_in == [({"id": 7, "phone": PHONE}, session.session_id)]

    @pytest.mark.asyncio
    async def test_requires_registration(self, flow, session, sign_in):
        """Unknown phone should get a registration token, not a sign-in."""
        from phone_otp.otp import VerifyOutcome

        other_phone = "+989350000000"
        code = await issue_and_read_code(flow, session, other_phone)

        result = await flow.verifier.verify(other_phone, code, session)

        assert result.outcome == VerifyOutcome.REQUIRES_REGISTRATION
        assert result.account is None
        assert flow.registration_tokens.verify(result.registration_token) == other_phone
        assert sign_in.signed_in == []

    @pytest.mark.asyncio
    async def test_default_registration_tokens_follow_clock(self, settings, clock, accounts):
        """Without an injected token helper, tokens use the verifier's clock."""
        from phone_otp.auth import OtpVerifier
        from phone_otp.session import InMemorySessionStore, LockoutTracker

        store = InMemorySessionStore(clock=clock)
        verifier = OtpVerifier(
            settings,
            store=store,
            lockouts=LockoutTracker(store, clock=clock),
            accounts=accounts,
            clock=clock,
        )
        token = verifier.registration_tokens.generate(PHONE)

        assert verifier.registration_tokens.verify(token) == PHONE
        clock.advance(minutes=15, seconds=1)
        assert verifier.registration_tokens.verify(token) is None

    @pytest.mark.asyncio
    async def test_persian_digits_in_code(self, flow, session):
        from phone_otp.otp import VerifyOutcome

        code = await issue_and_read_code(flow, session)

        result = await flow.verifier.verify(PHONE, f" {code.translate(PERSIAN_DIGITS)} ", session)

        assert result.outcome == VerifyOutcome.SUCCESS

    @pytest.mark.asyncio
    async def test_wrong_code(self, flow, session):
        from phone_otp.otp import VerifyOutcome

        code = await issue_and_read_code(flow, session)

        result = await flow.verifier.verify(PHONE, wrong_code(code), session)

        assert result.outcome == VerifyOutcome.FAILURE
        assert result.ok is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("submitted", ["", "abc", None])
    async def test_garbage_code(self, flow, session, submitted):
        from phone_otp.otp import VerifyOutcome

        await issue_and_read_code(flow, session)

        result = await flow.verifier.verify(PHONE, submitted, session)

        assert result.outcome == VerifyOutcome.FAILURE

    @pytest.mark.asyncio
    async def test_single_use(self, flow, session):
        """A code should work only once."""
        from phone_otp.otp import VerifyOutcome

        code = await issue_and_read_code(flow, session)

        first = await flow.verifier.verify(PHONE, code, session)
        second = await flow.verifier.verify(PHONE, code, session)

        assert first.outcome == VerifyOutcome.SUCCESS
        assert second.outcome == VerifyOutcome.FAILURE

    @pytest.mark.asyncio
    async def test_valid_until_expiry(self, flow, session, clock):
        from phone_otp.otp import VerifyOutcome

        code = await issue_and_read_code(flow, session)
        clock.advance(minutes=2)

        result = await flow.verifier.verify(PHONE, code, session)

        assert result.outcome == VerifyOutcome.SUCCESS

    @pytest.mark.asyncio
    async def test_expired(self, flow, session, clock):
        """A code should fail after 2 minutes."""
        from phone_otp.otp import VerifyOutcome

        code = await issue_and_read_code(flow, session)
        clock.advance(minutes=2, seconds=1)

        result = await flow.verifier.verify(PHONE, code, session)

        assert result.outcome == VerifyOutcome.FAILURE

    @pytest.mark.asyncio
    async def test_other_phone_same_session(self, flow, session):
        """A code issued for one phone must not verify another."""
        from phone_otp.otp import VerifyOutcome

        code = await issue_and_read_code(flow, session)

        result = await flow.verifier.verify("+989350000000", code, session)

        assert result.outcome == VerifyOutcome.FAILURE

    @pytest.mark.asyncio
    async def test_other_session(self, flow, session):
        """A correct code from a different session should fail."""
        from phone_otp.otp import VerifyOutcome
        from phone_otp.session import ClientSession

        code = await issue_and_read_code(flow, session)
        attacker = ClientSession(session_id="sess-attacker", ip=session.ip, user_agent=session.user_agent)

        result = await flow.verifier.verify(PHONE, code, attacker)

        assert result.outcome == VerifyOutcome.FAILURE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ip,user_agent", [
        ("10.0.0.2", "Mozilla/5.0 (test)"),
        ("10.0.0.1", "curl/8.0"),
    ])
    async def test_binding_mismatch(self, flow, session, ip, user_agent):
        """Same session from another IP or user agent should fail."""
        from phone_otp.otp import VerifyOutcome
        from phone_otp.session import ClientSession

        code = await issue_and_read_code(flow, session)
        moved = ClientSession(session_id=session.session_id, ip=ip, user_agent=user_agent)

        result = await flow.verifier.verify(PHONE, code, moved)
        assert result.outcome == VerifyOutcome.FAILURE

        # The original client can still use the code.
        result = await flow.verifier.verify(PHONE, code, session)
        assert result.outcome == VerifyOutcome.SUCCESS

    @pytest.mark.asyncio
    async def test_invalid_phone(self, flow, session):
        from phone_otp.otp import VerifyOutcome

        result = await flow.verifier.verify("garbage", "123456", session)

        assert result.outcome == VerifyOutcome.FAILURE
        assert result.phone == ""

    @pytest.mark.asyncio
    async def test_store_failure(self, make_flow, session):
        from phone_otp.otp import VerifyOutcome

        flow = make_flow(session_store=BrokenStore())

        result = await flow.verifier.verify(PHONE, "123456", session)

        assert result.outcome == VerifyOutcome.FAILURE

    @pytest.mark.asyncio
    async def test_audit_marked_verified(self, flow, session):
        code = await issue_and_read_code(flow, session)

        await flow.verifier.verify(PHONE, code, session)

        record = flow.audit_log.records(PHONE)[0]
        assert record.verified is True
        assert record.verified_at is not None


class TestLockout:
    """Tests for failed-attempt lockout."""

    @pytest.mark.asyncio
    async def test_locked_after_five_failures(self, flow, session):
        """The sixth attempt is locked out even with the right code."""
        from phone_otp.otp import VerifyOutcome

        code = await issue_and_read_code(flow, session)

        for _ in range(5):
            result = await flow.verifier.verify(PHONE, wrong_code(code), session)
            assert result.outcome == VerifyOutcome.FAILURE

        result = await flow.verifier.verify(PHONE, code, session)

        assert result.outcome == VerifyOutcome.LOCKED_OUT

    @pytest.mark.asyncio
    async def test_four_failures_then_success_resets(self, flow, session):
        from phone_otp.otp import VerifyOutcome

        code = await issue_and_read_code(flow, session)
        for _ in range(4):
            await flow.verifier.verify(PHONE, wrong_code(code), session)

        assert (await flow.verifier.verify(PHONE, code, session)).outcome == VerifyOutcome.SUCCESS

        code = await issue_and_read_code(flow, session)
        for _ in range(4):
            await flow.verifier.verify(PHONE, wrong_code(code), session)

        assert (await flow.verifier.verify(PHONE, code, session)).outcome == VerifyOutcome.SUCCESS

    @pytest.mark.asyncio
    async def test_locked_out_blocks_issue(self, flow, session):
        code = await issue_and_read_code(flow, session)
        for _ in range(5):
            await flow.verifier.verify(PHONE, wrong_code(code), session)

        assert await flow.issuer.issue(PHONE, session) is False

    @pytest.mark.asyncio
    async def test_recovers_after_lockout(self, flow, session, clock):
        """After 15 minutes a fresh code should work again."""
        from phone_otp.otp import VerifyOutcome

        code = await issue_and_read_code(flow, session)
        for _ in range(5):
            await flow.verifier.verify(PHONE, wrong_code(code), session)

        clock.advance(minutes=15)
        code = await issue_and_read_code(flow, session)
        result = await flow.verifier.verify(PHONE, code, session)

        assert result.outcome == VerifyOutcome.SUCCESS

    @pytest.mark.asyncio
    async def test_lockout_is_per_phone(self, flow, session):
        from phone_otp.otp import VerifyOutcome

        code = await issue_and_read_code(flow, session)
        for _ in range(5):
            await flow.verifier.verify(PHONE, wrong_code(code), session)

        other_phone = "+989350000000"
        code = await issue_and_read_code(flow, session, other_phone)
        result = await flow.verifier.verify(other_phone, code, session)

        assert result.outcome == VerifyOutcome.REQUIRES_REGISTRATION

    @pytest.mark.asyncio
    async def test_locked_attempts_are_not_counted(self, flow, session, clock):
        """Attempts during a lockout must not extend it."""
        from phone_otp.otp import VerifyOutcome

        code = await issue_and_read_code(flow, session)
        for _ in range(5):
            await flow.verifier.verify(PHONE, wrong_code(code), session)

        clock.advance(minutes=10)
        for _ in range(5):
            assert (await flow.verifier.verify(PHONE, code, session)).outcome == VerifyOutcome.LOCKED_OUT

        clock.advance(minutes=5)
        code = await issue_and_read_code(flow, session)

        assert (await flow.verifier.verify(PHONE, code, session)).outcome == VerifyOutcome.SUCCESS
