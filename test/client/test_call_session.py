"""
Tests for the client call state machine.
"""

import asyncio

import pytest

from softphone.client.call_session import CallSession, CallState, format_duration
from softphone.client.errors import CallOriginationError, OriginationErrorKind
from softphone.client.permissions import Permissions, PermissionStatus
from softphone.shared.exceptions import (
    CallStateError,
    NoCredentialsError,
    PermissionDeniedError,
    SessionExpiredError,
    TransportError,
    ValidationError,
)


class TestOriginate:
    @pytest.mark.asyncio
    async def test_connects_and_ticks(
        self,
        call_session: CallSession,
        granted: Permissions,
        gateway,
        notices,
        clock,
    ) -> None:
        call_id = await call_session.originate("(415) 555-1234", account_id="acct-1")

        assert call_id == "CA0001"
        assert gateway.placed == [("4155551234", "acct-1")]
        assert call_session.state is CallState.CONNECTED
        assert call_session.provider_call_id == "CA0001"
        assert notices.successes == ["Calling (415) 555-1234..."]

        await clock.advance(5)
        assert call_session.duration == 5

        await call_session.hangup()

        assert call_session.state is CallState.IDLE
        assert call_session.ticker_running is False
        assert notices.infos == ["Call ended (0:05)"]

        await clock.advance(3)
        assert call_session.duration == 0

    @pytest.mark.asyncio
    async def test_second_origination_is_rejected(
        self,
        call_session: CallSession,
        granted: Permissions,
        gateway,
        clock,
    ) -> None:
        await call_session.originate("4155551234")
        await clock.advance(2)

        with pytest.raises(CallStateError):
            await call_session.originate("4155559999")

        assert len(gateway.placed) == 1
        assert call_session.state is CallState.CONNECTED
        assert call_session.counterpart == "4155551234"
        assert call_session.duration == 2
        await call_session.hangup()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("address", ["555-123", "", "abc"])
    async def test_too_few_digits(
        self,
        call_session: CallSession,
        granted: Permissions,
        gateway,
        notices,
        address: str,
    ) -> None:
        with pytest.raises(ValidationError):
            await call_session.originate(address)

        assert gateway.placed == []
        assert call_session.state is CallState.IDLE
        assert notices.errors == ["Please enter a valid phone number"]

    @pytest.mark.asyncio
    async def test_microphone_not_granted(
        self,
        call_session: CallSession,
        permissions: Permissions,
        probe,
        gateway,
        notices,
    ) -> None:
        probe.microphone_ok = False

        with pytest.raises(PermissionDeniedError):
            await call_session.originate("4155551234")

        assert probe.microphone_requests == 1
        assert permissions.microphone is PermissionStatus.DENIED
        assert gateway.placed == []
        assert call_session.state is CallState.IDLE
        assert "Microphone access is required to make calls" in notices.errors

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (NoCredentialsError(), OriginationErrorKind.CREDENTIALS),
            (SessionExpiredError(), OriginationErrorKind.SESSION_EXPIRED),
            (TransportError(), OriginationErrorKind.UNKNOWN),
        ],
    )
    async def test_gateway_failure_is_classified(
        self,
        call_session: CallSession,
        granted: Permissions,
        gateway,
        error,
        kind: OriginationErrorKind,
    ) -> None:
        gateway.call_error = error

        with pytest.raises(CallOriginationError) as exc_info:
            await call_session.originate("4155551234")

        assert exc_info.value.kind is kind
        assert exc_info.value.code == error.code
        assert exc_info.value.remedy
        assert call_session.state is CallState.IDLE
        assert call_session.ticker_running is False

    @pytest.mark.asyncio
    async def test_hangup_while_dialing(
        self,
        call_session: CallSession,
        granted: Permissions,
        gateway,
    ) -> None:
        gateway.hold = asyncio.Event()
        dialing = asyncio.create_task(call_session.originate("4155551234"))
        await asyncio.sleep(0)
        assert call_session.state is CallState.DIALING

        await call_session.hangup()
        gateway.release()
        await dialing

        assert call_session.state is CallState.IDLE
        assert call_session.ticker_running is False


class TestIncoming:
    @pytest.mark.asyncio
    async def test_accept_starts_ticker(
        self,
        call_session: CallSession,
        make_connection,
        clock,
    ) -> None:
        connection = make_connection()

        assert call_session.receive_incoming(connection, "+14155557777") is True
        assert call_session.state is CallState.RINGING
        assert call_session.incoming_from == "+14155557777"

        call_session.accept_incoming()
        await clock.advance(2)

        assert connection.accepted == 1
        assert call_session.counterpart == "+14155557777"
        assert call_session.duration == 2

        await call_session.remote_disconnected()
        assert call_session.state is CallState.IDLE
        assert call_session.ticker_running is False

    @pytest.mark.asyncio
    async def test_busy_session_rejects(
        self,
        call_session: CallSession,
        make_connection,
    ) -> None:
        first, second = make_connection(), make_connection()
        call_session.receive_incoming(first, "+1")

        assert call_session.receive_incoming(second, "+2") is False
        assert second.rejected == 1
        assert call_session.incoming_from == "+1"

    @pytest.mark.asyncio
    async def test_reject(
        self,
        call_session: CallSession,
        make_connection,
    ) -> None:
        connection = make_connection()
        call_session.receive_incoming(connection, "+1")

        call_session.reject_incoming()

        assert connection.rejected == 1
        assert call_session.state is CallState.IDLE

    @pytest.mark.asyncio
    async def test_accept_without_ringing(self, call_session: CallSession) -> None:
        with pytest.raises(CallStateError):
            call_session.accept_incoming()
        with pytest.raises(CallStateError):
            call_session.reject_incoming()


class TestInCallControls:
    @pytest.mark.asyncio
    async def test_mute_is_relayed_and_speaker_is_local(
        self,
        call_session: CallSession,
        make_connection,
    ) -> None:
        connection = make_connection()
        call_session.receive_incoming(connection, "+1")
        call_session.accept_incoming()

        assert call_session.toggle_mute() is True
        assert call_session.toggle_mute() is False
        assert call_session.toggle_speaker() is True

        assert connection.mute_calls == [True, False]
        assert call_session.speaker_on is True

        await call_session.hangup()
        assert connection.disconnected == 1
        assert call_session.muted is False
        assert call_session.speaker_on is False

    @pytest.mark.asyncio
    async def test_controls_need_a_call(self, call_session: CallSession) -> None:
        with pytest.raises(CallStateError):
            call_session.toggle_mute()
        with pytest.raises(CallStateError):
            call_session.toggle_speaker()
        with pytest.raises(CallStateError):
            await call_session.hangup()

    @pytest.mark.asyncio
    async def test_teardown_ends_call(
        self,
        call_session: CallSession,
        granted: Permissions,
        notices,
        clock,
    ) -> None:
        await call_session.originate("4155551234")
        await clock.advance(61)

        await call_session.teardown()

        assert call_session.state is CallState.IDLE
        assert notices.infos == ["Call ended (1:01)"]


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(0, "0:00"), (5, "0:05"), (65, "1:05"), (600, "10:00")],
    )
    def test_format(self, seconds: int, expected: str) -> None:
        assert format_duration(seconds) == expected
