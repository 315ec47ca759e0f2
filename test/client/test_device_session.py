"""
Tests for the signaling device lifecycle.
"""

import asyncio

import pytest

from softphone.client.call_session import CallSession, CallState
from softphone.client.device_session import DeviceSessionManager, DeviceState
from softphone.client.errors import DeviceFailureKind, classify_device_failure
from softphone.client.permissions import Permissions
from softphone.shared.exceptions import (
    AccountNotFoundError,
    ApplicationProvisioningFailedError,
    AppException,
    IncompleteAccountError,
    InvalidCredentialsError,
    SessionExpiredError,
    TransportError,
)


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def manager(
    gateway,
    device_factory,
    call_session: CallSession,
    permissions: Permissions,
    notices,
) -> DeviceSessionManager:
    return DeviceSessionManager(gateway, device_factory, call_session, permissions, notices)


class TestStart:
    @pytest.mark.asyncio
    async def test_registers_device(
        self,
        manager: DeviceSessionManager,
        gateway,
        device_factory,
    ) -> None:
        await manager.start("user-1", "acct-1")

        assert manager.state is DeviceState.READY
        assert gateway.token_requests == ["acct-1"]
        device = device_factory.devices[0]
        assert device.token == "token-acct-1"
        assert device.registered is True
        assert len(device.handlers["incoming"]) == 1
        assert len(device.handlers["error"]) == 1

    @pytest.mark.asyncio
    async def test_same_identity_is_noop(
        self,
        manager: DeviceSessionManager,
        gateway,
        device_factory,
    ) -> None:
        await manager.start("user-1")
        await manager.start("user-1")

        assert len(gateway.token_requests) == 1
        assert len(device_factory.devices) == 1

    @pytest.mark.asyncio
    async def test_account_change_replaces_device(
        self,
        manager: DeviceSessionManager,
        device_factory,
    ) -> None:
        await manager.start("user-1", "acct-1")
        await manager.start("user-1", "acct-2")

        old, new = device_factory.devices
        assert old.destroyed is True
        assert old.handlers == {"incoming": [], "error": []}
        assert manager.device is new
        assert manager.state is DeviceState.READY

    @pytest.mark.asyncio
    async def test_no_identity(
        self,
        manager: DeviceSessionManager,
        gateway,
    ) -> None:
        await manager.start(None)

        assert manager.state is DeviceState.UNINITIALIZED
        assert gateway.token_requests == []

    @pytest.mark.asyncio
    async def test_stale_initialization_is_discarded(
        self,
        manager: DeviceSessionManager,
        gateway,
        device_factory,
    ) -> None:
        gateway.hold = asyncio.Event()
        first = asyncio.create_task(manager.start("user-1", "acct-1"))
        await asyncio.sleep(0)

        await manager.start("user-1", "acct-2")
        gateway.release()
        await first

        assert len(device_factory.devices) == 1
        assert device_factory.devices[0].token == "token-acct-2"
        assert manager.state is DeviceState.READY
        assert gateway.token_requests == ["acct-1", "acct-2"]

    @pytest.mark.asyncio
    async def test_token_failure(
        self,
        manager: DeviceSessionManager,
        gateway,
        notices,
        device_factory,
    ) -> None:
        gateway.token_error = IncompleteAccountError()

        await manager.start("user-1")

        assert manager.state is DeviceState.FAILED
        assert manager.failure is not None
        assert manager.failure.kind is DeviceFailureKind.NEEDS_SETUP
        assert device_factory.devices == []
        assert notices.errors[-1].startswith("Failed to initialize phone connection:")

    @pytest.mark.asyncio
    async def test_register_failure_releases_device(
        self,
        manager: DeviceSessionManager,
        device_factory,
    ) -> None:
        device_factory.register_errors.append(RuntimeError("websocket closed"))

        await manager.start("user-1")

        assert manager.state is DeviceState.FAILED
        assert manager.failure.kind is DeviceFailureKind.TRANSPORT
        assert manager.device is None
        assert device_factory.devices[0].destroyed is True

    @pytest.mark.asyncio
    async def test_destroy(
        self,
        manager: DeviceSessionManager,
        device_factory,
        call_session: CallSession,
        make_connection,
    ) -> None:
        await manager.start("user-1")
        device = device_factory.devices[0]
        connection = make_connection({"From": "+14155557777"})
        call_session.receive_incoming(connection, "+14155557777")
        call_session.accept_incoming()

        await manager.destroy()

        assert manager.state is DeviceState.DESTROYED
        assert device.destroyed is True
        assert device.handlers == {"incoming": [], "error": []}
        assert call_session.state is CallState.IDLE
        assert connection.disconnected == 1

    @pytest.mark.asyncio
    async def test_new_device_waits_for_previous_teardown(
        self,
        manager: DeviceSessionManager,
        gateway,
        device_factory,
    ) -> None:
        device_factory.destroy_gate = asyncio.Event()
        await manager.start("user-1", "acct-1")

        second = asyncio.create_task(manager.start("user-1", "acct-2"))
        await asyncio.sleep(0)
        third = asyncio.create_task(manager.start("user-1", "acct-3"))
        for _ in range(5):
            await asyncio.sleep(0)

        assert device_factory.alive == ["token-acct-1"]

        device_factory.destroy_gate.set()
        await asyncio.gather(second, third)

        assert device_factory.alive == ["token-acct-3"]
        assert [d.token for d in device_factory.devices] == ["token-acct-1", "token-acct-3"]
        assert manager.state is DeviceState.READY

    @pytest.mark.asyncio
    async def test_start_after_destroy_is_ignored(
        self,
        manager: DeviceSessionManager,
        gateway,
        device_factory,
    ) -> None:
        await manager.start("user-1")
        await manager.destroy()

        await manager.start("user-2")

        assert manager.state is DeviceState.DESTROYED
        assert manager.device is None
        assert gateway.token_requests == [None]
        assert len(device_factory.devices) == 1


class TestIncomingCalls:
    @pytest.mark.asyncio
    async def test_rings_and_prompts_without_microphone(
        self,
        manager: DeviceSessionManager,
        device_factory,
        call_session: CallSession,
        make_connection,
        notices,
    ) -> None:
        await manager.start("user-1")
        connection = make_connection({"From": "+14155557777"})

        device_factory.devices[0].emit("incoming", connection)

        assert call_session.state is CallState.RINGING
        assert call_session.incoming_from == "+14155557777"
        assert connection.accepted == 0
        assert notices.prompts == ["microphone"]
        assert "Microphone access required to accept calls" in notices.errors

    @pytest.mark.asyncio
    async def test_auto_accepts_with_microphone(
        self,
        manager: DeviceSessionManager,
        device_factory,
        call_session: CallSession,
        granted: Permissions,
        make_connection,
    ) -> None:
        await manager.start("user-1")
        connection = make_connection({})

        device_factory.devices[0].emit("incoming", connection)

        assert connection.accepted == 1
        assert call_session.state is CallState.CONNECTED
        assert call_session.counterpart == "Unknown"
        await call_session.hangup()

    @pytest.mark.asyncio
    async def test_caller_hangs_up_while_ringing(
        self,
        manager: DeviceSessionManager,
        device_factory,
        call_session: CallSession,
        make_connection,
    ) -> None:
        await manager.start("user-1")
        device = device_factory.devices[0]
        connection = make_connection({"From": "+14155557777"})
        device.emit("incoming", connection)
        assert call_session.state is CallState.RINGING

        connection.emit("cancel")
        await _settle()

        assert call_session.state is CallState.IDLE
        assert all(not handlers for handlers in connection.handlers.values())

        next_connection = make_connection({"From": "+14155558888"})
        device.emit("incoming", next_connection)

        assert next_connection.rejected == 0
        assert call_session.state is CallState.RINGING
        assert call_session.incoming_from == "+14155558888"

    @pytest.mark.asyncio
    async def test_remote_disconnect_stops_ticker(
        self,
        manager: DeviceSessionManager,
        device_factory,
        call_session: CallSession,
        granted: Permissions,
        make_connection,
        notices,
        clock,
    ) -> None:
        await manager.start("user-1")
        connection = make_connection({"From": "+14155557777"})
        device_factory.devices[0].emit("incoming", connection)
        await clock.advance(2)
        assert call_session.duration == 2

        connection.emit("disconnect")
        await _settle()

        assert call_session.state is CallState.IDLE
        assert call_session.ticker_running is False
        assert notices.infos == ["Call ended (0:02)"]

        await clock.advance(2)
        assert call_session.duration == 0

    @pytest.mark.asyncio
    async def test_late_event_from_finished_call_is_ignored(
        self,
        manager: DeviceSessionManager,
        device_factory,
        call_session: CallSession,
        granted: Permissions,
        make_connection,
    ) -> None:
        await manager.start("user-1")
        device = device_factory.devices[0]
        first = make_connection({"From": "+14155557777"})
        device.emit("incoming", first)
        await call_session.hangup()

        second = make_connection({"From": "+14155558888"})
        device.emit("incoming", second)
        first.emit("disconnect")
        await _settle()

        assert call_session.state is CallState.CONNECTED
        assert call_session.connection is second
        await call_session.hangup()

    @pytest.mark.asyncio
    async def test_device_error_is_reported(
        self,
        manager: DeviceSessionManager,
        device_factory,
        notices,
    ) -> None:
        await manager.start("user-1")

        device_factory.devices[0].emit("error", RuntimeError("ICE failed"))

        assert notices.errors == ["Error with phone connection: ICE failed"]
        assert manager.state is DeviceState.READY


class TestClassifyDeviceFailure:
    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (ApplicationProvisioningFailedError(), DeviceFailureKind.APPLICATION_MISSING),
            (InvalidCredentialsError(), DeviceFailureKind.CREDENTIALS_INVALID),
            (AccountNotFoundError("x"), DeviceFailureKind.NEEDS_SETUP),
            (SessionExpiredError(), DeviceFailureKind.SESSION_EXPIRED),
            (TransportError(), DeviceFailureKind.TRANSPORT),
            (AppException("odd"), DeviceFailureKind.UNKNOWN),
            (OSError("socket"), DeviceFailureKind.TRANSPORT),
        ],
    )
    def test_kinds(self, error: BaseException, kind: DeviceFailureKind) -> None:
        assert classify_device_failure(error).kind is kind
