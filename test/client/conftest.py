"""
Fakes for the client runtime: gateway, media probe, notices, signaling.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from softphone.client.api_client import IssuedToken
from softphone.client.call_session import CallSession
from softphone.client.permissions import MediaAccessError, Permissions, PermissionStatus
from softphone.shared.exceptions import AppException


class StepClock:
    """Sleep replacement that only returns when the test advances it."""

    def __init__(self) -> None:
        self._permits: asyncio.Queue[None] = asyncio.Queue()

    async def sleep(self, seconds: float) -> None:
        await self._permits.get()

    async def advance(self, ticks: int = 1) -> None:
        for _ in range(ticks):
            self._permits.put_nowait(None)
            for _ in range(5):
                await asyncio.sleep(0)


class RecordingNotices:
    def __init__(self) -> None:
        self.infos: list[str] = []
        self.successes: list[str] = []
        self.errors: list[str] = []
        self.prompts: list[str] = []

    def info(self, message: str) -> None:
        self.infos.append(message)

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def prompt_permission(self, permission: str) -> None:
        self.prompts.append(permission)


class FakeProbe:
    def __init__(self) -> None:
        self.microphone_ok = True
        self.speaker_ok = True
        self.microphone_requests = 0

    async def acquire_microphone(self) -> None:
        self.microphone_requests += 1
        if not self.microphone_ok:
            raise MediaAccessError("NotAllowedError")

    async def play_test_sound(self) -> None:
        if not self.speaker_ok:
            raise MediaAccessError("NotAllowedError")


class FakeConnection:
    def __init__(self, parameters: dict[str, str] | None = None) -> None:
        self.parameters = parameters or {}
        self.accepted = 0
        self.rejected = 0
        self.disconnected = 0
        self.mute_calls: list[bool] = []
        self.handlers: dict[str, list[Callable[..., Any]]] = {}

    def accept(self) -> None:
        self.accepted += 1

    def reject(self) -> None:
        self.rejected += 1

    def disconnect(self) -> None:
        self.disconnected += 1

    def mute(self, muted: bool) -> None:
        self.mute_calls.append(muted)

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers[event].remove(handler)

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self.handlers.get(event, [])):
            handler(*args)


class FakeGateway:
    """Stands in for ``GatewayClient``.

    ``hold`` makes the next request wait until ``release`` is called.
    """

    def __init__(self) -> None:
        self.placed: list[tuple[str, str | None]] = []
        self.token_requests: list[str | None] = []
        self.call_error: AppException | None = None
        self.token_error: AppException | None = None
        self.hold: asyncio.Event | None = None
        self._taken_hold: asyncio.Event | None = None

    def release(self) -> None:
        if self.hold is not None:
            self.hold.set()
        if self._taken_hold is not None:
            self._taken_hold.set()

    async def place_call(self, to: str, account_id: str | None = None) -> str:
        self.placed.append((to, account_id))
        if self.hold is not None:
            await self.hold.wait()
        if self.call_error is not None:
            raise self.call_error
        return f"CA{len(self.placed):04d}"

    async def fetch_token(self, account_id: str | None = None) -> IssuedToken:
        self.token_requests.append(account_id)
        hold = self.hold
        if hold is not None:
            self.hold = None
            self._taken_hold = hold
            await hold.wait()
        if self.token_error is not None:
            raise self.token_error
        return IssuedToken(token=f"token-{account_id or 'default'}", ttl_seconds=3600)


class FakeDevice:
    def __init__(self, token: str) -> None:
        self.token = token
        self.handlers: dict[str, list[Callable[..., Any]]] = {}
        self.registered = False
        self.destroyed = False
        self.register_error: Exception | None = None
        self.destroy_gate: asyncio.Event | None = None

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable[..., Any]) -> None:
        self.handlers[event].remove(handler)

    async def register(self) -> None:
        if self.register_error is not None:
            raise self.register_error
        self.registered = True

    async def destroy(self) -> None:
        if self.destroy_gate is not None:
            await self.destroy_gate.wait()
        self.destroyed = True

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self.handlers.get(event, [])):
            handler(*args)


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def notices() -> RecordingNotices:
    return RecordingNotices()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def permissions(probe: FakeProbe, notices: RecordingNotices) -> Permissions:
    return Permissions(probe, notices)


@pytest.fixture
def granted(permissions: Permissions) -> Permissions:
    permissions.microphone = PermissionStatus.GRANTED
    return permissions


@pytest.fixture
def call_session(
    gateway: FakeGateway,
    permissions: Permissions,
    notices: RecordingNotices,
    clock: StepClock,
) -> CallSession:
    return CallSession(gateway, permissions, notices, sleep=clock.sleep)


class DeviceFactory:
    """Builds ``FakeDevice``s and keeps every one it built.

    Devices built while ``destroy_gate`` is set only finish ``destroy`` once
    the gate opens.
    """

    def __init__(self) -> None:
        self.devices: list[FakeDevice] = []
        self.register_errors: list[Exception] = []
        self.destroy_gate: asyncio.Event | None = None

    @property
    def alive(self) -> list[str]:
        return [device.token for device in self.devices if not device.destroyed]

    def __call__(self, token: str) -> FakeDevice:
        device = FakeDevice(token)
        device.destroy_gate = self.destroy_gate
        if self.register_errors:
            device.register_error = self.register_errors.pop(0)
        self.devices.append(device)
        return device


@pytest.fixture
def make_connection() -> Callable[..., FakeConnection]:
    return FakeConnection


@pytest.fixture
def device_factory() -> DeviceFactory:
    return DeviceFactory()
