"""
Device session manager.

Owns the single signaling device for one client: fetches a token, builds
and registers the device, routes incoming calls into the ``CallSession``
and releases everything on identity change or teardown.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Callable, Mapping, Protocol

from softphone.client.api_client import IssuedToken
from softphone.client.call_session import CallSession, Connection
from softphone.client.errors import DeviceFailure, classify_device_failure
from softphone.client.notices import NoticeSink
from softphone.client.permissions import Permissions
from softphone.shared.exceptions import AppException
from softphone.shared.logging import get_logger

logger = get_logger(__name__)

INCOMING_EVENT = "incoming"
ERROR_EVENT = "error"

# Connection events after which the provider has ended the call.
CALL_END_EVENTS = ("cancel", "disconnect", "reject")


class DeviceState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"
    DESTROYED = "destroyed"


class IncomingConnection(Connection, Protocol):
    @property
    def parameters(self) -> Mapping[str, str]: ...

    def on(self, event: str, handler: Callable[..., Any]) -> None: ...

    def remove_listener(self, event: str, handler: Callable[..., Any]) -> None: ...


class SignalingDevice(Protocol):
    """Provider signaling device (an external library object)."""

    def on(self, event: str, handler: Callable[..., Any]) -> None: ...

    def remove_listener(self, event: str, handler: Callable[..., Any]) -> None: ...

    async def register(self) -> None: ...

    async def destroy(self) -> None: ...


class TokenSource(Protocol):
    async def fetch_token(self, account_id: str | None = None) -> IssuedToken: ...


DeviceFactory = Callable[[str], SignalingDevice]


class DeviceSessionManager:
    """Lifecycle of the one signaling device of a client session.

    ``start`` may be called again at any time (new identity, new account);
    each call supersedes any initialization still in flight, whose result
    is then discarded.
    """

    def __init__(
        self,
        gateway: TokenSource,
        device_factory: DeviceFactory,
        call_session: CallSession,
        permissions: Permissions,
        notices: NoticeSink,
    ) -> None:
        self._gateway = gateway
        self._device_factory = device_factory
        self._call_session = call_session
        self._permissions = permissions
        self._notices = notices

        self.state = DeviceState.UNINITIALIZED
        self.failure: DeviceFailure | None = None
        self._device: SignalingDevice | None = None
        self._identity: str | None = None
        self._account_id: str | None = None
        self._generation = 0
        self._teardowns: set[asyncio.Task[None]] = set()
        self._call_tasks: set[asyncio.Task[None]] = set()

    @property
    def device(self) -> SignalingDevice | None:
        return self._device

    async def start(self, identity: str | None, account_id: str | None = None) -> None:
        """(Re)initialize for ``identity`` and the selected account.

        A ready or failed session for the same identity and account is left
        as is. A destroyed session stays destroyed.
        """
        if self.state is DeviceState.DESTROYED:
            logger.info("Ignoring start on a destroyed device session")
            return
        if (
            self.state in (DeviceState.READY, DeviceState.FAILED)
            and identity == self._identity
            and account_id == self._account_id
        ):
            return

        self._generation += 1
        generation = self._generation

        if self._device is not None:
            await self._call_session.teardown()
        await self._release_device()
        if generation != self._generation:
            return
        self._identity = identity
        self._account_id = account_id
        self.failure = None

        if not identity:
            self.state = DeviceState.UNINITIALIZED
            return

        self.state = DeviceState.INITIALIZING
        try:
            issued = await self._gateway.fetch_token(account_id)
        except AppException as e:
            if generation == self._generation:
                self._fail(e)
            return

        # A device released by a superseded start may still be shutting down.
        await self._wait_for_teardowns()
        if generation != self._generation:
            logger.info("Discarding stale device initialization")
            return

        device = self._device_factory(issued.token)
        device.on(INCOMING_EVENT, self._on_incoming)
        device.on(ERROR_EVENT, self._on_error)
        self._device = device
        try:
            await device.register()
        except Exception as e:
            if self._device is device:
                await self._release_device()
            if generation == self._generation:
                self._fail(e)
            return

        if generation != self._generation:
            if self._device is device:
                await self._release_device()
            return

        self.state = DeviceState.READY
        logger.info("Signaling device registered")

    async def destroy(self) -> None:
        """Tear down the device; later ``start`` calls are ignored."""
        self._generation += 1
        self.state = DeviceState.DESTROYED
        await self._call_session.teardown()
        await self._release_device()
        await self._wait_for_teardowns()

    def _on_incoming(self, connection: IncomingConnection) -> None:
        if self.state is not DeviceState.READY:
            connection.reject()
            return

        caller = connection.parameters.get("From") or "Unknown"
        if not self._call_session.receive_incoming(connection, caller):
            return
        self._follow_connection(connection)

        if self._permissions.microphone_granted:
            self._call_session.accept_incoming()
            logger.info("Incoming call auto-accepted")
            return

        self._notices.prompt_permission("microphone")
        self._notices.error("Microphone access required to accept calls")

    def _follow_connection(self, connection: IncomingConnection) -> None:
        """End the call in the ``CallSession`` when the provider ends it."""

        def _ended(*_: Any) -> None:
            for event in CALL_END_EVENTS:
                connection.remove_listener(event, _ended)
            if self._call_session.connection is not connection:
                return
            logger.info("Call ended by the provider")
            task = asyncio.get_running_loop().create_task(
                self._call_session.remote_disconnected()
            )
            self._call_tasks.add(task)
            task.add_done_callback(self._call_tasks.discard)

        for event in CALL_END_EVENTS:
            connection.on(event, _ended)

    def _on_error(self, error: Any) -> None:
        message = getattr(error, "message", None) or str(error)
        logger.warning("Signaling device error", extra={"error": message})
        self._notices.error(f"Error with phone connection: {message}")

    def _fail(self, exc: BaseException) -> None:
        self.failure = classify_device_failure(exc)
        self.state = DeviceState.FAILED
        logger.warning(
            "Device initialization failed",
            extra={"kind": self.failure.kind.value, "code": self.failure.code},
        )
        self._notices.error(f"Failed to initialize phone connection: {self.failure.message}")

    async def _release_device(self) -> None:
        device, self._device = self._device, None
        if device is None:
            return
        device.remove_listener(INCOMING_EVENT, self._on_incoming)
        device.remove_listener(ERROR_EVENT, self._on_error)
        teardown = asyncio.get_running_loop().create_task(device.destroy())
        self._teardowns.add(teardown)
        teardown.add_done_callback(self._teardowns.discard)
        await teardown

    async def _wait_for_teardowns(self) -> None:
        pending = [task for task in self._teardowns if not task.done()]
        while pending:
            await asyncio.wait(pending)
            pending = [task for task in self._teardowns if not task.done()]
