"""
Call state machine.

One ``CallSession`` per client holds the in-progress call, its connection
handle and the one-second duration ticker. Every path out of ``CONNECTED``
cancels the ticker.
"""

from __future__ import annotations

import asyncio
import re
from enum import Enum
from typing import Awaitable, Callable, Protocol

from softphone.client.errors import classify_origination_error
from softphone.client.notices import NoticeSink
from softphone.client.permissions import Permissions
from softphone.shared.exceptions import (
    AppException,
    CallStateError,
    PermissionDeniedError,
    ValidationError,
)
from softphone.shared.logging import get_logger

logger = get_logger(__name__)

MIN_DIGITS = 10
TICK_SECONDS = 1.0

_NON_DIGIT = re.compile(r"\D")

Sleep = Callable[[float], Awaitable[None]]


class CallState(str, Enum):
    IDLE = "idle"
    DIALING = "dialing"
    RINGING = "ringing"
    CONNECTED = "connected"


class Connection(Protocol):
    """Signaling connection for one call."""

    def accept(self) -> None: ...

    def reject(self) -> None: ...

    def disconnect(self) -> None: ...

    def mute(self, muted: bool) -> None: ...


class CallPlacer(Protocol):
    async def place_call(self, to: str, account_id: str | None = None) -> str: ...


def format_duration(seconds: int) -> str:
    """``m:ss``."""
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes}:{secs:02d}"


class CallSession:
    """The current call, or the absence of one."""

    def __init__(
        self,
        gateway: CallPlacer,
        permissions: Permissions,
        notices: NoticeSink,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._gateway = gateway
        self._permissions = permissions
        self._notices = notices
        self._sleep = sleep

        self.state = CallState.IDLE
        self.connection: Connection | None = None
        self.counterpart: str | None = None
        self.incoming_from: str | None = None
        self.provider_call_id: str | None = None
        self.duration = 0
        self.muted = False
        self.speaker_on = False

        self._ticker: asyncio.Task[None] | None = None
        self._dial_attempt = 0

    @property
    def is_active(self) -> bool:
        return self.state is CallState.CONNECTED

    @property
    def incoming_pending(self) -> bool:
        return self.state is CallState.RINGING

    @property
    def ticker_running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    async def originate(self, address: str, account_id: str | None = None) -> str:
        """Place an outbound call through the gateway.

        Returns:
            Provider call id.

        Raises:
            CallStateError: Another call is in progress (state is untouched).
            ValidationError: Fewer than ten digits.
            PermissionDeniedError: Microphone not granted; a permission
                request has been made.
            CallOriginationError: The gateway refused the call.
        """
        if self.state is not CallState.IDLE:
            raise CallStateError(
                "A call is already in progress",
                details={"state": self.state.value},
            )

        digits = _NON_DIGIT.sub("", address or "")
        if len(digits) < MIN_DIGITS:
            self._notices.error("Please enter a valid phone number")
            raise ValidationError(
                "Please enter a valid phone number",
                details={"digits": len(digits), "minimum": MIN_DIGITS},
            )

        if not self._permissions.microphone_granted:
            self._notices.error("Microphone access is required to make calls")
            await self._permissions.request_microphone()
            raise PermissionDeniedError()

        self._dial_attempt += 1
        attempt = self._dial_attempt
        self.state = CallState.DIALING
        self.counterpart = address

        try:
            provider_call_id = await self._gateway.place_call(digits, account_id)
        except AppException as e:
            if attempt == self._dial_attempt and self.state is CallState.DIALING:
                self._reset()
            error = classify_origination_error(e)
            logger.warning(
                "Call origination failed",
                extra={"code": error.code, "kind": error.kind.value},
            )
            self._notices.error(error.message)
            raise error from e

        if attempt != self._dial_attempt or self.state is not CallState.DIALING:
            # Hung up while dialing.
            return provider_call_id

        self.provider_call_id = provider_call_id
        self.state = CallState.CONNECTED
        self._start_ticker()
        self._notices.success(f"Calling {address}...")
        return provider_call_id

    def receive_incoming(self, connection: Connection, caller: str) -> bool:
        """Record an incoming call; busy sessions reject it.

        Returns:
            True if the call is now ringing.
        """
        if self.state is not CallState.IDLE:
            logger.info("Rejecting incoming call while busy", extra={"state": self.state.value})
            connection.reject()
            return False

        self.state = CallState.RINGING
        self.connection = connection
        self.incoming_from = caller
        return True

    def accept_incoming(self) -> None:
        if self.state is not CallState.RINGING or self.connection is None:
            raise CallStateError(
                "No incoming call to accept",
                details={"state": self.state.value},
            )
        self.connection.accept()
        self.counterpart = self.incoming_from
        self.incoming_from = None
        self.state = CallState.CONNECTED
        self._start_ticker()

    def reject_incoming(self) -> None:
        if self.state is not CallState.RINGING or self.connection is None:
            raise CallStateError(
                "No incoming call to reject",
                details={"state": self.state.value},
            )
        self.connection.reject()
        self._reset()

    async def hangup(self) -> None:
        """End the call from this side."""
        if self.state is CallState.IDLE:
            raise CallStateError("No call to hang up", details={"state": self.state.value})
        if self.connection is not None:
            self.connection.disconnect()
        await self._end()

    async def remote_disconnected(self) -> None:
        """The far end or the provider ended the call."""
        if self.state is CallState.IDLE:
            return
        await self._end()

    async def teardown(self) -> None:
        """Device is going away: end any call and stop the ticker."""
        if self.state is CallState.IDLE:
            await self._stop_ticker()
            return
        await self.hangup()

    def toggle_mute(self) -> bool:
        self._require_connected("mute")
        self.muted = not self.muted
        if self.connection is not None:
            self.connection.mute(self.muted)
        return self.muted

    def toggle_speaker(self) -> bool:
        """Output routing only; the connection is not told."""
        self._require_connected("toggle the speaker")
        self.speaker_on = not self.speaker_on
        return self.speaker_on

    async def _end(self) -> None:
        await self._stop_ticker()
        duration = self.duration
        self._reset()
        self._notices.info(f"Call ended ({format_duration(duration)})")

    def _reset(self) -> None:
        self.state = CallState.IDLE
        self.connection = None
        self.counterpart = None
        self.incoming_from = None
        self.provider_call_id = None
        self.duration = 0
        self.muted = False
        self.speaker_on = False

    def _require_connected(self, action: str) -> None:
        if self.state is not CallState.CONNECTED:
            raise CallStateError(
                f"Cannot {action} without an active call",
                details={"state": self.state.value},
            )

    def _start_ticker(self) -> None:
        self.duration = 0
        if self._ticker is not None:
            self._ticker.cancel()
        self._ticker = asyncio.get_running_loop().create_task(self._tick())

    async def _tick(self) -> None:
        while True:
            await self._sleep(TICK_SECONDS)
            if self.state is not CallState.CONNECTED:
                return
            self.duration += 1

    async def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is None or ticker.done():
            return
        ticker.cancel()
        try:
            await ticker
        except asyncio.CancelledError:
            pass
