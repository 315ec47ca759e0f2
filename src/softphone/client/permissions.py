"""
Microphone and audio-output permission state.
"""

from enum import Enum
from typing import Protocol

from softphone.client.notices import NoticeSink
from softphone.shared.logging import get_logger

logger = get_logger(__name__)


class PermissionStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    PENDING = "pending"


class MediaAccessError(Exception):
    """Raised by a media probe when the browser refuses access."""


class MediaProbe(Protocol):
    """Browser media surface."""

    async def acquire_microphone(self) -> None:
        """Open and immediately release a microphone stream.

        Raises:
            MediaAccessError: Access refused or no device.
        """
        ...

    async def play_test_sound(self) -> None:
        """Play a short sound.

        Raises:
            MediaAccessError: Playback refused.
        """
        ...


class Permissions:
    """Cached permission state for the lifetime of one client session."""

    def __init__(self, probe: MediaProbe, notices: NoticeSink) -> None:
        self._probe = probe
        self._notices = notices
        self.microphone = PermissionStatus.PENDING
        self.audio_output = PermissionStatus.PENDING

    @property
    def microphone_granted(self) -> bool:
        return self.microphone is PermissionStatus.GRANTED

    async def check(self) -> None:
        """Re-probe both permissions without notices."""
        try:
            await self._probe.acquire_microphone()
        except MediaAccessError:
            logger.info("Microphone permission not available", exc_info=True)
            self.microphone = PermissionStatus.DENIED
            return
        self.microphone = PermissionStatus.GRANTED

        try:
            await self._probe.play_test_sound()
        except MediaAccessError:
            self.audio_output = PermissionStatus.DENIED
        else:
            self.audio_output = PermissionStatus.GRANTED

    async def request_microphone(self) -> PermissionStatus:
        try:
            await self._probe.acquire_microphone()
        except MediaAccessError:
            self.microphone = PermissionStatus.DENIED
            self._notices.error(
                "Microphone access denied. Please enable it in your browser settings."
            )
        else:
            self.microphone = PermissionStatus.GRANTED
            self._notices.success("Microphone access granted")
        return self.microphone

    async def test_audio_output(self) -> PermissionStatus:
        try:
            await self._probe.play_test_sound()
        except MediaAccessError:
            self.audio_output = PermissionStatus.DENIED
            self._notices.error("Speaker test failed. Please check your browser settings.")
        else:
            self.audio_output = PermissionStatus.GRANTED
            self._notices.success("Speaker test successful")
        return self.audio_output
