"""
Tests for media permission state.
"""

import pytest

from softphone.client.permissions import Permissions, PermissionStatus


class TestPermissions:
    def test_starts_pending(self, permissions: Permissions) -> None:
        assert permissions.microphone is PermissionStatus.PENDING
        assert permissions.audio_output is PermissionStatus.PENDING
        assert permissions.microphone_granted is False

    @pytest.mark.asyncio
    async def test_request_granted(self, permissions: Permissions, notices) -> None:
        assert await permissions.request_microphone() is PermissionStatus.GRANTED
        assert permissions.microphone_granted is True
        assert notices.successes == ["Microphone access granted"]

    @pytest.mark.asyncio
    async def test_request_denied(self, permissions: Permissions, probe, notices) -> None:
        probe.microphone_ok = False

        assert await permissions.request_microphone() is PermissionStatus.DENIED
        assert notices.errors == [
            "Microphone access denied. Please enable it in your browser settings."
        ]

    @pytest.mark.asyncio
    async def test_check_is_silent(self, permissions: Permissions, probe, notices) -> None:
        probe.speaker_ok = False

        await permissions.check()

        assert permissions.microphone is PermissionStatus.GRANTED
        assert permissions.audio_output is PermissionStatus.DENIED
        assert notices.errors == []
        assert notices.successes == []

    @pytest.mark.asyncio
    async def test_check_stops_at_denied_microphone(
        self,
        permissions: Permissions,
        probe,
    ) -> None:
        probe.microphone_ok = False

        await permissions.check()

        assert permissions.microphone is PermissionStatus.DENIED
        assert permissions.audio_output is PermissionStatus.PENDING

    @pytest.mark.asyncio
    async def test_audio_output(self, permissions: Permissions, notices) -> None:
        assert await permissions.test_audio_output() is PermissionStatus.GRANTED
        assert notices.successes == ["Speaker test successful"]
