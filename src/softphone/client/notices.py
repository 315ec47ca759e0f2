"""
User-visible notices.
"""

from typing import Protocol

from softphone.shared.logging import get_logger

logger = get_logger(__name__)


class NoticeSink(Protocol):
    """Where short user-facing messages go (toasts, status bar, ...)."""

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def prompt_permission(self, permission: str) -> None:
        """Ask the user to grant ``permission`` (e.g. ``"microphone"``)."""
        ...


class LoggingNoticeSink:
    """Notice sink that only logs; the default when no UI is attached."""

    def info(self, message: str) -> None:
        logger.info(message, extra={"notice": "info"})

    def success(self, message: str) -> None:
        logger.info(message, extra={"notice": "success"})

    def error(self, message: str) -> None:
        logger.warning(message, extra={"notice": "error"})

    def prompt_permission(self, permission: str) -> None:
        logger.warning("Permission required", extra={"notice": "prompt", "permission": permission})
