"""
Client-side error classification.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from softphone.shared.exceptions import (
    AppException,
    ApplicationProvisioningFailedError,
    AuthenticationError,
    InvalidCredentialsError,
    NoOriginatingNumberError,
    SetupError,
    TransportError,
)


class OriginationErrorKind(str, Enum):
    CREDENTIALS = "credentials"
    SESSION_EXPIRED = "session_expired"
    UNKNOWN = "unknown"


REMEDIES: dict[OriginationErrorKind, str] = {
    OriginationErrorKind.CREDENTIALS: (
        "Telephony credentials are missing or invalid. Please check your account settings."
    ),
    OriginationErrorKind.SESSION_EXPIRED: "Your session has expired. Please sign in again.",
    OriginationErrorKind.UNKNOWN: "Please try again in a moment.",
}


class CallOriginationError(AppException):
    """An outbound call could not be started.

    ``kind`` selects the remedy shown to the user; ``code`` keeps the
    underlying error code.
    """

    def __init__(
        self,
        kind: OriginationErrorKind,
        message: str,
        code: str = "CALL_ORIGINATION_FAILED",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)
        self.kind = kind

    @property
    def remedy(self) -> str:
        return REMEDIES[self.kind]


def classify_origination_error(exc: AppException) -> CallOriginationError:
    if isinstance(exc, (SetupError, InvalidCredentialsError, NoOriginatingNumberError)):
        kind = OriginationErrorKind.CREDENTIALS
    elif isinstance(exc, AuthenticationError):
        kind = OriginationErrorKind.SESSION_EXPIRED
    else:
        kind = OriginationErrorKind.UNKNOWN
    return CallOriginationError(kind, exc.message, code=exc.code, details=exc.details)


class DeviceFailureKind(str, Enum):
    """Why device initialization failed, i.e. where to send the user."""

    APPLICATION_MISSING = "application_missing"
    CREDENTIALS_INVALID = "credentials_invalid"
    NEEDS_SETUP = "needs_setup"
    SESSION_EXPIRED = "session_expired"
    TRANSPORT = "transport"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DeviceFailure:
    kind: DeviceFailureKind
    message: str
    code: str | None = None


def classify_device_failure(exc: BaseException) -> DeviceFailure:
    """Map a token or registration failure onto a remediation route."""
    if isinstance(exc, ApplicationProvisioningFailedError):
        kind = DeviceFailureKind.APPLICATION_MISSING
    elif isinstance(exc, InvalidCredentialsError):
        kind = DeviceFailureKind.CREDENTIALS_INVALID
    elif isinstance(exc, SetupError):
        kind = DeviceFailureKind.NEEDS_SETUP
    elif isinstance(exc, AuthenticationError):
        kind = DeviceFailureKind.SESSION_EXPIRED
    elif isinstance(exc, TransportError):
        kind = DeviceFailureKind.TRANSPORT
    elif isinstance(exc, AppException):
        kind = DeviceFailureKind.UNKNOWN
    else:
        # Registration failures come from the signaling library itself.
        kind = DeviceFailureKind.TRANSPORT

    code = exc.code if isinstance(exc, AppException) else None
    message = exc.message if isinstance(exc, AppException) else str(exc) or type(exc).__name__
    return DeviceFailure(kind=kind, message=message, code=code)
