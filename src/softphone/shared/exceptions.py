"""
Application exception hierarchy.

Every failure that can reach a user carries a machine-readable ``code`` so
HTTP responses, the client library and notices can tell them apart.
"""

from typing import Any


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


# =============================================================================
# Account setup errors (credential resolution)
# =============================================================================


class SetupError(AppException):
    """Raised when no usable telephony configuration can be assembled.

    The client routes these to the account configuration screen instead of
    retrying.
    """

    needs_setup = True


class NoCredentialsError(SetupError):
    """The owner has no account, no legacy profile and no operator override."""

    def __init__(
        self,
        message: str = "No telephony account configured. Add an account in settings.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "NO_CREDENTIALS", details)


class IncompleteAccountError(SetupError):
    """An account exists but lacks its provider account id or secret."""

    def __init__(
        self,
        message: str = "Telephony account is missing its account SID or auth token.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "INCOMPLETE_ACCOUNT", details)


class AccountNotFoundError(SetupError):
    """An explicitly referenced account does not exist for this owner."""

    def __init__(
        self,
        account_id: Any,
        message: str | None = None,
    ) -> None:
        self.account_id = account_id
        super().__init__(
            message or f"Telephony account not found: {account_id}",
            "ACCOUNT_NOT_FOUND",
            {"account_id": str(account_id)},
        )


class ApplicationProvisioningFailedError(SetupError):
    """Registering a voice application with the provider failed.

    ``details`` carries the provider error and whatever part of the
    credential tuple was already resolved.
    """

    def __init__(
        self,
        message: str = "Could not create a voice application for this account.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "APPLICATION_PROVISIONING_FAILED", details)


# =============================================================================
# Provider / session / device errors
# =============================================================================


class InvalidCredentialsError(AppException):
    """The provider rejected the account credentials."""

    def __init__(
        self,
        message: str = "Telephony provider rejected the account credentials.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "INVALID_CREDENTIALS", details)


class AuthenticationError(AppException):
    """Raised when the caller's identity cannot be established."""

    def __init__(
        self,
        message: str = "Authentication failed",
        code: str = "AUTH_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class SessionExpiredError(AuthenticationError):
    """The identity token is stale; refresh and retry once."""

    def __init__(
        self,
        message: str = "Your session has expired. Please sign in again.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "TOKEN_EXPIRED", details)


class InvalidTokenError(AuthenticationError):
    """The identity token is missing, malformed or wrongly signed."""

    def __init__(
        self,
        message: str = "Invalid token",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "INVALID_TOKEN", details)


class PermissionDeniedError(AppException):
    """Microphone or audio output is not available."""

    def __init__(
        self,
        message: str = "Microphone access is required to make calls",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "PERMISSION_DENIED", details)


class TransportError(AppException):
    """Signaling or HTTP transport failure."""

    def __init__(
        self,
        message: str = "Connection to the phone service failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "TRANSPORT_ERROR", details)


class ValidationError(AppException):
    """Raised when business validation fails (distinct from pydantic ValidationError)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", details)


class NoOriginatingNumberError(AppException):
    """The resolved account has no phone number to call or text from."""

    def __init__(
        self,
        message: str = "No phone number found to call from. Please add a phone number in settings.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "NO_FROM_NUMBER", details)


class CallStateError(AppException):
    """A call operation is not legal in the current call state."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "CALL_STATE", details)


class NotFoundError(AppException):
    """Raised when a requested resource does not exist."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "NOT_FOUND", details)


class ProviderRequestError(AppException):
    """The provider refused or failed a call, message or number request."""

    def __init__(
        self,
        message: str = "The telephony provider could not complete the request.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "PROVIDER_ERROR", details)


def status_code_for(exc: AppException) -> int:
    """HTTP status used when ``exc`` reaches an API response."""
    if isinstance(exc, AuthenticationError):
        return 401
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ProviderRequestError):
        return 502
    if isinstance(exc, TransportError):
        return 503
    return 400


def error_body(exc: AppException) -> dict[str, Any]:
    """JSON error body shared by every API endpoint."""
    body: dict[str, Any] = {"error": exc.message, "code": exc.code}
    if isinstance(exc, SetupError):
        # Setup errors always carry details, even empty ones.
        body["details"] = exc.details
        body["needsSetup"] = True
    elif exc.details:
        body["details"] = exc.details
    return body


_CODE_TO_EXCEPTION: dict[str, type[AppException]] = {
    "NO_CREDENTIALS": NoCredentialsError,
    "INCOMPLETE_ACCOUNT": IncompleteAccountError,
    "APPLICATION_PROVISIONING_FAILED": ApplicationProvisioningFailedError,
    "INVALID_CREDENTIALS": InvalidCredentialsError,
    "TOKEN_EXPIRED": SessionExpiredError,
    "INVALID_TOKEN": InvalidTokenError,
    "PERMISSION_DENIED": PermissionDeniedError,
    "TRANSPORT_ERROR": TransportError,
    "NO_FROM_NUMBER": NoOriginatingNumberError,
    "PROVIDER_ERROR": ProviderRequestError,
}


def exception_from_payload(payload: dict[str, Any], default_message: str) -> AppException:
    """Rebuild a typed exception from a JSON error body produced by this service."""
    code = str(payload.get("code") or "")
    message = str(payload.get("error") or default_message)
    details = payload.get("details")
    if not isinstance(details, dict):
        details = {"detail": details} if details else {}

    if code == "ACCOUNT_NOT_FOUND":
        return AccountNotFoundError(details.get("account_id", "unknown"), message=message)
    if code in ("VALIDATION_ERROR",):
        return ValidationError(message, details)
    if code == "CALL_STATE":
        return CallStateError(message, details)
    if code == "NOT_FOUND":
        return NotFoundError(message, details)

    exc_cls = _CODE_TO_EXCEPTION.get(code)
    if exc_cls is not None:
        return exc_cls(message, details)  # type: ignore[call-arg]
    return AppException(message, code or "APP_ERROR", details)
