"""
Telephony provider interface definition.

Adapters implement the ``*_sync`` methods; the async entrypoints delegate to
them in a worker thread.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import anyio

from softphone.shared.exceptions import (
    AppException,
    InvalidCredentialsError,
    ProviderRequestError,
)


class CallStatus(str, Enum):
    """Call status values."""

    QUEUED = "queued"
    INITIATED = "initiated"
    RINGING = "ringing"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BUSY = "busy"
    NO_ANSWER = "no-answer"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass(frozen=True)
class ProviderCredentials:
    """Credentials for one provider account."""

    account_id: str
    secret: str

    def __repr__(self) -> str:
        return f"ProviderCredentials(account_id={self.account_id[:6]}***)"


@dataclass(frozen=True)
class OutboundCallRequest:
    """Request to originate an outbound call."""

    to: str
    from_number: str
    instruction_url: str
    status_callback_url: str | None = None


@dataclass(frozen=True)
class OutboundCallResponse:
    """Response from call origination."""

    provider_call_id: str
    status: CallStatus
    created_at: datetime
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class OutboundMessageRequest:
    """Request to send an SMS."""

    to: str
    from_number: str
    body: str
    status_callback_url: str | None = None


@dataclass(frozen=True)
class OutboundMessageResponse:
    provider_message_id: str
    status: str
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ApplicationRequest:
    """Voice application to register with the provider."""

    friendly_name: str
    voice_url: str
    sms_url: str | None = None


@dataclass(frozen=True)
class PhoneNumberInfo:
    """A phone number, either available for purchase or already owned."""

    phone_number: str
    friendly_name: str
    available: bool
    sid: str | None = None
    locality: str | None = None
    region: str | None = None
    iso_country: str | None = None
    capabilities: dict[str, bool] = field(default_factory=dict)
    date_created: str | None = None


@dataclass(frozen=True)
class NumberPurchaseRequest:
    """Purchase a number and route it either to an application or to a URL."""

    phone_number: str
    application_id: str | None = None
    webhook_url: str | None = None


class TelephonyProviderError(Exception):
    """Base exception for telephony provider errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider_response: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.provider_response = provider_response or {}

    def to_app_exception(self) -> AppException:
        """Application error reported to API callers for this failure."""
        details = {"provider_error": str(self), "provider_error_code": self.error_code}
        return ProviderRequestError(f"Telephony provider error: {self}", details=details)


class ProviderAuthenticationError(TelephonyProviderError):
    """The provider answered 401/403 for these credentials."""

    def to_app_exception(self) -> AppException:
        return InvalidCredentialsError(
            details={"provider_error": str(self), "provider_error_code": self.error_code},
        )


class CallInitiationError(TelephonyProviderError):
    """Error during call initiation."""


class MessageSendError(TelephonyProviderError):
    """Error while sending a message."""


class ApplicationCreateError(TelephonyProviderError):
    """Error while registering a voice application."""


class NumberLookupError(TelephonyProviderError):
    """Error while listing available or owned numbers."""


class NumberPurchaseError(TelephonyProviderError):
    """Error while purchasing a number."""


class TelephonyProvider(ABC):
    """Abstract interface for one provider account's REST API."""

    @abstractmethod
    def create_call_sync(self, request: OutboundCallRequest) -> OutboundCallResponse:
        """Originate an outbound call."""
        ...

    @abstractmethod
    def send_message_sync(self, request: OutboundMessageRequest) -> OutboundMessageResponse:
        """Send an SMS."""
        ...

    @abstractmethod
    def create_application_sync(self, request: ApplicationRequest) -> str:
        """Register a voice application and return its id."""
        ...

    @abstractmethod
    def list_available_numbers_sync(
        self,
        country_code: str = "US",
        limit: int = 20,
    ) -> list[PhoneNumberInfo]:
        ...

    @abstractmethod
    def list_owned_numbers_sync(self, limit: int = 50) -> list[PhoneNumberInfo]:
        ...

    @abstractmethod
    def purchase_number_sync(self, request: NumberPurchaseRequest) -> PhoneNumberInfo:
        ...

    async def create_call(self, request: OutboundCallRequest) -> OutboundCallResponse:
        return await anyio.to_thread.run_sync(self.create_call_sync, request)

    async def send_message(self, request: OutboundMessageRequest) -> OutboundMessageResponse:
        return await anyio.to_thread.run_sync(self.send_message_sync, request)

    async def create_application(self, request: ApplicationRequest) -> str:
        return await anyio.to_thread.run_sync(self.create_application_sync, request)

    async def list_available_numbers(
        self,
        country_code: str = "US",
        limit: int = 20,
    ) -> list[PhoneNumberInfo]:
        return await anyio.to_thread.run_sync(
            self.list_available_numbers_sync, country_code, limit
        )

    async def list_owned_numbers(self, limit: int = 50) -> list[PhoneNumberInfo]:
        return await anyio.to_thread.run_sync(self.list_owned_numbers_sync, limit)

    async def purchase_number(self, request: NumberPurchaseRequest) -> PhoneNumberInfo:
        return await anyio.to_thread.run_sync(self.purchase_number_sync, request)

    def close(self) -> None:
        """Release any transport resources."""
