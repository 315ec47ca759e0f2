"""
Mock telephony provider adapter for testing and local development.
"""

import logging
from datetime import datetime, timezone

from softphone.telephony.interface import (
    ApplicationCreateError,
    ApplicationRequest,
    CallInitiationError,
    CallStatus,
    MessageSendError,
    NumberLookupError,
    NumberPurchaseError,
    NumberPurchaseRequest,
    OutboundCallRequest,
    OutboundCallResponse,
    OutboundMessageRequest,
    OutboundMessageResponse,
    PhoneNumberInfo,
    ProviderAuthenticationError,
    ProviderCredentials,
    TelephonyProvider,
    TelephonyProviderError,
)

logger = logging.getLogger(__name__)

_OPERATION_ERRORS: dict[str, type[TelephonyProviderError]] = {
    "create_call": CallInitiationError,
    "send_message": MessageSendError,
    "create_application": ApplicationCreateError,
    "list_numbers": NumberLookupError,
    "purchase_number": NumberPurchaseError,
}


class MockTelephonyAdapter(TelephonyProvider):
    """In-memory provider that records every request it receives.

    One instance can stand in for any number of provider accounts: the
    factory binds it to credentials with ``for_credentials``.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._calls: list[OutboundCallRequest] = []
        self._messages: list[OutboundMessageRequest] = []
        self._applications: list[ApplicationRequest] = []
        self._purchases: list[NumberPurchaseRequest] = []
        self._credentials_seen: list[ProviderCredentials] = []
        self._next_id: int = 1
        self._failures: dict[str, tuple[str, str]] = {}
        self._rejected_account_ids: set[str] = set()
        self._current: ProviderCredentials | None = None
        self._default_status: CallStatus = CallStatus.QUEUED
        self._available_numbers: list[str] = ["+14155550101", "+14155550102"]
        self._owned_numbers: list[str] = []

    def for_credentials(self, credentials: ProviderCredentials) -> "MockTelephonyAdapter":
        self._credentials_seen.append(credentials)
        self._current = credentials
        return self

    def configure_failure(
        self,
        operation: str,
        error_message: str = "Mock failure",
        error_code: str = "MOCK_ERROR",
    ) -> None:
        """Make ``operation`` (e.g. ``create_call``) raise its provider error."""
        self._failures[operation] = (error_message, error_code)

    def reject_credentials(self, account_id: str) -> None:
        """Answer every request for ``account_id`` as an authentication failure."""
        self._rejected_account_ids.add(account_id)

    def configure_status(self, status: CallStatus) -> None:
        self._default_status = status

    @property
    def calls(self) -> list[OutboundCallRequest]:
        return self._calls.copy()

    @property
    def messages(self) -> list[OutboundMessageRequest]:
        return self._messages.copy()

    @property
    def applications(self) -> list[ApplicationRequest]:
        return self._applications.copy()

    @property
    def purchases(self) -> list[NumberPurchaseRequest]:
        return self._purchases.copy()

    @property
    def credentials_seen(self) -> list[ProviderCredentials]:
        return self._credentials_seen.copy()

    def get_last_call(self) -> OutboundCallRequest | None:
        return self._calls[-1] if self._calls else None

    def _check(self, operation: str) -> None:
        if self._current is not None and self._current.account_id in self._rejected_account_ids:
            raise ProviderAuthenticationError(
                message="Authenticate",
                error_code="20003",
                provider_response={"code": 20003, "status": 401},
            )
        failure = self._failures.get(operation)
        if failure is not None:
            message, code = failure
            raise _OPERATION_ERRORS[operation](message=message, error_code=code)

    def _next_sid(self, prefix: str) -> str:
        sid = f"{prefix}MOCK{self._next_id:06d}"
        self._next_id += 1
        return sid

    def create_call_sync(self, request: OutboundCallRequest) -> OutboundCallResponse:
        logger.info("Mock: Initiating call", extra={"to": request.to})
        self._check("create_call")
        self._calls.append(request)

        provider_call_id = self._next_sid("CA")
        return OutboundCallResponse(
            provider_call_id=provider_call_id,
            status=self._default_status,
            created_at=datetime.now(timezone.utc),
            raw_response={"mock": True, "sid": provider_call_id},
        )

    def send_message_sync(self, request: OutboundMessageRequest) -> OutboundMessageResponse:
        self._check("send_message")
        self._messages.append(request)
        sid = self._next_sid("SM")
        return OutboundMessageResponse(
            provider_message_id=sid,
            status="queued",
            raw_response={"mock": True, "sid": sid},
        )

    def create_application_sync(self, request: ApplicationRequest) -> str:
        self._check("create_application")
        self._applications.append(request)
        return self._next_sid("AP")

    def list_available_numbers_sync(
        self,
        country_code: str = "US",
        limit: int = 20,
    ) -> list[PhoneNumberInfo]:
        self._check("list_numbers")
        return [
            PhoneNumberInfo(
                phone_number=number,
                friendly_name=number,
                available=True,
                iso_country=country_code,
                capabilities={"voice": True, "sms": True, "mms": False},
            )
            for number in self._available_numbers[:limit]
        ]

    def list_owned_numbers_sync(self, limit: int = 50) -> list[PhoneNumberInfo]:
        self._check("list_numbers")
        return [
            PhoneNumberInfo(phone_number=number, friendly_name=number, available=False)
            for number in self._owned_numbers[:limit]
        ]

    def purchase_number_sync(self, request: NumberPurchaseRequest) -> PhoneNumberInfo:
        self._check("purchase_number")
        self._purchases.append(request)
        self._owned_numbers.append(request.phone_number)
        if request.phone_number in self._available_numbers:
            self._available_numbers.remove(request.phone_number)
        return PhoneNumberInfo(
            phone_number=request.phone_number,
            friendly_name=request.phone_number,
            available=False,
            sid=self._next_sid("PN"),
        )
