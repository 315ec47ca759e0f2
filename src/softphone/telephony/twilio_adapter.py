"""
Twilio telephony provider adapter.

One adapter instance talks to one provider account; credentials come from
the credential resolver, not from process configuration.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from softphone.telephony.config import TelephonyConfig, get_telephony_config
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

API_VERSION = "2010-04-01"

TWILIO_STATUS_MAP: dict[str, CallStatus] = {
    "queued": CallStatus.QUEUED,
    "initiated": CallStatus.INITIATED,
    "ringing": CallStatus.RINGING,
    "in-progress": CallStatus.IN_PROGRESS,
    "completed": CallStatus.COMPLETED,
    "busy": CallStatus.BUSY,
    "no-answer": CallStatus.NO_ANSWER,
    "failed": CallStatus.FAILED,
    "canceled": CallStatus.CANCELED,
}


class TwilioAdapter(TelephonyProvider):
    """Twilio REST adapter.

    Uses a sync httpx client; the async entrypoints inherited from
    ``TelephonyProvider`` run these calls in a worker thread.
    """

    def __init__(
        self,
        credentials: ProviderCredentials,
        config: TelephonyConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._credentials = credentials
        self._config = config or get_telephony_config()
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(
                timeout=httpx.Timeout(self._config.request_timeout_seconds)
            )
        return self._http_client

    def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def _get_auth(self) -> tuple[str, str]:
        return (self._credentials.account_id, self._credentials.secret)

    def _get_api_url(self, endpoint: str) -> str:
        base = self._config.api_base_url.rstrip("/")
        return f"{base}/{API_VERSION}/Accounts/{self._credentials.account_id}{endpoint}"

    def _request(
        self,
        method: str,
        endpoint: str,
        error_cls: type[TelephonyProviderError],
        operation: str,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Issue one REST call and decode the JSON body.

        Raises:
            ProviderAuthenticationError: On 401/403.
            error_cls: On any other HTTP or transport failure.
        """
        client = self._get_client()
        try:
            response = client.request(
                method,
                self._get_api_url(endpoint),
                data=data,
                params=params,
                auth=self._get_auth(),
            )
        except httpx.HTTPError as e:
            logger.exception(
                "HTTP error during Twilio request",
                extra={"operation": operation},
            )
            raise error_cls(
                message=f"HTTP error: {e!s}",
                error_code="HTTP_ERROR",
            ) from e

        if response.status_code >= 400:
            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                error_data = {"body": response.text}
            if not isinstance(error_data, dict):
                error_data = {"body": error_data}
            logger.error(
                "Twilio request failed",
                extra={
                    "operation": operation,
                    "status_code": response.status_code,
                    "error": error_data,
                },
            )
            exc_cls = (
                ProviderAuthenticationError
                if response.status_code in (401, 403)
                else error_cls
            )
            raise exc_cls(
                message=error_data.get("message", f"{operation} failed"),
                error_code=str(error_data.get("code", response.status_code)),
                provider_response=error_data,
            )

        return response.json()

    def create_call_sync(self, request: OutboundCallRequest) -> OutboundCallResponse:
        """Originate an outbound call via Twilio (sync)."""
        payload: dict[str, Any] = {
            "To": request.to,
            "From": request.from_number,
            "Url": request.instruction_url,
            "Method": "POST",
        }
        if request.status_callback_url:
            payload["StatusCallback"] = request.status_callback_url
            payload["StatusCallbackMethod"] = "POST"

        logger.info("Initiating Twilio call", extra={"to": request.to})

        data = self._request("POST", "/Calls.json", CallInitiationError, "create_call", data=payload)

        created_at = datetime.now(timezone.utc)
        if data.get("date_created"):
            try:
                created_at = datetime.strptime(
                    data["date_created"], "%a, %d %b %Y %H:%M:%S %z"
                )
            except ValueError:
                pass

        return OutboundCallResponse(
            provider_call_id=data["sid"],
            status=TWILIO_STATUS_MAP.get(data.get("status", ""), CallStatus.QUEUED),
            created_at=created_at,
            raw_response=data,
        )

    def send_message_sync(self, request: OutboundMessageRequest) -> OutboundMessageResponse:
        payload: dict[str, Any] = {
            "To": request.to,
            "From": request.from_number,
            "Body": request.body,
        }
        if request.status_callback_url:
            payload["StatusCallback"] = request.status_callback_url

        logger.info("Sending Twilio message", extra={"to": request.to})

        data = self._request("POST", "/Messages.json", MessageSendError, "send_message", data=payload)
        return OutboundMessageResponse(
            provider_message_id=data["sid"],
            status=data.get("status", "queued"),
            raw_response=data,
        )

    def create_application_sync(self, request: ApplicationRequest) -> str:
        """Register a TwiML application pointing at this service's webhooks."""
        payload: dict[str, Any] = {
            "FriendlyName": request.friendly_name,
            "VoiceUrl": request.voice_url,
            "VoiceMethod": "POST",
        }
        if request.sms_url:
            payload["SmsUrl"] = request.sms_url
            payload["SmsMethod"] = "POST"

        data = self._request(
            "POST",
            "/Applications.json",
            ApplicationCreateError,
            "create_application",
            data=payload,
        )
        return data["sid"]

    def list_available_numbers_sync(
        self,
        country_code: str = "US",
        limit: int = 20,
    ) -> list[PhoneNumberInfo]:
        data = self._request(
            "GET",
            f"/AvailablePhoneNumbers/{country_code}/Local.json",
            NumberLookupError,
            "list_available_numbers",
            params={"PageSize": limit},
        )
        return [
            _number_from_payload(item, available=True)
            for item in data.get("available_phone_numbers", [])[:limit]
        ]

    def list_owned_numbers_sync(self, limit: int = 50) -> list[PhoneNumberInfo]:
        data = self._request(
            "GET",
            "/IncomingPhoneNumbers.json",
            NumberLookupError,
            "list_owned_numbers",
            params={"PageSize": limit},
        )
        return [
            _number_from_payload(item, available=False)
            for item in data.get("incoming_phone_numbers", [])[:limit]
        ]

    def purchase_number_sync(self, request: NumberPurchaseRequest) -> PhoneNumberInfo:
        payload: dict[str, Any] = {"PhoneNumber": request.phone_number}
        if request.application_id:
            payload["VoiceApplicationSid"] = request.application_id
            payload["SmsApplicationSid"] = request.application_id
        elif request.webhook_url:
            payload["VoiceUrl"] = request.webhook_url
            payload["SmsUrl"] = request.webhook_url

        logger.info("Purchasing Twilio number", extra={"phone_number": request.phone_number})

        data = self._request(
            "POST",
            "/IncomingPhoneNumbers.json",
            NumberPurchaseError,
            "purchase_number",
            data=payload,
        )
        return _number_from_payload(data, available=False)


def _number_from_payload(item: dict[str, Any], available: bool) -> PhoneNumberInfo:
    capabilities = {
        str(k).lower(): bool(v) for k, v in (item.get("capabilities") or {}).items()
    }
    return PhoneNumberInfo(
        phone_number=item.get("phone_number", ""),
        friendly_name=item.get("friendly_name", ""),
        available=available,
        sid=item.get("sid"),
        locality=item.get("locality"),
        region=item.get("region"),
        iso_country=item.get("iso_country"),
        capabilities=capabilities,
        date_created=item.get("date_created"),
    )
