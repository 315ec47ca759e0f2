"""
HTTP client for the gateway's token, call and message endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from softphone.shared.exceptions import (
    AuthenticationError,
    TransportError,
    exception_from_payload,
)
from softphone.shared.logging import get_logger

logger = get_logger(__name__)

TOKEN_EXPIRED = "TOKEN_EXPIRED"


class SessionProvider(Protocol):
    """Source of the caller's bearer identity."""

    async def access_token(self) -> str | None: ...

    async def refresh(self) -> str | None:
        """Refresh the session and return the new access token."""
        ...


@dataclass(frozen=True)
class IssuedToken:
    token: str
    ttl_seconds: int


class GatewayClient:
    """Async client for the gateway API.

    A 401 carrying ``TOKEN_EXPIRED`` refreshes the session once and retries
    the request once; any further failure is raised.
    """

    def __init__(
        self,
        base_url: str,
        session: SessionProvider,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._session = session
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def fetch_token(self, account_id: str | None = None) -> IssuedToken:
        data = await self._post("/api/token", {"accountId": account_id} if account_id else {})
        try:
            return IssuedToken(token=str(data["token"]), ttl_seconds=int(data["ttlSeconds"]))
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError("Malformed token response", details={"keys": sorted(data)}) from e

    async def place_call(self, to: str, account_id: str | None = None) -> str:
        """Ask the gateway to originate a call; returns the provider call id."""
        body: dict[str, Any] = {"to": to}
        if account_id:
            body["accountId"] = account_id
        data = await self._post("/api/calls", body, envelope=True)
        return str(data.get("providerCallId", ""))

    async def send_message(
        self,
        to: str,
        message: str,
        account_id: str | None = None,
    ) -> str:
        body: dict[str, Any] = {"to": to, "message": message}
        if account_id:
            body["accountId"] = account_id
        data = await self._post("/api/messages", body, envelope=True)
        return str(data.get("providerMessageId", ""))

    async def _post(
        self,
        path: str,
        body: dict[str, Any],
        envelope: bool = False,
    ) -> dict[str, Any]:
        access_token = await self._session.access_token()
        if not access_token:
            raise AuthenticationError("No authorization header", code="MISSING_CREDENTIALS")

        response = await self._send(path, body, access_token)
        if response.status_code == 401 and _error_code(response) == TOKEN_EXPIRED:
            logger.info("Session expired; refreshing once", extra={"path": path})
            access_token = await self._session.refresh()
            if not access_token:
                raise exception_from_payload(_json(response), "Your session has expired.")
            response = await self._send(path, body, access_token)

        data = _json(response)
        if response.is_error or (envelope and data.get("success") is False):
            raise exception_from_payload(data, f"Request to {path} failed")
        return data

    async def _send(self, path: str, body: dict[str, Any], access_token: str) -> httpx.Response:
        try:
            return await self._client.post(
                path,
                json=body,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            logger.warning("Gateway request failed", extra={"path": path, "error": str(e)})
            raise TransportError(f"Failed to connect to the phone service: {e}") from e


def _json(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        return data
    if response.is_error:
        return {"error": response.text or response.reason_phrase}
    raise TransportError("Unexpected response from the phone service")


def _error_code(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    return data.get("code") if isinstance(data, dict) else None

