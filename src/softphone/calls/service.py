"""
Call invocation service.

Resolves credentials, asks the provider to place the call, then records a
contact and a history row. The recording is best effort: once the provider
has accepted the call, a failed write is logged and the call still succeeds.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from softphone.contacts.models import ContactType
from softphone.contacts.repository import ContactRepository
from softphone.credentials.models import ResolvedCredentials
from softphone.credentials.resolver import CredentialResolver, get_credential_resolver
from softphone.history.models import Direction
from softphone.history.repository import CallHistoryRepository
from softphone.shared.database import best_effort, get_db_session
from softphone.shared.exceptions import NoOriginatingNumberError, ValidationError
from softphone.shared.logging import get_logger, mask
from softphone.telephony.config import TelephonyConfig, get_telephony_config
from softphone.telephony.factory import ProviderFactory, get_provider_factory
from softphone.telephony.interface import OutboundCallRequest, TelephonyProviderError

logger = get_logger(__name__)

INITIATED_STATUS = "initiated"

_NON_DIGIT = re.compile(r"\D")


def digit_count(address: str) -> int:
    return len(_NON_DIGIT.sub("", address or ""))


def require_from_number(credentials: ResolvedCredentials) -> str:
    if not credentials.from_number:
        raise NoOriginatingNumberError(
            details={
                "source": credentials.source.value,
                "source_account_id": (
                    str(credentials.source_account_id)
                    if credentials.source_account_id
                    else None
                ),
            }
        )
    return credentials.from_number


@dataclass(frozen=True)
class PlacedCall:
    provider_call_id: str
    status: str


class CallInvocationService:
    """Place outbound calls on behalf of an owner."""

    def __init__(
        self,
        session: AsyncSession,
        resolver: CredentialResolver,
        provider_factory: ProviderFactory,
        config: TelephonyConfig,
    ) -> None:
        self._session = session
        self._resolver = resolver
        self._provider_factory = provider_factory
        self._config = config
        self._contacts = ContactRepository(session)
        self._history = CallHistoryRepository(session)

    async def place_call(
        self,
        owner_id: UUID,
        to: str,
        account_ref: str | None = None,
    ) -> PlacedCall:
        """Originate a call to ``to``.

        The provider is pointed at this service's own instruction endpoint.

        Raises:
            ValidationError: ``to`` is empty.
            SetupError: From the credential resolver.
            NoOriginatingNumberError: The resolved account has no phone number.
            InvalidCredentialsError: The provider rejected the credentials.
            ProviderRequestError: The provider refused the call.
        """
        to = (to or "").strip()
        if not to:
            raise ValidationError("Missing required parameter: to", details={"field": "to"})

        credentials = await self._resolver.resolve(owner_id, account_ref)
        from_number = require_from_number(credentials)

        request = OutboundCallRequest(
            to=to,
            from_number=from_number,
            instruction_url=self._config.voice_instructions_url,
            status_callback_url=self._config.get_webhook_url(),
        )
        provider = self._provider_factory(credentials.provider_credentials)
        try:
            response = await provider.create_call(request)
        except TelephonyProviderError as e:
            logger.error(
                "Outbound call failed",
                extra={
                    "owner_id": str(owner_id),
                    "provider_account_id": mask(credentials.provider_account_id),
                    "error_code": e.error_code,
                },
            )
            raise e.to_app_exception() from e
        finally:
            provider.close()

        logger.info(
            "Outbound call placed",
            extra={
                "owner_id": str(owner_id),
                "provider_call_id": response.provider_call_id,
                "source": credentials.source.value,
            },
        )
        await self._record(owner_id, to, response.provider_call_id, credentials)
        return PlacedCall(
            provider_call_id=response.provider_call_id,
            status=response.status.value,
        )

    async def _record(
        self,
        owner_id: UUID,
        to: str,
        provider_call_id: str,
        credentials: ResolvedCredentials,
    ) -> None:
        ids = {"owner_id": str(owner_id), "provider_call_id": provider_call_id}
        async with best_effort(
            self._session, logger, "Failed to upsert contact for outbound call", **ids
        ):
            await self._contacts.upsert(owner_id, to, ContactType.CALL)

        async with best_effort(
            self._session, logger, "Failed to record outbound call history", **ids
        ):
            await self._history.record(
                owner_id=owner_id,
                phone_number=to,
                direction=Direction.OUTBOUND,
                status=INITIATED_STATUS,
                provider_call_id=provider_call_id,
                provider_account_id=credentials.provider_account_id,
            )


def get_call_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    resolver: Annotated[CredentialResolver, Depends(get_credential_resolver)],
    provider_factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> CallInvocationService:
    return CallInvocationService(session, resolver, provider_factory, config)
