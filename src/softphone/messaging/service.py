"""
Message sending service, the SMS twin of call invocation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from softphone.calls.service import require_from_number
from softphone.contacts.models import ContactType
from softphone.contacts.repository import ContactRepository
from softphone.credentials.resolver import CredentialResolver, get_credential_resolver
from softphone.history.models import Direction
from softphone.history.repository import MessageHistoryRepository
from softphone.shared.database import best_effort, get_db_session
from softphone.shared.exceptions import ValidationError
from softphone.shared.logging import get_logger, mask
from softphone.telephony.config import TelephonyConfig, get_telephony_config
from softphone.telephony.factory import ProviderFactory, get_provider_factory
from softphone.telephony.interface import OutboundMessageRequest, TelephonyProviderError

logger = get_logger(__name__)

MAX_BODY_LENGTH = 1600


@dataclass(frozen=True)
class SentMessage:
    provider_message_id: str
    status: str


class MessagingService:
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
        self._history = MessageHistoryRepository(session)

    async def send_message(
        self,
        owner_id: UUID,
        to: str,
        body: str,
        account_ref: str | None = None,
    ) -> SentMessage:
        to = (to or "").strip()
        body = body or ""
        if not to or not body.strip():
            raise ValidationError(
                "Missing required parameters: to and message",
                details={"to": bool(to), "message": bool(body.strip())},
            )
        if len(body) > MAX_BODY_LENGTH:
            raise ValidationError(
                f"Message is longer than {MAX_BODY_LENGTH} characters",
                details={"length": len(body)},
            )

        credentials = await self._resolver.resolve(owner_id, account_ref)
        from_number = require_from_number(credentials)

        provider = self._provider_factory(credentials.provider_credentials)
        try:
            response = await provider.send_message(
                OutboundMessageRequest(
                    to=to,
                    from_number=from_number,
                    body=body,
                    status_callback_url=self._config.get_webhook_url(),
                )
            )
        except TelephonyProviderError as e:
            logger.error(
                "Outbound message failed",
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
            "Outbound message sent",
            extra={"owner_id": str(owner_id), "provider_message_id": response.provider_message_id},
        )

        async with best_effort(
            self._session,
            logger,
            "Failed to record outbound message",
            owner_id=str(owner_id),
            provider_message_id=response.provider_message_id,
        ):
            await self._contacts.upsert(owner_id, to, ContactType.MESSAGE)
            await self._history.record(
                owner_id=owner_id,
                phone_number=to,
                direction=Direction.OUTBOUND,
                body=body,
                provider_message_id=response.provider_message_id,
                provider_account_id=credentials.provider_account_id,
            )

        return SentMessage(
            provider_message_id=response.provider_message_id,
            status=response.status,
        )


def get_messaging_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    resolver: Annotated[CredentialResolver, Depends(get_credential_resolver)],
    provider_factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> MessagingService:
    return MessagingService(session, resolver, provider_factory, config)
