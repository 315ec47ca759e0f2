"""
Webhook ingestion: attribute provider events to owners and record them.
"""

from __future__ import annotations

from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from softphone.accounts.repository import AccountRepository, ProfileRepository
from softphone.contacts.models import ContactType
from softphone.contacts.repository import ContactRepository
from softphone.history.models import Direction
from softphone.history.repository import CallHistoryRepository, MessageHistoryRepository
from softphone.shared.database import best_effort
from softphone.shared.logging import get_logger, mask
from softphone.telephony import twiml
from softphone.telephony.config import TelephonyConfig
from softphone.telephony.webhooks.events import (
    InboundEvent,
    InboundEventKind,
    parse_inbound_event,
)

logger = get_logger(__name__)

DEFAULT_CALL_STATUS = "ringing"


class WebhookIngestor:
    """Record inbound events for every matching owner and build the reply.

    Never raises: the provider always gets an acknowledgement, and
    internal failures are only logged.
    """

    def __init__(self, session: AsyncSession, config: TelephonyConfig) -> None:
        self._session = session
        self._config = config
        self._accounts = AccountRepository(session)
        self._profiles = ProfileRepository(session)
        self._contacts = ContactRepository(session)
        self._calls = CallHistoryRepository(session)
        self._messages = MessageHistoryRepository(session)

    async def ingest(self, payload: Mapping[str, Any]) -> str:
        """Ingest one provider payload and return the TwiML acknowledgement."""
        event = parse_inbound_event(payload)
        log_extra = {
            "event_kind": event.kind.value,
            "correlation": event.correlation_id,
            "provider_account_id": mask(event.provider_account_id),
        }

        if event.kind == InboundEventKind.UNKNOWN:
            logger.warning("Unclassifiable webhook payload", extra=log_extra)
            return twiml.empty_response()
        if not event.provider_account_id or not event.from_number:
            logger.warning("Webhook missing AccountSid or From", extra=log_extra)
            return twiml.empty_response()

        try:
            owner_ids = await self.find_owners(event.provider_account_id)
        except Exception:
            logger.exception("Owner lookup failed", extra=log_extra)
            await self._session.rollback()
            return twiml.empty_response()

        if not owner_ids:
            logger.warning("Webhook matched no owner", extra=log_extra)
            return twiml.empty_response()
        if len(owner_ids) > 1:
            logger.warning(
                "Provider account id shared by several owners; fanning out",
                extra={**log_extra, "owner_count": len(owner_ids)},
            )

        recorded = 0
        for owner_id in owner_ids:
            if await self._record_for_owner(owner_id, event):
                recorded += 1

        logger.info(
            "Webhook ingested",
            extra={**log_extra, "owners": len(owner_ids), "recorded": recorded},
        )
        return self._acknowledgement(event)

    async def find_owners(self, provider_account_id: str) -> list[UUID]:
        """Owners with this provider account id on an account row or legacy profile."""
        owners: list[UUID] = []
        for owner_id in (
            *await self._accounts.find_owner_ids_by_provider_account_id(provider_account_id),
            *await self._profiles.find_owner_ids_by_provider_account_id(provider_account_id),
        ):
            if owner_id not in owners:
                owners.append(owner_id)
        return owners

    async def _record_for_owner(self, owner_id: UUID, event: InboundEvent) -> bool:
        recorded = False
        async with best_effort(
            self._session,
            logger,
            "Failed to record webhook event for owner",
            owner_id=str(owner_id),
            correlation=event.correlation_id,
        ):
            if event.kind == InboundEventKind.CALL:
                await self._contacts.upsert(owner_id, event.from_number, ContactType.CALL)
                await self._calls.record(
                    owner_id=owner_id,
                    phone_number=event.from_number,
                    direction=Direction.INBOUND,
                    status=event.call_status or DEFAULT_CALL_STATUS,
                    provider_call_id=event.call_id,
                    provider_account_id=event.provider_account_id,
                    duration=event.duration_seconds,
                )
            else:
                await self._contacts.upsert(
                    owner_id, event.from_number, ContactType.MESSAGE
                )
                await self._messages.record(
                    owner_id=owner_id,
                    phone_number=event.from_number,
                    direction=Direction.INBOUND,
                    body=event.body,
                    provider_message_id=event.message_id,
                    provider_account_id=event.provider_account_id,
                )
            recorded = True
        return recorded

    def _acknowledgement(self, event: InboundEvent) -> str:
        if event.kind == InboundEventKind.MESSAGE:
            return twiml.message_acknowledgement(self._config.message_ack_text)
        return twiml.call_acknowledgement(self._config.call_ack_text)
