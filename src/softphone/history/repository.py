"""
Insert-only repositories for call and message history.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from softphone.history.models import CallRecord, Direction, MessageRecord


class CallHistoryRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        owner_id: UUID,
        phone_number: str,
        direction: Direction,
        status: str,
        provider_call_id: str | None = None,
        provider_account_id: str | None = None,
        duration: int = 0,
    ) -> CallRecord:
        """Append one call history row."""
        row = CallRecord(
            owner_id=owner_id,
            phone_number=phone_number,
            direction=direction.value,
            status=status,
            duration=duration,
            provider_call_id=provider_call_id,
            provider_account_id=provider_account_id,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def list_for_owner(self, owner_id: UUID) -> Sequence[CallRecord]:
        stmt = (
            select(CallRecord)
            .where(CallRecord.owner_id == owner_id)
            .order_by(CallRecord.timestamp.desc())
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()


class MessageHistoryRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        owner_id: UUID,
        phone_number: str,
        direction: Direction,
        body: str,
        provider_message_id: str | None = None,
        provider_account_id: str | None = None,
    ) -> MessageRecord:
        """Append one message history row."""
        row = MessageRecord(
            owner_id=owner_id,
            phone_number=phone_number,
            direction=direction.value,
            body=body,
            provider_message_id=provider_message_id,
            provider_account_id=provider_account_id,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def list_for_owner(self, owner_id: UUID) -> Sequence[MessageRecord]:
        stmt = (
            select(MessageRecord)
            .where(MessageRecord.owner_id == owner_id)
            .order_by(MessageRecord.timestamp.desc())
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()
