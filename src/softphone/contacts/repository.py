"""
Repository for contacts.
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from softphone.contacts.models import Contact, ContactType
from softphone.shared.database import utcnow


class ContactRepository:
    """Repository for contact database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, owner_id: UUID, phone_number: str) -> Contact | None:
        stmt = select(Contact).where(
            Contact.owner_id == owner_id,
            Contact.phone_number == phone_number,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_owner(self, owner_id: UUID) -> Sequence[Contact]:
        stmt = (
            select(Contact)
            .where(Contact.owner_id == owner_id)
            .order_by(Contact.last_contacted.desc())
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def upsert(
        self,
        owner_id: UUID,
        phone_number: str,
        contact_type: ContactType,
        contacted_at: datetime | None = None,
    ) -> Contact:
        """Create the contact, or bump its last-contacted time and type.

        Args:
            owner_id: Owning user.
            phone_number: Counterpart address.
            contact_type: Interaction kind.
            contacted_at: Interaction time, defaults to now.

        Returns:
            The created or updated contact.
        """
        when = contacted_at or utcnow()
        contact = await self.get(owner_id, phone_number)
        if contact is None:
            contact = Contact(
                owner_id=owner_id,
                phone_number=phone_number,
                contact_type=contact_type.value,
                last_contacted=when,
                created_at=when,
            )
            self._session.add(contact)
        else:
            contact.last_contacted = when
            contact.contact_type = contact_type.value
        await self._session.flush()
        return contact
