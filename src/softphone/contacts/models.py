"""
SQLAlchemy model for contacts.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from softphone.shared.database import Base, utcnow


class ContactType(str, Enum):
    """How the owner last interacted with a contact."""

    CALL = "call"
    MESSAGE = "message"


class Contact(Base):
    """A phone number an owner has called, texted, or heard from."""

    __tablename__ = "contacts"
    __table_args__ = (
        UniqueConstraint("owner_id", "phone_number", name="uq_contacts_owner_phone"),
    )

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    owner_id: Mapped[UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )
    phone_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    contact_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ContactType.CALL.value,
    )
    last_contacted: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Contact(owner={self.owner_id}, phone={self.phone_number!r})>"
