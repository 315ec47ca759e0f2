"""
SQLAlchemy models for telephony accounts.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from softphone.shared.database import Base, utcnow


class TelephonyAccount(Base):
    """A stored provider credential set a user can call or text through."""

    __tablename__ = "telephony_accounts"

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
    account_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    provider_account_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="",
        index=True,
    )
    provider_secret: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )
    application_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    phone_number: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    is_default: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    @property
    def has_credentials(self) -> bool:
        """True when both the provider account id and secret are set."""
        return bool(self.provider_account_id) and bool(self.provider_secret)

    def __repr__(self) -> str:
        return (
            f"<TelephonyAccount(id={self.id}, owner={self.owner_id}, "
            f"name={self.account_name!r}, default={self.is_default})>"
        )


class Profile(Base):
    """Per-user profile carrying the legacy single-account fields.

    Predates ``telephony_accounts``; still consulted as the last fallback
    when resolving credentials and when attributing webhooks.
    """

    __tablename__ = "profiles"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
    )
    provider_account_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )
    provider_secret: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    application_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    phone_number: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    @property
    def has_credentials(self) -> bool:
        return bool(self.provider_account_id) and bool(self.provider_secret)

    def __repr__(self) -> str:
        return f"<Profile(id={self.id})>"
