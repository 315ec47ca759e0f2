"""
Repositories for telephony accounts and legacy profiles.
"""

from typing import Protocol, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from softphone.accounts.models import Profile, TelephonyAccount


class AccountRepositoryProtocol(Protocol):
    """Protocol for telephony account repository operations."""

    async def list_for_owner(self, owner_id: UUID) -> Sequence[TelephonyAccount]: ...

    async def get_for_owner(
        self,
        owner_id: UUID,
        account_id: UUID,
    ) -> TelephonyAccount | None: ...

    async def get_default(self, owner_id: UUID) -> TelephonyAccount | None: ...

    async def set_application_id(self, account_id: UUID, application_id: str) -> None: ...

    async def find_owner_ids_by_provider_account_id(
        self,
        provider_account_id: str,
    ) -> list[UUID]: ...


class ProfileRepositoryProtocol(Protocol):
    """Protocol for legacy profile repository operations."""

    async def get(self, owner_id: UUID) -> Profile | None: ...

    async def set_application_id(self, owner_id: UUID, application_id: str) -> None: ...

    async def find_owner_ids_by_provider_account_id(
        self,
        provider_account_id: str,
    ) -> list[UUID]: ...


class AccountRepository:
    """Repository for telephony account database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def list_for_owner(self, owner_id: UUID) -> Sequence[TelephonyAccount]:
        """List an owner's accounts, most recently created first."""
        stmt = (
            select(TelephonyAccount)
            .where(TelephonyAccount.owner_id == owner_id)
            .order_by(TelephonyAccount.created_at.desc(), TelephonyAccount.id.desc())
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def get_for_owner(
        self,
        owner_id: UUID,
        account_id: UUID,
    ) -> TelephonyAccount | None:
        """Get one account, only if it belongs to ``owner_id``.

        Args:
            owner_id: Owning user id.
            account_id: Account id.

        Returns:
            The account if found and owned, None otherwise.
        """
        stmt = select(TelephonyAccount).where(
            TelephonyAccount.id == account_id,
            TelephonyAccount.owner_id == owner_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_default(self, owner_id: UUID) -> TelephonyAccount | None:
        """Get the owner's default account.

        Storage does not enforce a single default; if several rows carry the
        flag the most recently created one wins.
        """
        stmt = (
            select(TelephonyAccount)
            .where(
                TelephonyAccount.owner_id == owner_id,
                TelephonyAccount.is_default.is_(True),
            )
            .order_by(TelephonyAccount.created_at.desc(), TelephonyAccount.id.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, account: TelephonyAccount) -> TelephonyAccount:
        """Insert a new account row."""
        self._session.add(account)
        await self._session.flush()
        await self._session.refresh(account)
        return account

    async def clear_default(
        self,
        owner_id: UUID,
        except_id: UUID | None = None,
    ) -> None:
        """Clear ``is_default`` on every account of the owner except ``except_id``."""
        stmt = (
            update(TelephonyAccount)
            .where(TelephonyAccount.owner_id == owner_id)
            .values(is_default=False)
        )
        if except_id is not None:
            stmt = stmt.where(TelephonyAccount.id != except_id)
        await self._session.execute(stmt.execution_options(synchronize_session="fetch"))

    async def delete(self, account: TelephonyAccount) -> None:
        await self._session.delete(account)
        await self._session.flush()

    async def set_application_id(self, account_id: UUID, application_id: str) -> None:
        """Persist an auto-provisioned application id on an account."""
        stmt = (
            update(TelephonyAccount)
            .where(TelephonyAccount.id == account_id)
            .values(application_id=application_id)
            .execution_options(synchronize_session="fetch")
        )
        await self._session.execute(stmt)
        await self._session.flush()

    async def find_owner_ids_by_provider_account_id(
        self,
        provider_account_id: str,
    ) -> list[UUID]:
        """Every owner holding an account with this provider account id."""
        stmt = (
            select(TelephonyAccount.owner_id)
            .where(TelephonyAccount.provider_account_id == provider_account_id)
            .distinct()
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def flush(self) -> None:
        await self._session.flush()


class ProfileRepository:
    """Repository for the legacy single-account profile fields."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, owner_id: UUID) -> Profile | None:
        stmt = select(Profile).where(Profile.id == owner_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, profile: Profile) -> Profile:
        self._session.add(profile)
        await self._session.flush()
        return profile

    async def set_application_id(self, owner_id: UUID, application_id: str) -> None:
        """Persist an auto-provisioned application id on the profile."""
        stmt = (
            update(Profile)
            .where(Profile.id == owner_id)
            .values(application_id=application_id)
            .execution_options(synchronize_session="fetch")
        )
        await self._session.execute(stmt)
        await self._session.flush()

    async def find_owner_ids_by_provider_account_id(
        self,
        provider_account_id: str,
    ) -> list[UUID]:
        stmt = select(Profile.id).where(Profile.provider_account_id == provider_account_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
