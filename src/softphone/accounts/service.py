"""
Account write path.

Storage does not enforce the default-account invariant; this service does:
whenever an owner has at least one account, exactly one of them is default.
"""

from typing import Sequence
from uuid import UUID

from softphone.accounts.models import TelephonyAccount
from softphone.accounts.repository import AccountRepository
from softphone.accounts.schemas import AccountCreateRequest, AccountUpdateRequest
from softphone.shared.exceptions import NotFoundError, ValidationError
from softphone.shared.logging import get_logger, mask

logger = get_logger(__name__)


class AccountService:
    """Create, edit, delete and re-default an owner's telephony accounts."""

    def __init__(self, repository: AccountRepository) -> None:
        self._repository = repository

    async def list_accounts(self, owner_id: UUID) -> Sequence[TelephonyAccount]:
        return await self._repository.list_for_owner(owner_id)

    async def add_account(
        self,
        owner_id: UUID,
        request: AccountCreateRequest,
    ) -> TelephonyAccount:
        """Add an account.

        The owner's first account is always made default; otherwise the
        requested flag is honoured and, when set, cleared everywhere else.

        Args:
            owner_id: Owning user id.
            request: Account fields.

        Returns:
            The stored account.
        """
        existing = await self._repository.list_for_owner(owner_id)
        make_default = request.is_default or not existing

        account = TelephonyAccount(
            owner_id=owner_id,
            account_name=request.account_name,
            provider_account_id=request.provider_account_id.strip(),
            provider_secret=request.provider_secret.strip(),
            application_id=(request.application_id or "").strip() or None,
            phone_number=(request.phone_number or "").strip() or None,
            is_default=make_default,
        )
        account = await self._repository.add(account)

        if make_default:
            await self._repository.clear_default(owner_id, except_id=account.id)

        logger.info(
            "Telephony account added",
            extra={
                "owner_id": str(owner_id),
                "account_id": str(account.id),
                "provider_account_id": mask(account.provider_account_id),
                "is_default": make_default,
            },
        )
        return account

    async def set_default(self, owner_id: UUID, account_id: UUID) -> TelephonyAccount:
        """Make one account the owner's default.

        Raises:
            NotFoundError: If the account does not belong to the owner.
        """
        account = await self._get_owned(owner_id, account_id)
        await self._repository.clear_default(owner_id, except_id=account.id)
        account.is_default = True
        await self._repository.flush()

        logger.info(
            "Default telephony account updated",
            extra={"owner_id": str(owner_id), "account_id": str(account_id)},
        )
        return account

    async def update_account(
        self,
        owner_id: UUID,
        account_id: UUID,
        request: AccountUpdateRequest,
    ) -> TelephonyAccount:
        account = await self._get_owned(owner_id, account_id)
        changes = request.model_dump(exclude_unset=True)

        wants_default = changes.pop("is_default", None)
        if wants_default is False and account.is_default:
            raise ValidationError(
                "Cannot unset the default account; make another account default instead",
                details={"account_id": str(account_id)},
            )

        for field, value in changes.items():
            if isinstance(value, str):
                value = value.strip()
            if field in ("application_id", "phone_number"):
                value = value or None
            elif value is None:
                continue
            setattr(account, field, value)

        await self._repository.flush()

        if wants_default:
            account = await self.set_default(owner_id, account_id)

        logger.info(
            "Telephony account updated",
            extra={
                "owner_id": str(owner_id),
                "account_id": str(account_id),
                "fields": sorted(changes),
            },
        )
        return account

    async def delete_account(self, owner_id: UUID, account_id: UUID) -> None:
        """Delete an account, promoting a replacement default if needed.

        The most recently created remaining account becomes default when the
        deleted one was default.
        """
        account = await self._get_owned(owner_id, account_id)
        was_default = account.is_default

        await self._repository.delete(account)

        promoted: TelephonyAccount | None = None
        remaining = await self._repository.list_for_owner(owner_id)
        if remaining and (was_default or not any(a.is_default for a in remaining)):
            promoted = remaining[0]
            await self._repository.clear_default(owner_id, except_id=promoted.id)
            promoted.is_default = True
            await self._repository.flush()

        logger.info(
            "Telephony account deleted",
            extra={
                "owner_id": str(owner_id),
                "account_id": str(account_id),
                "promoted_default": str(promoted.id) if promoted else None,
            },
        )

    async def _get_owned(self, owner_id: UUID, account_id: UUID) -> TelephonyAccount:
        account = await self._repository.get_for_owner(owner_id, account_id)
        if account is None:
            raise NotFoundError(
                f"Telephony account not found: {account_id}",
                details={"account_id": str(account_id)},
            )
        return account
