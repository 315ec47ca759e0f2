"""
Credential resolver strategies.

Each strategy looks at one place credentials can live and either returns a
candidate, returns None to let the next strategy try, or raises a
``SetupError`` to stop resolution.
"""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from softphone.accounts.models import TelephonyAccount
from softphone.accounts.repository import (
    AccountRepositoryProtocol,
    ProfileRepositoryProtocol,
)
from softphone.credentials.models import CredentialCandidate, CredentialSource
from softphone.shared.exceptions import AccountNotFoundError, IncompleteAccountError
from softphone.telephony.config import TelephonyConfig


@dataclass(frozen=True)
class ResolutionContext:
    owner_id: UUID
    account_ref: str | None = None


class CredentialStrategy(Protocol):
    """One step of the resolution cascade."""

    name: str

    async def select(self, context: ResolutionContext) -> CredentialCandidate | None: ...


def _from_account(account: TelephonyAccount, source: CredentialSource) -> CredentialCandidate:
    return CredentialCandidate(
        source=source,
        provider_account_id=account.provider_account_id,
        provider_secret=account.provider_secret,
        application_id=account.application_id or None,
        from_number=account.phone_number or None,
        source_account_id=account.id,
    )


def parse_account_ref(account_ref: str) -> UUID | None:
    try:
        return UUID(str(account_ref))
    except ValueError:
        return None


class ExplicitAccountStrategy:
    """The account the caller asked for, and nothing else.

    A missing or incomplete explicit account is an error rather than a
    reason to fall back.
    """

    name = "explicit"

    def __init__(self, accounts: AccountRepositoryProtocol) -> None:
        self._accounts = accounts

    async def select(self, context: ResolutionContext) -> CredentialCandidate | None:
        if not context.account_ref:
            return None

        account_id = parse_account_ref(context.account_ref)
        account = None
        if account_id is not None:
            account = await self._accounts.get_for_owner(context.owner_id, account_id)
        if account is None:
            raise AccountNotFoundError(context.account_ref)

        if not account.has_credentials:
            raise IncompleteAccountError(
                details={
                    "account_id": str(account.id),
                    "account_name": account.account_name,
                    "missing": _missing_fields(account),
                }
            )
        return _from_account(account, CredentialSource.EXPLICIT)


class OperatorOverrideStrategy:
    """Process-wide account configured by the operator."""

    name = "override"

    def __init__(self, config: TelephonyConfig) -> None:
        self._config = config

    async def select(self, context: ResolutionContext) -> CredentialCandidate | None:
        if not self._config.has_override_account:
            return None
        return CredentialCandidate(
            source=CredentialSource.OVERRIDE,
            provider_account_id=self._config.account_sid,
            provider_secret=self._config.auth_token,
            application_id=self._config.application_sid,
            from_number=self._config.from_number or None,
        )


class DefaultAccountStrategy:
    name = "default"

    def __init__(self, accounts: AccountRepositoryProtocol) -> None:
        self._accounts = accounts

    async def select(self, context: ResolutionContext) -> CredentialCandidate | None:
        account = await self._accounts.get_default(context.owner_id)
        if account is None or not account.has_credentials:
            return None
        return _from_account(account, CredentialSource.DEFAULT)


class AnyCompleteAccountStrategy:
    """Most recently created account with complete credentials."""

    name = "any_account"

    def __init__(self, accounts: AccountRepositoryProtocol) -> None:
        self._accounts = accounts

    async def select(self, context: ResolutionContext) -> CredentialCandidate | None:
        for account in await self._accounts.list_for_owner(context.owner_id):
            if account.has_credentials:
                return _from_account(account, CredentialSource.ANY_ACCOUNT)
        return None


class LegacyProfileStrategy:
    """Single-account fields on the owner's profile."""

    name = "legacy_profile"

    def __init__(self, profiles: ProfileRepositoryProtocol) -> None:
        self._profiles = profiles

    async def select(self, context: ResolutionContext) -> CredentialCandidate | None:
        profile = await self._profiles.get(context.owner_id)
        if profile is None or not profile.has_credentials:
            return None
        return CredentialCandidate(
            source=CredentialSource.LEGACY_PROFILE,
            provider_account_id=profile.provider_account_id or "",
            provider_secret=profile.provider_secret or "",
            application_id=profile.application_id or None,
            from_number=profile.phone_number or None,
            source_account_id=profile.id,
        )


def default_strategies(
    accounts: AccountRepositoryProtocol,
    profiles: ProfileRepositoryProtocol,
    config: TelephonyConfig,
) -> list[CredentialStrategy]:
    """Resolution cascade in precedence order."""
    return [
        ExplicitAccountStrategy(accounts),
        OperatorOverrideStrategy(config),
        DefaultAccountStrategy(accounts),
        AnyCompleteAccountStrategy(accounts),
        LegacyProfileStrategy(profiles),
    ]


def _missing_fields(account: TelephonyAccount) -> list[str]:
    missing = []
    if not account.provider_account_id:
        missing.append("provider_account_id")
    if not account.provider_secret:
        missing.append("provider_secret")
    return missing
