"""
Credential resolver.

Walks the strategy cascade on every call (nothing is cached: default flags
and credentials can change between requests) and registers a voice
application with the provider when the selected tuple has none.
"""

from __future__ import annotations

from typing import Annotated, NoReturn, Sequence
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from softphone.accounts.repository import (
    AccountRepository,
    AccountRepositoryProtocol,
    ProfileRepository,
    ProfileRepositoryProtocol,
)
from softphone.credentials.models import (
    CredentialCandidate,
    CredentialSource,
    ResolvedCredentials,
)
from softphone.credentials.strategies import (
    CredentialStrategy,
    ResolutionContext,
    default_strategies,
)
from softphone.shared.database import get_db_session
from softphone.shared.exceptions import (
    ApplicationProvisioningFailedError,
    IncompleteAccountError,
    InvalidCredentialsError,
    NoCredentialsError,
)
from softphone.shared.logging import get_logger, mask
from softphone.telephony.config import TelephonyConfig, get_telephony_config
from softphone.telephony.factory import ProviderFactory, get_provider_factory
from softphone.telephony.interface import (
    ApplicationRequest,
    ProviderAuthenticationError,
    ProviderCredentials,
    TelephonyProviderError,
)

logger = get_logger(__name__)


class CredentialResolver:
    """Resolve the provider credentials to use for one owner and request."""

    def __init__(
        self,
        accounts: AccountRepositoryProtocol,
        profiles: ProfileRepositoryProtocol,
        config: TelephonyConfig,
        provider_factory: ProviderFactory,
        strategies: Sequence[CredentialStrategy] | None = None,
    ) -> None:
        self._accounts = accounts
        self._profiles = profiles
        self._config = config
        self._provider_factory = provider_factory
        self._strategies = list(
            strategies
            if strategies is not None
            else default_strategies(accounts, profiles, config)
        )

    async def resolve(
        self,
        owner_id: UUID,
        account_ref: str | None = None,
    ) -> ResolvedCredentials:
        """Pick a complete credential tuple for ``owner_id``.

        Args:
            owner_id: Requesting user.
            account_ref: Optional explicit account id.

        Returns:
            Resolved credentials with an application id.

        Raises:
            AccountNotFoundError: ``account_ref`` is not one of the owner's accounts.
            IncompleteAccountError: The chosen account, or every stored
                account, lacks its account id or secret.
            NoCredentialsError: Nothing to resolve from.
            ApplicationProvisioningFailedError: Registering an application failed.
            InvalidCredentialsError: The provider rejected the credentials.
        """
        context = ResolutionContext(owner_id=owner_id, account_ref=account_ref or None)

        candidate = await self._select(context)
        if candidate is None:
            await self._raise_unresolved(context)

        if not candidate.application_id:
            candidate = await self._provision_application(candidate)

        resolved = ResolvedCredentials.from_candidate(candidate)
        logger.info(
            "Resolved telephony credentials",
            extra={"owner_id": str(owner_id), **candidate.describe()},
        )
        return resolved

    async def _select(self, context: ResolutionContext) -> CredentialCandidate | None:
        for strategy in self._strategies:
            candidate = await strategy.select(context)
            if candidate is not None:
                logger.debug(
                    "Credential strategy matched",
                    extra={"owner_id": str(context.owner_id), "strategy": strategy.name},
                )
                return candidate
        return None

    async def _raise_unresolved(self, context: ResolutionContext) -> NoReturn:
        accounts = await self._accounts.list_for_owner(context.owner_id)
        if accounts:
            logger.warning(
                "Owner has only incomplete telephony accounts",
                extra={"owner_id": str(context.owner_id), "account_count": len(accounts)},
            )
            raise IncompleteAccountError(
                details={"account_ids": [str(account.id) for account in accounts]}
            )
        logger.warning(
            "No telephony credentials for owner",
            extra={"owner_id": str(context.owner_id)},
        )
        raise NoCredentialsError()

    async def _provision_application(
        self,
        candidate: CredentialCandidate,
    ) -> CredentialCandidate:
        webhook_url = self._config.get_webhook_url()
        request = ApplicationRequest(
            friendly_name=self._config.application_friendly_name,
            voice_url=webhook_url,
            sms_url=webhook_url,
        )
        provider = self._provider_factory(
            ProviderCredentials(
                account_id=candidate.provider_account_id,
                secret=candidate.provider_secret,
            )
        )

        logger.info("Provisioning voice application", extra=candidate.describe())
        try:
            application_id = await provider.create_application(request)
        except ProviderAuthenticationError as e:
            raise InvalidCredentialsError(
                details={"provider_error": str(e), **candidate.describe()},
            ) from e
        except TelephonyProviderError as e:
            logger.error(
                "Voice application provisioning failed",
                extra={"error_code": e.error_code, **candidate.describe()},
            )
            raise ApplicationProvisioningFailedError(
                details={
                    "provider_error": str(e),
                    "provider_error_code": e.error_code,
                    **candidate.describe(),
                },
            ) from e
        finally:
            provider.close()

        await self._persist_application_id(candidate, application_id)
        logger.info(
            "Provisioned voice application",
            extra={
                "application_id": application_id,
                "provider_account_id": mask(candidate.provider_account_id),
            },
        )
        return candidate.with_application_id(application_id)

    async def _persist_application_id(
        self,
        candidate: CredentialCandidate,
        application_id: str,
    ) -> None:
        if candidate.source_account_id is None:
            return
        if candidate.source == CredentialSource.LEGACY_PROFILE:
            await self._profiles.set_application_id(candidate.source_account_id, application_id)
        else:
            await self._accounts.set_application_id(candidate.source_account_id, application_id)


def get_credential_resolver(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
    provider_factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
) -> CredentialResolver:
    """FastAPI dependency building a resolver bound to the request session."""
    return CredentialResolver(
        accounts=AccountRepository(session),
        profiles=ProfileRepository(session),
        config=config,
        provider_factory=provider_factory,
    )
