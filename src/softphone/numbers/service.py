"""
Phone number lookup and purchase.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from softphone.accounts.repository import AccountRepository
from softphone.credentials.resolver import CredentialResolver, get_credential_resolver
from softphone.credentials.strategies import ExplicitAccountStrategy, ResolutionContext
from softphone.shared.database import get_db_session
from softphone.shared.exceptions import AccountNotFoundError, ValidationError
from softphone.shared.logging import get_logger, mask
from softphone.telephony.config import TelephonyConfig, get_telephony_config
from softphone.telephony.factory import ProviderFactory, get_provider_factory
from softphone.telephony.interface import (
    NumberPurchaseRequest,
    PhoneNumberInfo,
    ProviderCredentials,
    TelephonyProviderError,
)

logger = get_logger(__name__)

AVAILABLE_LIMIT = 20
OWNED_LIMIT = 50


@dataclass(frozen=True)
class NumberListing:
    available: list[PhoneNumberInfo]
    owned: list[PhoneNumberInfo]


class PhoneNumberService:
    def __init__(
        self,
        accounts: AccountRepository,
        resolver: CredentialResolver,
        provider_factory: ProviderFactory,
        config: TelephonyConfig,
    ) -> None:
        self._accounts = accounts
        self._resolver = resolver
        self._provider_factory = provider_factory
        self._config = config

    async def list_numbers(
        self,
        owner_id: UUID,
        account_ref: str | None = None,
        country_code: str = "US",
    ) -> NumberListing:
        """Numbers available for purchase and numbers already owned."""
        country_code = (country_code or "US").strip().upper()
        if len(country_code) != 2 or not country_code.isalpha():
            raise ValidationError(
                "countryCode must be a two-letter ISO country code",
                details={"countryCode": country_code},
            )

        credentials = await self._resolver.resolve(owner_id, account_ref)
        provider = self._provider_factory(credentials.provider_credentials)
        try:
            available = await provider.list_available_numbers(country_code, AVAILABLE_LIMIT)
            owned = await provider.list_owned_numbers(OWNED_LIMIT)
        except TelephonyProviderError as e:
            raise e.to_app_exception() from e
        finally:
            provider.close()

        return NumberListing(available=available, owned=owned)

    async def purchase_number(
        self,
        owner_id: UUID,
        account_ref: str,
        phone_number: str,
    ) -> PhoneNumberInfo:
        """Buy ``phone_number`` on one of the owner's accounts.

        The number routes to the account's application when it has one,
        otherwise straight to the webhook URL. It becomes the account's
        phone number if the account had none.

        Raises:
            ValidationError: Missing account or number.
            AccountNotFoundError: The account is not the owner's.
            IncompleteAccountError: The account lacks credentials.
        """
        phone_number = (phone_number or "").strip()
        if not account_ref or not phone_number:
            raise ValidationError(
                "Missing required parameters: accountId and phoneNumber",
                details={"accountId": bool(account_ref), "phoneNumber": bool(phone_number)},
            )

        candidate = await ExplicitAccountStrategy(self._accounts).select(
            ResolutionContext(owner_id=owner_id, account_ref=account_ref)
        )
        if candidate is None or candidate.source_account_id is None:
            raise AccountNotFoundError(account_ref)

        request = NumberPurchaseRequest(
            phone_number=phone_number,
            application_id=candidate.application_id,
            webhook_url=None if candidate.application_id else self._config.get_webhook_url(),
        )
        provider = self._provider_factory(
            ProviderCredentials(
                account_id=candidate.provider_account_id,
                secret=candidate.provider_secret,
            )
        )
        try:
            purchased = await provider.purchase_number(request)
        except TelephonyProviderError as e:
            logger.error(
                "Number purchase failed",
                extra={
                    "owner_id": str(owner_id),
                    "provider_account_id": mask(candidate.provider_account_id),
                    "error_code": e.error_code,
                },
            )
            raise e.to_app_exception() from e
        finally:
            provider.close()

        if not candidate.from_number:
            account = await self._accounts.get_for_owner(owner_id, candidate.source_account_id)
            if account is not None:
                account.phone_number = purchased.phone_number
                await self._accounts.flush()

        logger.info(
            "Phone number purchased",
            extra={
                "owner_id": str(owner_id),
                "account_id": str(candidate.source_account_id),
                "phone_number": purchased.phone_number,
            },
        )
        return purchased


def get_number_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    resolver: Annotated[CredentialResolver, Depends(get_credential_resolver)],
    provider_factory: Annotated[ProviderFactory, Depends(get_provider_factory)],
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> PhoneNumberService:
    return PhoneNumberService(AccountRepository(session), resolver, provider_factory, config)
