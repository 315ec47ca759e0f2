"""
Tests for phone number lookup and purchase.
"""

from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from softphone.accounts.repository import AccountRepository, ProfileRepository
from softphone.credentials.resolver import CredentialResolver
from softphone.numbers.service import PhoneNumberService
from softphone.shared.exceptions import AccountNotFoundError, ValidationError
from softphone.telephony.config import TelephonyConfig
from softphone.telephony.factory import ProviderFactory
from softphone.telephony.mock_adapter import MockTelephonyAdapter


@pytest.fixture
def number_service(
    db_session: AsyncSession,
    telephony_config: TelephonyConfig,
    provider_factory: ProviderFactory,
) -> PhoneNumberService:
    accounts = AccountRepository(db_session)
    resolver = CredentialResolver(
        accounts,
        ProfileRepository(db_session),
        telephony_config,
        provider_factory,
    )
    return PhoneNumberService(accounts, resolver, provider_factory, telephony_config)


class TestListNumbers:
    @pytest.mark.asyncio
    async def test_lists_available_and_owned(
        self,
        number_service: PhoneNumberService,
        make_account,
        owner_id: UUID,
    ) -> None:
        await make_account(owner_id, is_default=True)

        listing = await number_service.list_numbers(owner_id, country_code="us")

        assert [n.phone_number for n in listing.available] == ["+14155550101", "+14155550102"]
        assert listing.available[0].iso_country == "US"
        assert listing.owned == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("country_code", ["USA", "1", "U"])
    async def test_rejects_bad_country_code(
        self,
        number_service: PhoneNumberService,
        owner_id: UUID,
        country_code: str,
    ) -> None:
        with pytest.raises(ValidationError):
            await number_service.list_numbers(owner_id, country_code=country_code)


class TestPurchaseNumber:
    @pytest.mark.asyncio
    async def test_routes_to_application_and_sets_phone(
        self,
        number_service: PhoneNumberService,
        db_session: AsyncSession,
        mock_provider: MockTelephonyAdapter,
        make_account,
        owner_id: UUID,
    ) -> None:
        account = await make_account(owner_id, phone_number=None, is_default=True)

        purchased = await number_service.purchase_number(
            owner_id, str(account.id), "+14155550101"
        )

        request = mock_provider.purchases[0]
        assert request.application_id == account.application_id
        assert request.webhook_url is None
        assert purchased.phone_number == "+14155550101"

        stored = await AccountRepository(db_session).get_for_owner(owner_id, account.id)
        assert stored is not None
        assert stored.phone_number == "+14155550101"

    @pytest.mark.asyncio
    async def test_without_application_routes_to_webhook(
        self,
        number_service: PhoneNumberService,
        mock_provider: MockTelephonyAdapter,
        make_account,
        owner_id: UUID,
    ) -> None:
        account = await make_account(owner_id, application_id=None, is_default=True)

        await number_service.purchase_number(owner_id, str(account.id), "+14155550102")

        request = mock_provider.purchases[0]
        assert request.application_id is None
        assert request.webhook_url == "https://gateway.example.com/webhooks/telephony"

    @pytest.mark.asyncio
    async def test_existing_phone_number_is_kept(
        self,
        number_service: PhoneNumberService,
        make_account,
        owner_id: UUID,
    ) -> None:
        account = await make_account(owner_id, is_default=True)

        await number_service.purchase_number(owner_id, str(account.id), "+14155550102")

        assert account.phone_number == "+14155550100"

    @pytest.mark.asyncio
    async def test_foreign_account(
        self,
        number_service: PhoneNumberService,
        make_account,
        owner_id: UUID,
    ) -> None:
        foreign = await make_account(uuid4(), is_default=True)

        with pytest.raises(AccountNotFoundError):
            await number_service.purchase_number(owner_id, str(foreign.id), "+14155550101")

    @pytest.mark.asyncio
    async def test_requires_account_and_number(
        self,
        number_service: PhoneNumberService,
        owner_id: UUID,
    ) -> None:
        with pytest.raises(ValidationError):
            await number_service.purchase_number(owner_id, "", "+14155550101")
