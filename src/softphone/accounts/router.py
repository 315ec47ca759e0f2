"""
Account management API router.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from softphone.accounts.repository import AccountRepository
from softphone.accounts.schemas import (
    AccountCreateRequest,
    AccountListResponse,
    AccountResponse,
    AccountUpdateRequest,
)
from softphone.accounts.service import AccountService
from softphone.auth.middleware import CurrentUserDep
from softphone.shared.database import get_db_session

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


def get_account_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> AccountService:
    """Dependency for the account service."""
    return AccountService(AccountRepository(session))


AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]


@router.get("", response_model=AccountListResponse)
async def list_accounts(
    current_user: CurrentUserDep,
    service: AccountServiceDep,
) -> AccountListResponse:
    accounts = await service.list_accounts(current_user.id)
    return AccountListResponse(items=[AccountResponse.from_account(a) for a in accounts])


@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    body: AccountCreateRequest,
    current_user: CurrentUserDep,
    service: AccountServiceDep,
) -> AccountResponse:
    account = await service.add_account(current_user.id, body)
    return AccountResponse.from_account(account)


@router.patch("/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: UUID,
    body: AccountUpdateRequest,
    current_user: CurrentUserDep,
    service: AccountServiceDep,
) -> AccountResponse:
    account = await service.update_account(current_user.id, account_id, body)
    return AccountResponse.from_account(account)


@router.post("/{account_id}/default", response_model=AccountResponse)
async def set_default_account(
    account_id: UUID,
    current_user: CurrentUserDep,
    service: AccountServiceDep,
) -> AccountResponse:
    account = await service.set_default(current_user.id, account_id)
    return AccountResponse.from_account(account)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    account_id: UUID,
    current_user: CurrentUserDep,
    service: AccountServiceDep,
) -> None:
    """Delete an account; the newest remaining one becomes default if needed."""
    await service.delete_account(current_user.id, account_id)
