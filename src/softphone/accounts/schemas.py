"""
Pydantic schemas for the account management API.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AccountCreateRequest(BaseModel):
    """Request body for adding a telephony account."""

    account_name: str = Field(..., min_length=1, max_length=255)
    provider_account_id: str = Field(default="", max_length=64, description="Provider account SID")
    provider_secret: str = Field(default="", max_length=255, description="Provider auth token")
    application_id: str | None = Field(default=None, max_length=64)
    phone_number: str | None = Field(default=None, max_length=50)
    is_default: bool = False


class AccountUpdateRequest(BaseModel):
    """Partial update of a telephony account."""

    account_name: str | None = Field(default=None, min_length=1, max_length=255)
    provider_account_id: str | None = Field(default=None, max_length=64)
    provider_secret: str | None = Field(default=None, max_length=255)
    application_id: str | None = Field(default=None, max_length=64)
    phone_number: str | None = Field(default=None, max_length=50)
    is_default: bool | None = None


class AccountResponse(BaseModel):
    """Account as exposed over HTTP. The secret is never echoed back."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_name: str
    provider_account_id: str
    has_secret: bool
    application_id: str | None
    phone_number: str | None
    is_default: bool
    created_at: datetime

    @classmethod
    def from_account(cls, account) -> "AccountResponse":
        return cls(
            id=account.id,
            account_name=account.account_name,
            provider_account_id=account.provider_account_id,
            has_secret=bool(account.provider_secret),
            application_id=account.application_id,
            phone_number=account.phone_number,
            is_default=account.is_default,
            created_at=account.created_at,
        )


class AccountListResponse(BaseModel):
    items: list[AccountResponse]
