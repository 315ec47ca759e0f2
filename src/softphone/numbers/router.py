"""
Phone number API router.
"""

from dataclasses import asdict
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from softphone.auth.middleware import CurrentUserDep
from softphone.numbers.service import PhoneNumberService, get_number_service
from softphone.telephony.interface import PhoneNumberInfo

router = APIRouter(prefix="/api/numbers", tags=["numbers"])


def _number(info: PhoneNumberInfo) -> dict[str, Any]:
    data = asdict(info)
    return {
        "phoneNumber": data.pop("phone_number"),
        "friendlyName": data.pop("friendly_name"),
        "isoCountry": data.pop("iso_country"),
        "dateCreated": data.pop("date_created"),
        **data,
    }


class PurchaseNumberRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_id: str = Field(default="", alias="accountId")
    phone_number: str = Field(default="", alias="phoneNumber", max_length=50)


@router.get("")
async def list_numbers(
    current_user: CurrentUserDep,
    service: Annotated[PhoneNumberService, Depends(get_number_service)],
    account_id: Annotated[str | None, Query(alias="accountId")] = None,
    country_code: Annotated[str, Query(alias="countryCode")] = "US",
) -> dict[str, Any]:
    listing = await service.list_numbers(current_user.id, account_id, country_code)
    return {
        "availableNumbers": [_number(n) for n in listing.available],
        "ownedNumbers": [_number(n) for n in listing.owned],
    }


@router.post("/purchase")
async def purchase_number(
    body: PurchaseNumberRequest,
    current_user: CurrentUserDep,
    service: Annotated[PhoneNumberService, Depends(get_number_service)],
) -> dict[str, Any]:
    purchased = await service.purchase_number(
        current_user.id, body.account_id, body.phone_number
    )
    return {"success": True, "number": _number(purchased)}
