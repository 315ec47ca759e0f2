"""
Place Call endpoint.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from softphone.auth.middleware import CurrentUserDep
from softphone.calls.service import CallInvocationService, get_call_service
from softphone.shared.exceptions import AppException, error_body, status_code_for
from softphone.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/calls", tags=["calls"])


class PlaceCallRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to: str = Field(default="", max_length=50)
    account_id: str | None = Field(default=None, alias="accountId")


@router.post("")
async def place_call(
    body: PlaceCallRequest,
    current_user: CurrentUserDep,
    service: Annotated[CallInvocationService, Depends(get_call_service)],
) -> JSONResponse:
    """Place an outbound call.

    Answers ``{success: true, providerCallId}`` or
    ``{success: false, error, code, ...}``.
    """
    try:
        placed = await service.place_call(current_user.id, body.to, body.account_id)
    except AppException as e:
        logger.warning(
            "Place call rejected",
            extra={"user_id": str(current_user.id), "code": e.code},
        )
        return JSONResponse(
            status_code=status_code_for(e),
            content={"success": False, **error_body(e)},
        )

    return JSONResponse(
        content={
            "success": True,
            "providerCallId": placed.provider_call_id,
            "status": placed.status,
        }
    )
