"""
Send Message endpoint.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from softphone.auth.middleware import CurrentUserDep
from softphone.messaging.service import MessagingService, get_messaging_service
from softphone.shared.exceptions import AppException, error_body, status_code_for
from softphone.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/messages", tags=["messages"])


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to: str = Field(default="", max_length=50)
    message: str = ""
    account_id: str | None = Field(default=None, alias="accountId")


@router.post("")
async def send_message(
    body: SendMessageRequest,
    current_user: CurrentUserDep,
    service: Annotated[MessagingService, Depends(get_messaging_service)],
) -> JSONResponse:
    try:
        sent = await service.send_message(
            current_user.id, body.to, body.message, body.account_id
        )
    except AppException as e:
        logger.warning(
            "Send message rejected",
            extra={"user_id": str(current_user.id), "code": e.code},
        )
        return JSONResponse(
            status_code=status_code_for(e),
            content={"success": False, **error_body(e)},
        )

    return JSONResponse(
        content={
            "success": True,
            "providerMessageId": sent.provider_message_id,
            "status": sent.status,
        }
    )
