"""
Signaling token and inbound-instruction endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, Field

from softphone.auth.middleware import CurrentUserDep
from softphone.shared.logging import get_logger
from softphone.telephony import twiml
from softphone.telephony.config import (
    VOICE_INSTRUCTIONS_PATH,
    TelephonyConfig,
    get_telephony_config,
)
from softphone.telephony.token_issuer import SignalingTokenIssuer, get_token_issuer

logger = get_logger(__name__)

router = APIRouter(tags=["telephony"])


class TokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_id: str | None = Field(default=None, alias="accountId")


class TokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    ttl_seconds: int = Field(alias="ttlSeconds")


@router.post("/api/token", response_model=TokenResponse, response_model_by_alias=True)
async def issue_token(
    current_user: CurrentUserDep,
    issuer: Annotated[SignalingTokenIssuer, Depends(get_token_issuer)],
    body: TokenRequest | None = None,
) -> TokenResponse:
    """Mint a voice token for the caller.

    Setup errors are rendered by the application's exception handlers as
    ``{error, code, details, needsSetup: true}``.
    """
    account_ref = body.account_id if body else None
    issued = await issuer.issue_token(current_user.id, account_ref)
    return TokenResponse(token=issued.token, ttl_seconds=issued.ttl_seconds)


@router.api_route(VOICE_INSTRUCTIONS_PATH, methods=["GET", "POST"])
async def voice_instructions(
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> Response:
    """Static instructions the provider fetches for calls this service places."""
    logger.debug("Serving voice instructions")
    return Response(
        content=twiml.voice_instructions(config.call_greeting, config.call_prompt),
        media_type="application/xml",
    )
