"""
Authentication dependency for bearer JWT validation.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field

from softphone.auth.jwt import JWTService
from softphone.config import Settings, get_settings
from softphone.shared.exceptions import AuthenticationError, InvalidTokenError
from softphone.shared.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """Current authenticated user information."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(..., description="User ID (token subject)")
    email: str = Field(default="", description="User email")


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """Extract and validate the current user from the bearer token.

    Raises:
        AuthenticationError: If no bearer token was sent.
        SessionExpiredError: If the token has expired.
        InvalidTokenError: If the token is invalid or its subject is not a user id.
    """
    if credentials is None:
        logger.warning(
            "Missing authentication credentials",
            extra={
                "endpoint": str(request.url.path),
                "method": request.method,
                "client_ip": request.client.host if request.client else "unknown",
            },
        )
        raise AuthenticationError(
            message="No authorization header",
            code="MISSING_CREDENTIALS",
        )

    payload = JWTService(settings).decode_token(credentials.credentials)

    try:
        user_id = UUID(str(payload["sub"]))
    except (KeyError, ValueError) as e:
        raise InvalidTokenError(
            message="Token subject is not a user id",
            details={"payload_keys": sorted(payload.keys())},
        ) from e

    return CurrentUser(id=user_id, email=payload.get("email") or "")


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
