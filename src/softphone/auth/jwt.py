"""JWT handling for session identities."""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError as PyJWTInvalidTokenError

from softphone.config import Settings, get_settings
from softphone.shared.exceptions import InvalidTokenError, SessionExpiredError
from softphone.shared.logging import get_logger

logger = get_logger(__name__)


class JWTService:
    """Create and validate session JWTs.

    In production the identity provider mints tokens and this service only
    validates them; ``create_access_token`` exists for local tooling and tests.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def create_access_token(
        self,
        user_id: UUID,
        email: str | None = None,
        expires_in: timedelta | None = None,
        additional_claims: dict[str, Any] | None = None,
    ) -> str:
        """Create a new access token for ``user_id``."""
        now = datetime.now(timezone.utc)
        expires = now + (
            expires_in
            if expires_in is not None
            else timedelta(minutes=self._settings.jwt_access_token_expire_minutes)
        )

        payload: dict[str, Any] = {
            "sub": str(user_id),
            "role": "authenticated",
            "iat": now,
            "exp": expires,
        }
        if email:
            payload["email"] = email
        if self._settings.jwt_audience:
            payload["aud"] = self._settings.jwt_audience
        if additional_claims:
            payload.update(additional_claims)

        return jwt.encode(
            payload,
            self._settings.jwt_secret_key,
            algorithm=self._settings.jwt_algorithm,
        )

    def decode_token(self, token: str) -> dict[str, Any]:
        """Decode and validate a JWT.

        Raises:
            SessionExpiredError: If the token has expired.
            InvalidTokenError: If the token is malformed or wrongly signed.
        """
        options = {"require": ["exp", "sub"]}
        kwargs: dict[str, Any] = {}
        if self._settings.jwt_audience:
            kwargs["audience"] = self._settings.jwt_audience
        else:
            options["verify_aud"] = False  # type: ignore[assignment]

        try:
            return jwt.decode(
                token,
                self._settings.jwt_secret_key,
                algorithms=[self._settings.jwt_algorithm],
                options=options,
                **kwargs,
            )
        except ExpiredSignatureError as e:
            logger.info("Session token expired")
            raise SessionExpiredError() from e
        except PyJWTInvalidTokenError as e:
            logger.warning("Invalid session token", extra={"error": str(e)})
            raise InvalidTokenError(details={"error": str(e)}) from e

    def get_token_expiry_seconds(self) -> int:
        """Get access token expiry in seconds."""
        return self._settings.jwt_access_token_expire_minutes * 60
