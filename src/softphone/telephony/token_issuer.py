"""
Signaling token issuer.
"""

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends

from softphone.credentials.resolver import CredentialResolver, get_credential_resolver
from softphone.shared.logging import get_logger, mask
from softphone.telephony.access_token import VoiceGrant, mint_access_token
from softphone.telephony.config import TelephonyConfig, get_telephony_config

logger = get_logger(__name__)


@dataclass(frozen=True)
class SignalingToken:
    token: str
    ttl_seconds: int


class SignalingTokenIssuer:
    """Mint voice tokens for the credentials the resolver picks.

    Setup errors from the resolver propagate unchanged so the caller can
    tell "no account" from "incomplete account" from "no application".
    """

    def __init__(self, resolver: CredentialResolver, config: TelephonyConfig) -> None:
        self._resolver = resolver
        self._config = config

    async def issue_token(
        self,
        owner_id: UUID,
        account_ref: str | None = None,
    ) -> SignalingToken:
        credentials = await self._resolver.resolve(owner_id, account_ref)
        ttl = self._config.token_ttl_seconds
        token = mint_access_token(
            account_id=credentials.provider_account_id,
            signing_key_id=credentials.provider_account_id,
            secret=credentials.provider_secret,
            identity=str(owner_id),
            grant=VoiceGrant(outgoing_application_id=credentials.application_id),
            ttl_seconds=ttl,
        )
        logger.info(
            "Issued signaling token",
            extra={
                "owner_id": str(owner_id),
                "provider_account_id": mask(credentials.provider_account_id),
                "source": credentials.source.value,
                "ttl_seconds": ttl,
            },
        )
        return SignalingToken(token=token, ttl_seconds=ttl)


def get_token_issuer(
    resolver: Annotated[CredentialResolver, Depends(get_credential_resolver)],
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> SignalingTokenIssuer:
    return SignalingTokenIssuer(resolver, config)
