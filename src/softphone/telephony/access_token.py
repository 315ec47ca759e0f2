"""
Provider signaling (voice) access tokens.

A Twilio access token is an HS256 JWT with a ``twilio-fpa`` content type,
signed with the account secret, carrying an identity and a voice grant.
"""

import time
from dataclasses import dataclass
from typing import Any

import jwt

CONTENT_TYPE = "twilio-fpa;v=1"


@dataclass(frozen=True)
class VoiceGrant:
    """Permission to place calls through an application and to receive calls."""

    outgoing_application_id: str
    incoming_allow: bool = True

    def to_payload(self) -> dict[str, Any]:
        grant: dict[str, Any] = {
            "outgoing": {"application_sid": self.outgoing_application_id},
        }
        if self.incoming_allow:
            grant["incoming"] = {"allow": True}
        return grant


def mint_access_token(
    account_id: str,
    signing_key_id: str,
    secret: str,
    identity: str,
    grant: VoiceGrant,
    ttl_seconds: int,
    now: int | None = None,
) -> str:
    """Encode a signed access token.

    Args:
        account_id: Provider account id (``sub``).
        signing_key_id: Key id the token is signed with (``iss``).
        secret: Signing secret.
        identity: Client identity that incoming calls are addressed to.
        grant: Voice grant.
        ttl_seconds: Lifetime of the token.
        now: Issue time (epoch seconds), for tests.

    Returns:
        The encoded JWT.
    """
    issued_at = int(now if now is not None else time.time())
    payload = {
        "jti": f"{signing_key_id}-{issued_at}",
        "iss": signing_key_id,
        "sub": account_id,
        "iat": issued_at,
        "nbf": issued_at,
        "exp": issued_at + ttl_seconds,
        "grants": {
            "identity": identity,
            "voice": grant.to_payload(),
        },
    }
    return jwt.encode(
        payload,
        secret,
        algorithm="HS256",
        headers={"cty": CONTENT_TYPE},
    )
