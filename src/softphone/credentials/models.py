"""
Credential resolution values.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any
from uuid import UUID

from softphone.shared.logging import mask
from softphone.telephony.interface import ProviderCredentials


class CredentialSource(str, Enum):
    """Where a resolved credential tuple came from."""

    EXPLICIT = "explicit"
    OVERRIDE = "override"
    DEFAULT = "default"
    ANY_ACCOUNT = "any_account"
    LEGACY_PROFILE = "legacy_profile"


@dataclass(frozen=True)
class CredentialCandidate:
    """A credential tuple picked by a strategy, possibly without an application id.

    ``source_account_id`` is the account row id for account-backed sources,
    the owner id for the legacy profile and None for the override.
    """

    source: CredentialSource
    provider_account_id: str
    provider_secret: str
    application_id: str | None
    from_number: str | None
    source_account_id: UUID | None = None

    def with_application_id(self, application_id: str) -> "CredentialCandidate":
        return replace(self, application_id=application_id)

    def describe(self) -> dict[str, Any]:
        """Log- and error-safe summary (never includes the secret)."""
        return {
            "source": self.source.value,
            "source_account_id": str(self.source_account_id) if self.source_account_id else None,
            "provider_account_id": mask(self.provider_account_id),
            "has_application_id": bool(self.application_id),
            "has_from_number": bool(self.from_number),
        }


@dataclass(frozen=True)
class ResolvedCredentials:
    """A resolved credential tuple, recomputed per request and never stored.

    Account id, secret and application id are always non-empty.
    ``from_number`` may be ``None``: token issuance does not need one, so
    call and message sending check it themselves (``NoOriginatingNumberError``).
    """

    provider_account_id: str
    provider_secret: str
    application_id: str
    from_number: str | None
    source: CredentialSource
    source_account_id: UUID | None = None

    @classmethod
    def from_candidate(cls, candidate: CredentialCandidate) -> "ResolvedCredentials":
        if not candidate.application_id:
            raise ValueError("candidate has no application id")
        return cls(
            provider_account_id=candidate.provider_account_id,
            provider_secret=candidate.provider_secret,
            application_id=candidate.application_id,
            from_number=candidate.from_number or None,
            source=candidate.source,
            source_account_id=candidate.source_account_id,
        )

    @property
    def provider_credentials(self) -> ProviderCredentials:
        return ProviderCredentials(
            account_id=self.provider_account_id,
            secret=self.provider_secret,
        )

    def __repr__(self) -> str:
        return (
            f"ResolvedCredentials(source={self.source.value}, "
            f"provider_account_id={mask(self.provider_account_id)}, "
            f"application_id={self.application_id})"
        )
