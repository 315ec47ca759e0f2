"""
Telephony provider factory.

Credentials vary per request (they come out of the credential resolver), so
the factory hands out a callable that builds an adapter for a given
credential pair rather than a single provider instance.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, Callable

from fastapi import Depends

from softphone.shared.logging import mask
from softphone.telephony.config import ProviderType, TelephonyConfig, get_telephony_config
from softphone.telephony.interface import ProviderCredentials, TelephonyProvider
from softphone.telephony.mock_adapter import MockTelephonyAdapter
from softphone.telephony.twilio_adapter import TwilioAdapter

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[ProviderCredentials], TelephonyProvider]


@lru_cache(maxsize=1)
def get_mock_provider() -> MockTelephonyAdapter:
    """Process-wide mock provider, so local runs can inspect what was sent."""
    return MockTelephonyAdapter()


def build_provider_factory(config: TelephonyConfig) -> ProviderFactory:
    """Return a callable creating a provider adapter for given credentials."""
    if config.provider_type == ProviderType.MOCK:
        mock = get_mock_provider()
        return mock.for_credentials

    if config.provider_type == ProviderType.TWILIO:

        def _twilio(credentials: ProviderCredentials) -> TelephonyProvider:
            logger.debug(
                "Building Twilio adapter",
                extra={"provider_account_id": mask(credentials.account_id)},
            )
            return TwilioAdapter(credentials, config=config)

        return _twilio

    raise ValueError(f"Unsupported telephony provider_type: {config.provider_type}")


def get_provider_factory(
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> ProviderFactory:
    """FastAPI dependency returning the provider factory for the current config."""
    return build_provider_factory(config)
