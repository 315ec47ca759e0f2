"""
Telephony provider configuration.

Also carries the operator-configured override account, which takes
precedence over per-user accounts when no explicit account is requested.
"""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderType(str, Enum):
    """Supported telephony provider types."""

    TWILIO = "twilio"
    MOCK = "mock"


WEBHOOK_PATH = "/webhooks/telephony"
VOICE_INSTRUCTIONS_PATH = "/webhooks/telephony/voice"


class TelephonyConfig(BaseSettings):
    """Telephony provider configuration from environment."""

    model_config = SettingsConfigDict(
        env_prefix="TELEPHONY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider selection
    provider_type: ProviderType = Field(default=ProviderType.TWILIO)
    api_base_url: str = Field(default="https://api.twilio.com")
    request_timeout_seconds: float = Field(default=30.0, gt=0, le=120)

    # Operator override account (process-wide)
    account_sid: str = Field(default="")
    auth_token: str = Field(default="")
    application_sid: str = Field(default="")
    from_number: str = Field(default="")

    # Public base URL the provider uses to reach this service
    webhook_base_url: str = Field(default="http://localhost:8000")

    # Signaling tokens
    token_ttl_seconds: int = Field(default=3600, ge=60, le=86400)

    # Auto-provisioned voice applications
    application_friendly_name: str = Field(default="Softphone")

    # Instruction / acknowledgement documents
    call_greeting: str = Field(default="Hello! This is a call from your softphone application.")
    call_prompt: str = Field(default="Press any key to end the call.")
    call_ack_text: str = Field(default="Thank you for calling. Goodbye.")
    message_ack_text: str = Field(default="Thank you for your message. We'll get back to you soon.")

    @property
    def has_override_account(self) -> bool:
        """True when the override account can be used without provisioning."""
        return bool(self.account_sid and self.auth_token and self.application_sid)

    def get_webhook_url(self, path: str = WEBHOOK_PATH) -> str:
        base = self.webhook_base_url.rstrip("/")
        return f"{base}{path}"

    @property
    def voice_instructions_url(self) -> str:
        return self.get_webhook_url(VOICE_INSTRUCTIONS_PATH)


def get_telephony_config() -> TelephonyConfig:
    return TelephonyConfig()
