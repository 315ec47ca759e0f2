"""
Telephony package.

Keep package import side-effects to a minimum to avoid circular imports.
Do not import factory/adapters here.
"""

__all__ = [
    "interface",
    "config",
    "factory",
    "twilio_adapter",
    "mock_adapter",
    "access_token",
    "token_issuer",
    "twiml",
    "router",
    "webhooks",
]
