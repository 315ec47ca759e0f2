"""
Inbound provider event parsing.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class InboundEventKind(str, Enum):
    CALL = "call"
    MESSAGE = "message"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class InboundEvent:
    """Normalized provider webhook payload."""

    kind: InboundEventKind
    provider_account_id: str | None
    from_number: str | None
    to_number: str | None
    call_id: str | None = None
    message_id: str | None = None
    call_status: str | None = None
    duration_seconds: int = 0
    body: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def correlation_id(self) -> str | None:
        return self.call_id or self.message_id


def _text(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _int(value: str | None) -> int:
    if not value:
        return 0
    try:
        return max(int(float(value)), 0)
    except ValueError:
        return 0


def parse_inbound_event(payload: Mapping[str, Any]) -> InboundEvent:
    """Classify a provider payload as a call or message event.

    ``CallSid`` and ``MessageSid`` are mutually exclusive; a payload carrying
    both or neither is ``UNKNOWN``.
    """
    call_id = _text(payload, "CallSid")
    message_id = _text(payload, "MessageSid") or _text(payload, "SmsSid")

    if call_id and not message_id:
        kind = InboundEventKind.CALL
    elif message_id and not call_id:
        kind = InboundEventKind.MESSAGE
    else:
        kind = InboundEventKind.UNKNOWN

    return InboundEvent(
        kind=kind,
        provider_account_id=_text(payload, "AccountSid"),
        from_number=_text(payload, "From"),
        to_number=_text(payload, "To"),
        call_id=call_id,
        message_id=message_id,
        call_status=(_text(payload, "CallStatus") or "").lower() or None,
        duration_seconds=_int(_text(payload, "CallDuration")),
        body=_text(payload, "Body") or "",
        raw=dict(payload),
    )
