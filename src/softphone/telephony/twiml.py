"""
TwiML documents returned to the provider.
"""

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>'


def _xml_escape(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _twiml(body: str) -> str:
    if not body:
        return XML_HEADER + "\n<Response/>"
    return XML_HEADER + "\n<Response>\n" + body + "\n</Response>"


def say(text: str, voice: str = "woman") -> str:
    return f'  <Say voice="{_xml_escape(voice)}">{_xml_escape(text)}</Say>'


def empty_response() -> str:
    """Acknowledge without instructions."""
    return _twiml("")


def message_acknowledgement(reply: str) -> str:
    """Acknowledge an inbound message, optionally texting a fixed reply."""
    if not reply:
        return empty_response()
    return _twiml(f"  <Message>{_xml_escape(reply)}</Message>")


def call_acknowledgement(text: str) -> str:
    """Acknowledge a call event, optionally speaking a fixed response."""
    if not text:
        return empty_response()
    return _twiml(say(text))


def voice_instructions(greeting: str, prompt: str) -> str:
    """Instructions fetched by the provider for a call this service placed."""
    parts = [say(greeting), '  <Pause length="1"/>']
    if prompt:
        parts.append(say(prompt))
    parts.append("  <Gather/>")
    return _twiml("\n".join(parts))
