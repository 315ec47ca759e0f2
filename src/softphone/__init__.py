"""
Softphone gateway.

Server side: credential resolution, signaling tokens, outbound calls and
messages, provider webhooks. Client side: device session and call state
machines in ``softphone.client``.
"""

__version__ = "0.1.0"
