"""
Client-side softphone runtime.

Runs on a single asyncio event loop. The signaling device, media permission
probe and notice surface are injected, so the state machines here carry no
global state.
"""
