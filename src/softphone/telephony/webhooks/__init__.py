"""
Inbound provider webhooks.
"""
