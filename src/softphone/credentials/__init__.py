"""
Credential resolution: pick the provider account used for a request.
"""
