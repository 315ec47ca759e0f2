"""
Bearer identity: validation of the session JWTs issued by the auth provider.
"""
