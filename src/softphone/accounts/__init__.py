"""
Telephony accounts: stored per-owner credential sets and the legacy
single-account profile fields.
"""
