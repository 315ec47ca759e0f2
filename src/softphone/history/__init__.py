"""
Immutable call and message history.
"""
