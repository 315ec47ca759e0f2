"""
Contacts touched by calls and messages.
"""
