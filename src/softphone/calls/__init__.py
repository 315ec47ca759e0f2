"""
Outbound call invocation.
"""
