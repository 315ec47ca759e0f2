"""
Outbound SMS.
"""
