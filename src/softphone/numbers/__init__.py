"""
Phone number lookup and purchase.
"""
