"""
Shared infrastructure: logging, database sessions, error taxonomy.
"""
