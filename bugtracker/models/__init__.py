"""
Database models, record schema rules and API schemas.
"""
