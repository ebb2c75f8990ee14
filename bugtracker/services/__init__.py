"""
Service layer: query building, data access and statistics.
"""
