"""
API routers package.
"""
from bugtracker.routers import bugs

__all__ = ["bugs"]
