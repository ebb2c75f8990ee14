"""Helper utilities for the application."""
from typing import Any, Dict


def escape_like_pattern(pattern: str) -> str:
    """
    Escape special LIKE characters so user text is matched literally.

    Must be used together with ``escape='\\\\'`` on the LIKE/ILIKE call.

    Args:
        pattern: The search pattern

    Returns:
        Escaped pattern safe for LIKE queries
    """
    return pattern.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def error_response(message: str) -> Dict[str, Any]:
    """Build the standard error envelope."""
    return {"success": False, "error": message}
