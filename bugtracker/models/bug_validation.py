"""
Bug record schema messages.

Field constraints live on the pydantic request models in schemas.py and the
list query model in services/query_builder.py. This module turns the errors
pydantic collects for those models into the client-facing messages, so one
400 response names every violated field at once.
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bugtracker.constants import (
    BUG_STATUSES, BUG_PRIORITIES, BUG_SEVERITIES,
    TITLE_MAX_LENGTH, DESCRIPTION_MAX_LENGTH,
    STEPS_TO_REPRODUCE_MAX_LENGTH, EXPECTED_BEHAVIOR_MAX_LENGTH,
    ACTUAL_BEHAVIOR_MAX_LENGTH, ENVIRONMENT_MAX_LENGTH,
    COMMENT_MAX_LENGTH, MAX_PAGE_SIZE,
)

REQUIRED = "required"
WRONG_TYPE = "type"
INVALID = "invalid"

# Error types that mean "no usable value was sent"
_REQUIRED_TYPES = {"missing", "string_too_short"}


def enum_message(label: str, allowed) -> str:
    """Standard message for a value outside an enumeration."""
    return f"{label} must be one of: {', '.join(allowed)}"


def _same(message: str) -> Dict[str, str]:
    return {REQUIRED: message, WRONG_TYPE: message, INVALID: message}


STATUS_MESSAGE = enum_message("Status", BUG_STATUSES)
PRIORITY_MESSAGE = enum_message("Priority", BUG_PRIORITIES)
SEVERITY_MESSAGE = enum_message("Severity", BUG_SEVERITIES)
COMMENT_CONTENT_MESSAGE = f"Comment content must be between 1 and {COMMENT_MAX_LENGTH} characters"
PAGE_MESSAGE = "Page must be a positive integer"
LIMIT_MESSAGE = f"Limit must be between 1 and {MAX_PAGE_SIZE}"

# (request part, field) -> message per error kind. Kinds missing from an
# entry fall back to pydantic's own "<field>: <reason>" text.
FIELD_MESSAGES: Dict[Tuple[str, str], Dict[str, str]] = {
    # Bug bodies
    ("body", "title"): {
        REQUIRED: "Title is required",
        INVALID: f"Title must be between 1 and {TITLE_MAX_LENGTH} characters",
    },
    ("body", "description"): {
        REQUIRED: "Description is required",
        INVALID: f"Description must be between 1 and {DESCRIPTION_MAX_LENGTH} characters",
    },
    ("body", "reporter"): {REQUIRED: "Reporter name is required"},
    ("body", "status"): {REQUIRED: "Status is required", INVALID: STATUS_MESSAGE},
    ("body", "priority"): {REQUIRED: PRIORITY_MESSAGE, INVALID: PRIORITY_MESSAGE},
    ("body", "severity"): {REQUIRED: SEVERITY_MESSAGE, INVALID: SEVERITY_MESSAGE},
    ("body", "assignedTo"): {REQUIRED: "Assigned to cannot be empty if provided"},
    ("body", "stepsToReproduce"): {
        INVALID: f"Steps to reproduce cannot exceed {STEPS_TO_REPRODUCE_MAX_LENGTH} characters",
    },
    ("body", "expectedBehavior"): {
        INVALID: f"Expected behavior cannot exceed {EXPECTED_BEHAVIOR_MAX_LENGTH} characters",
    },
    ("body", "actualBehavior"): {
        INVALID: f"Actual behavior cannot exceed {ACTUAL_BEHAVIOR_MAX_LENGTH} characters",
    },
    ("body", "environment"): {
        INVALID: f"Environment cannot exceed {ENVIRONMENT_MAX_LENGTH} characters",
    },
    ("body", "tags"): {WRONG_TYPE: "Tags must be an array"},
    ("body", "tags[]"): _same("Tag cannot be empty"),
    ("body", "attachments"): {WRONG_TYPE: "Attachments must be an array"},

    # Comment body
    ("body", "author"): {REQUIRED: "Author name is required"},
    ("body", "content"): _same(COMMENT_CONTENT_MESSAGE),

    # List query parameters
    ("query", "status"): _same("Invalid status filter"),
    ("query", "priority"): _same("Invalid priority filter"),
    ("query", "severity"): _same("Invalid severity filter"),
    ("query", "sort"): _same("Invalid sort field"),
    ("query", "page"): _same(PAGE_MESSAGE),
    ("query", "limit"): _same(LIMIT_MESSAGE),

    # Path parameters
    ("path", "status"): _same(STATUS_MESSAGE),
}


def error_kind(error: Dict[str, Any]) -> str:
    """Classify a pydantic error as a missing value, a wrong JSON type or a bad value."""
    error_type = error.get("type", "")
    if error_type in _REQUIRED_TYPES or ("input" in error and error["input"] is None):
        return REQUIRED
    if error_type.endswith("_type"):
        return WRONG_TYPE
    return INVALID


def _split_location(loc: Iterable[Any], default_source: str) -> Tuple[str, Optional[str], List[str]]:
    """Return (request part, field key, dotted path parts) for an error location."""
    parts = list(loc)
    source = default_source
    if parts and parts[0] in ("body", "query", "path", "header", "cookie"):
        source = parts.pop(0)
    if not parts:
        return source, None, []

    path = [str(part) for part in parts]
    if len(parts) == 1:
        field = path[0]
    elif len(parts) == 2 and isinstance(parts[1], int):
        field = f"{path[0]}[]"
    else:
        field = ".".join(path)
    return source, field, path


def validation_messages(errors: Iterable[Dict[str, Any]], default_source: str = "body") -> List[str]:
    """
    Translate pydantic errors into client messages.

    Args:
        errors: ``exc.errors()`` of a pydantic ValidationError or FastAPI
            RequestValidationError
        default_source: Request part assumed when an error location does not
            name one (errors of a model validated directly)

    Returns:
        Messages in the order the fields were checked, without duplicates
    """
    messages: List[str] = []
    for error in errors:
        source, field, path = _split_location(error.get("loc", ()), default_source)
        message = FIELD_MESSAGES.get((source, field), {}).get(error_kind(error))
        if message is None:
            message = f"{'.'.join(path) or source}: {error.get('msg')}"
        if message not in messages:
            messages.append(message)
    return messages


def dedupe_tags(tags: List[str]) -> List[str]:
    """Remove duplicate tags, keeping the first occurrence of each."""
    return list(dict.fromkeys(tags))
