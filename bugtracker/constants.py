"""
Application-wide constants.

Defines the enumerated field values, defaults and sort keys shared by the
record schema, the query builder and the routers.
"""
from typing import Literal, get_args

# Enumerated Field Values
BugStatus = Literal["open", "in-progress", "resolved", "closed"]
BugPriority = Literal["low", "medium", "high", "critical"]
BugSeverity = Literal["low", "medium", "high", "critical"]

BUG_STATUSES = get_args(BugStatus)
"""Lifecycle states a bug can be in, in workflow order."""

BUG_PRIORITIES = get_args(BugPriority)
"""Allowed priority values."""

BUG_SEVERITIES = get_args(BugSeverity)
"""Allowed severity values."""

DEFAULT_STATUS = "open"
DEFAULT_PRIORITY = "medium"
DEFAULT_SEVERITY = "medium"

STATUS_OPEN = "open"
STATUS_RESOLVED = "resolved"

# Field Length Limits
TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000
STEPS_TO_REPRODUCE_MAX_LENGTH = 500
EXPECTED_BEHAVIOR_MAX_LENGTH = 300
ACTUAL_BEHAVIOR_MAX_LENGTH = 300
ENVIRONMENT_MAX_LENGTH = 200
COMMENT_MAX_LENGTH = 500

# Identifiers
BUG_ID_PATTERN = r"^[0-9a-f]{32}$"
"""Bug ids are uuid4 hex strings generated by the store."""

# Pagination
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
MAX_PAGE = (2 ** 63 - 1) // MAX_PAGE_SIZE
"""Largest page whose row offset still fits a signed 64-bit integer."""

# Sorting
DEFAULT_SORT = "-createdAt"
"""Newest bugs first."""

SORTABLE_FIELDS = {
    "title": "title",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "severity": "severity",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}
"""Mapping of public sort keys to Bug column names."""
