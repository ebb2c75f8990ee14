"""
Error taxonomy for bug tracking operations.

Field and parameter validation is done by pydantic and reported through
FastAPI's RequestValidationError. The errors here cover what only the store
can decide. Each carries the HTTP status it maps to and the message that is
safe to show the client; the exception handlers in main.py render them into
the standard ``{"success": false, "error": ...}`` envelope.
"""


class BugTrackerError(Exception):
    """Base class for errors raised by the bug tracking services."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidIdentifierError(BugTrackerError):
    """Identifier is not in the store's id format."""
    status_code = 400

    def __init__(self, bug_id: str):
        super().__init__("Invalid bug ID format")
        self.bug_id = bug_id


class BugNotFoundError(BugTrackerError):
    """Identifier is well formed but no bug has it."""
    status_code = 404

    def __init__(self, bug_id: str):
        super().__init__("Bug not found")
        self.bug_id = bug_id


class StoreError(BugTrackerError):
    """Unclassified persistence failure. The message never reaches the client."""
    status_code = 500
