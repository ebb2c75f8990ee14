"""
Pydantic schemas for API request/response validation.

These schemas define the API contract separate from database models
for clean separation of concerns. Field names are snake_case in Python
and camelCase on the wire.
"""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from bugtracker.constants import (
    BugStatus, BugPriority, BugSeverity,
    DEFAULT_STATUS, DEFAULT_PRIORITY, DEFAULT_SEVERITY,
    TITLE_MAX_LENGTH, DESCRIPTION_MAX_LENGTH,
    STEPS_TO_REPRODUCE_MAX_LENGTH, EXPECTED_BEHAVIOR_MAX_LENGTH,
    ACTUAL_BEHAVIOR_MAX_LENGTH, ENVIRONMENT_MAX_LENGTH, COMMENT_MAX_LENGTH,
)
from bugtracker.models.bug_validation import dedupe_tags
from bugtracker.models.db_models import Bug, BugComment, utcnow


class CamelModel(BaseModel):
    """Base schema serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Nested Schemas

class AttachmentSchema(CamelModel):
    """Attachment reference stored alongside a bug (not uploaded by this service)."""
    filename: Optional[str] = None
    url: Optional[str] = None
    uploaded_at: Optional[str] = None


class CommentSchema(CamelModel):
    """Schema for a bug comment in API responses."""
    id: int
    author: str
    content: str
    created_at: datetime

    @classmethod
    def from_model(cls, comment: BugComment) -> "CommentSchema":
        return cls(
            id=comment.id,
            author=comment.author,
            content=comment.content,
            created_at=comment.created_at,
        )


class BugSchema(CamelModel):
    """Schema for a bug in API responses."""
    id: str
    title: str
    description: str
    status: str
    priority: str
    severity: str
    reporter: str
    assigned_to: Optional[str] = None
    steps_to_reproduce: Optional[str] = None
    expected_behavior: Optional[str] = None
    actual_behavior: Optional[str] = None
    environment: Optional[str] = None
    tags: List[str] = []
    attachments: List[AttachmentSchema] = []
    comments: List[CommentSchema] = []
    created_at: datetime
    updated_at: datetime
    age: int = Field(..., description="Whole days since the bug was created")

    @classmethod
    def from_model(cls, bug: Bug) -> "BugSchema":
        """Build the response schema from a Bug row, including its comments."""
        return cls(
            id=bug.id,
            title=bug.title,
            description=bug.description,
            status=bug.status,
            priority=bug.priority,
            severity=bug.severity,
            reporter=bug.reporter,
            assigned_to=bug.assigned_to,
            steps_to_reproduce=bug.steps_to_reproduce,
            expected_behavior=bug.expected_behavior,
            actual_behavior=bug.actual_behavior,
            environment=bug.environment,
            tags=list(bug.tags or []),
            attachments=[AttachmentSchema.model_validate(a) for a in (bug.attachments or [])],
            comments=[CommentSchema.from_model(c) for c in bug.comments],
            created_at=bug.created_at,
            updated_at=bug.updated_at,
            age=bug.age,
        )


# Request Schemas

TagStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class BugInput(CamelModel):
    """
    Shared normalization for bug create/update bodies.

    Strings are trimmed before their length is checked, tags are
    de-duplicated in order, and attachments without an upload time are
    stamped with the current time.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("status", "priority", "severity", mode="before", check_fields=False)
    @classmethod
    def strip_enum_value(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", "attachments", mode="before", check_fields=False)
    @classmethod
    def null_collection_is_empty(cls, v):
        return [] if v is None else v

    @field_validator("tags", check_fields=False)
    @classmethod
    def drop_duplicate_tags(cls, v: List[str]) -> List[str]:
        return dedupe_tags(v)

    @field_validator("attachments", check_fields=False)
    @classmethod
    def stamp_attachments(cls, v: List[AttachmentSchema]) -> List[AttachmentSchema]:
        for attachment in v:
            if not attachment.uploaded_at:
                attachment.uploaded_at = utcnow().isoformat()
        return v

    def to_columns(self, partial: bool = False) -> Dict[str, Any]:
        """
        Field values keyed by Bug column name.

        Args:
            partial: Only include fields the client actually sent
        """
        values = self.model_dump(exclude_unset=partial)
        if "attachments" in values:
            values["attachments"] = [a.model_dump(by_alias=True) for a in self.attachments]
        return values


class BugCreate(BugInput):
    """Request body for creating a bug."""
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    reporter: str = Field(..., min_length=1)
    status: BugStatus = DEFAULT_STATUS
    priority: BugPriority = DEFAULT_PRIORITY
    severity: BugSeverity = DEFAULT_SEVERITY
    assigned_to: Optional[str] = Field(None, min_length=1)
    steps_to_reproduce: Optional[str] = Field(None, max_length=STEPS_TO_REPRODUCE_MAX_LENGTH)
    expected_behavior: Optional[str] = Field(None, max_length=EXPECTED_BEHAVIOR_MAX_LENGTH)
    actual_behavior: Optional[str] = Field(None, max_length=ACTUAL_BEHAVIOR_MAX_LENGTH)
    environment: Optional[str] = Field(None, max_length=ENVIRONMENT_MAX_LENGTH)
    tags: List[TagStr] = []
    attachments: List[AttachmentSchema] = []

    @field_validator("status", "priority", "severity", mode="before")
    @classmethod
    def default_when_null(cls, v, info: ValidationInfo):
        if v is None:
            return cls.model_fields[info.field_name].default
        return v


class BugUpdate(BugInput):
    """
    Request body for updating a bug.

    Every field may be omitted. Required fields and enumerations may not be
    sent as null; optional text fields may, which clears them.
    """
    title: str = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(None, min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    reporter: str = Field(None, min_length=1)
    status: BugStatus = None
    priority: BugPriority = None
    severity: BugSeverity = None
    assigned_to: Optional[str] = Field(None, min_length=1)
    steps_to_reproduce: Optional[str] = Field(None, max_length=STEPS_TO_REPRODUCE_MAX_LENGTH)
    expected_behavior: Optional[str] = Field(None, max_length=EXPECTED_BEHAVIOR_MAX_LENGTH)
    actual_behavior: Optional[str] = Field(None, max_length=ACTUAL_BEHAVIOR_MAX_LENGTH)
    environment: Optional[str] = Field(None, max_length=ENVIRONMENT_MAX_LENGTH)
    tags: List[TagStr] = None
    attachments: List[AttachmentSchema] = None


class CommentCreateRequest(CamelModel):
    """Request body for appending a comment."""
    model_config = ConfigDict(str_strip_whitespace=True)

    author: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=COMMENT_MAX_LENGTH)


class StatusUpdateRequest(CamelModel):
    """Request body for a status transition."""
    status: BugStatus

    @field_validator("status", mode="before")
    @classmethod
    def strip_status(cls, v):
        return v.strip() if isinstance(v, str) else v


# Response Schemas

class PaginationSchema(BaseModel):
    """Pagination metadata for list responses."""
    page: int = Field(..., description="Current page (1-based)")
    limit: int = Field(..., description="Maximum items per page")
    pages: int = Field(..., description="Total number of pages")


class BugResponse(BaseModel):
    """Envelope for a single bug."""
    success: bool = True
    data: BugSchema


class BugListResponse(BaseModel):
    """Envelope for a page of bugs."""
    success: bool = True
    count: int
    total: int
    pagination: PaginationSchema
    data: List[BugSchema]


class BugStatusListResponse(BaseModel):
    """Envelope for all bugs in one status."""
    success: bool = True
    count: int
    data: List[BugSchema]


class BugStatsSchema(CamelModel):
    """Collection-wide bug counts."""
    total: int
    open: int
    resolved: int
    status_breakdown: Dict[str, int]
    priority_breakdown: Dict[str, int]


class BugStatsResponse(BaseModel):
    """Envelope for bug statistics."""
    success: bool = True
    data: BugStatsSchema


class DeleteResponse(BaseModel):
    """Envelope for a successful delete."""
    success: bool = True
    data: Dict[str, Any] = {}


class ErrorResponse(BaseModel):
    """Envelope for every error response."""
    success: bool = False
    error: str
