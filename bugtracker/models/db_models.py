"""
SQLAlchemy database models for the bug tracker.

This module defines the database schema for storing bugs and the
comments attached to them.
"""
from datetime import datetime, timezone
from uuid import uuid4
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, JSON, Index
from sqlalchemy.orm import declarative_base, relationship

from bugtracker.constants import DEFAULT_STATUS, DEFAULT_PRIORITY, DEFAULT_SEVERITY

Base = declarative_base()


def utcnow() -> datetime:
    """Return current UTC time as a naive datetime (the format timestamps are stored in)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_bug_id() -> str:
    """Generate a new bug identifier (32 lowercase hex characters)."""
    return uuid4().hex


class Bug(Base):
    """A reported bug."""
    __tablename__ = "bugs"

    id = Column(String(32), primary_key=True, default=generate_bug_id)

    # Required fields
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    reporter = Column(Text, nullable=False)

    # Enumerated fields (validated by the request schemas before every write)
    status = Column(String(20), nullable=False, default=DEFAULT_STATUS)
    priority = Column(String(20), nullable=False, default=DEFAULT_PRIORITY)
    severity = Column(String(20), nullable=False, default=DEFAULT_SEVERITY)

    # Optional details
    assigned_to = Column(Text)
    steps_to_reproduce = Column(Text)
    expected_behavior = Column(Text)
    actual_behavior = Column(Text)
    environment = Column(String(200))

    tags = Column(JSON, nullable=False, default=list)  # Ordered, de-duplicated on write
    attachments = Column(JSON, nullable=False, default=list)  # [{filename, url, uploadedAt}]

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    comments = relationship(
        "BugComment",
        back_populates="bug",
        cascade="all, delete-orphan",
        order_by="BugComment.id",
    )

    __table_args__ = (
        Index('idx_bug_status_priority_created', 'status', 'priority', 'created_at'),
        Index('idx_bug_status', 'status'),
        Index('idx_bug_priority', 'priority'),
        Index('idx_bug_severity', 'severity'),
        Index('idx_bug_created', 'created_at'),
    )

    @property
    def age(self) -> int:
        """Whole days elapsed since the bug was created. Computed on read, never stored."""
        if self.created_at is None:
            return 0
        return (utcnow() - self.created_at).days

    def __repr__(self):
        return f"<Bug(id='{self.id}', title='{self.title}', status='{self.status}')>"


class BugComment(Base):
    """A comment appended to a bug. Comments are never edited or removed on their own."""
    __tablename__ = "bug_comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bug_id = Column(String(32), ForeignKey("bugs.id", ondelete="CASCADE"), nullable=False)
    author = Column(Text, nullable=False)
    content = Column(String(500), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    bug = relationship("Bug", back_populates="comments")

    __table_args__ = (
        Index('idx_comment_bug', 'bug_id'),
    )

    def __repr__(self):
        return f"<BugComment(bug_id='{self.bug_id}', author='{self.author}')>"
