"""
Bug Repository - fetch, count and mutate bug records.

Responsibilities:
- Execute list query plans (page of rows + total matching count)
- Single-bug lookup with distinct invalid-id / not-found errors
- Create, update and hard-delete bugs
- Append comments and transition status

Writes take request models already validated by pydantic (schemas.py),
and every mutation refreshes updated_at. Concurrent writers to
the same bug are not coordinated: the last commit wins.
"""
import logging
import re
from datetime import timedelta
from typing import List, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bugtracker.constants import BUG_ID_PATTERN
from bugtracker.exceptions import BugNotFoundError, InvalidIdentifierError, StoreError
from bugtracker.models.schemas import BugCreate, BugUpdate
from bugtracker.models.db_models import Bug, BugComment, utcnow
from bugtracker.services.query_builder import QueryPlan, filter_clause, order_clauses

logger = logging.getLogger(__name__)

_BUG_ID_RE = re.compile(BUG_ID_PATTERN)


def parse_bug_id(bug_id: str) -> str:
    """
    Check that a bug id has the store's format.

    Returns:
        The id in canonical (lowercase) form

    Raises:
        InvalidIdentifierError: If the id is malformed
    """
    canonical = (bug_id or "").strip().lower()
    if not _BUG_ID_RE.match(canonical):
        raise InvalidIdentifierError(bug_id)
    return canonical


class BugRepository:
    """Data access for bugs and their comments."""

    def __init__(self, db: Session):
        """
        Initialize repository.

        Args:
            db: Database session
        """
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_bugs(self, plan: QueryPlan) -> Tuple[List[Bug], int]:
        """
        Execute a list query plan.

        Args:
            plan: Plan from query_builder.build_query_plan

        Returns:
            Tuple of (bugs on the requested page, total bugs matching the filter)
        """
        criteria = filter_clause(plan)

        total = self.db.query(func.count(Bug.id)).filter(criteria).scalar() or 0
        bugs = (
            self.db.query(Bug)
            .filter(criteria)
            .order_by(*order_clauses(plan))
            .offset(plan.skip)
            .limit(plan.limit)
            .all()
        )

        logger.debug(f"Listed {len(bugs)} of {total} matching bugs (page {plan.page})")
        return bugs, total

    def get_by_id(self, bug_id: str) -> Bug:
        """
        Fetch a single bug.

        Raises:
            InvalidIdentifierError: If bug_id is malformed
            BugNotFoundError: If no bug has this id
        """
        canonical = parse_bug_id(bug_id)
        bug = self.db.get(Bug, canonical)
        if bug is None:
            logger.debug(f"Bug not found: {canonical}")
            raise BugNotFoundError(canonical)
        return bug

    def by_status(self, status: str) -> List[Bug]:
        """All bugs with exactly this status, oldest first."""
        return (
            self.db.query(Bug)
            .filter(Bug.status == status)
            .order_by(Bug.created_at.asc(), Bug.id.asc())
            .all()
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, payload: BugCreate) -> Bug:
        """
        Create a bug from a validated request body.

        Omitted status/priority/severity already carry their defaults.
        """
        now = utcnow()
        bug = Bug(created_at=now, updated_at=now, **payload.to_columns())

        self.db.add(bug)
        self._commit("create")
        self.db.refresh(bug)

        logger.info(f"Created bug {bug.id}: {bug.title!r}")
        return bug

    def update(self, bug_id: str, payload: BugUpdate) -> Bug:
        """
        Replace the fields the client sent and keep the rest.

        Every sent field has passed its own constraint, and no constraint
        spans two fields, so the merged bug is valid as well.

        Args:
            bug_id: Bug id
            payload: Validated update body

        Returns:
            The whole updated bug

        Raises:
            InvalidIdentifierError, BugNotFoundError
        """
        bug = self.get_by_id(bug_id)
        changes = payload.to_columns(partial=True)

        for column, value in changes.items():
            setattr(bug, column, value)
        self._touch(bug)
        self._commit("update", bug.id)
        self.db.refresh(bug)

        logger.info(f"Updated bug {bug.id}: {sorted(changes)}")
        return bug

    def delete(self, bug_id: str) -> None:
        """
        Hard-delete a bug and its comments.

        Raises:
            InvalidIdentifierError, BugNotFoundError (also when already deleted)
        """
        bug = self.get_by_id(bug_id)
        canonical = bug.id
        self.db.delete(bug)
        self._commit("delete", canonical)
        logger.info(f"Deleted bug {canonical}")

    def append_comment(self, bug_id: str, author: str, content: str) -> Bug:
        """
        Append an already validated comment to a bug.

        Raises:
            InvalidIdentifierError, BugNotFoundError
        """
        bug = self.get_by_id(bug_id)

        bug.comments.append(BugComment(author=author, content=content, created_at=utcnow()))
        self._touch(bug)
        self._commit("append comment", bug.id)
        self.db.refresh(bug)

        logger.info(f"Added comment by {author!r} to bug {bug.id}")
        return bug

    def transition_status(self, bug_id: str, new_status: str) -> Bug:
        """
        Move a bug to a new, already validated status.

        Raises:
            InvalidIdentifierError, BugNotFoundError
        """
        bug = self.get_by_id(bug_id)

        old_status = bug.status
        bug.status = new_status
        self._touch(bug)
        self._commit("transition status", bug.id)
        self.db.refresh(bug)

        logger.info(f"Bug {bug.id} status: {old_status} -> {new_status}")
        return bug

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _touch(bug: Bug) -> None:
        """Set updated_at to now, strictly after its previous value."""
        now = utcnow()
        if bug.updated_at is not None and now <= bug.updated_at:
            now = bug.updated_at + timedelta(microseconds=1)
        bug.updated_at = now

    def _commit(self, action: str, bug_id: str = None) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action} bug {bug_id or ''}: {e}", exc_info=True)
            raise StoreError(f"Failed to {action} bug") from e
