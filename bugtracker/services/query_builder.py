"""
Query builder for bug list requests.

List parameters are validated by the ``BugListQuery`` pydantic model (used
directly as the route's query-parameter model), then turned into an
immutable QueryPlan and rendered as SQLAlchemy criteria. Every parameter
error is collected by pydantic and rejected before the database is touched.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import and_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from bugtracker.constants import (
    BugStatus, BugPriority, BugSeverity,
    DEFAULT_PAGE, DEFAULT_PAGE_SIZE, MAX_PAGE, MAX_PAGE_SIZE,
    DEFAULT_SORT, SORTABLE_FIELDS,
)
from bugtracker.models.db_models import Bug
from bugtracker.utils.helpers import escape_like_pattern

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryPlan:
    """Filter, ordering and pagination for one list request."""
    filters: Tuple[Tuple[str, str], ...] = ()
    search_terms: Tuple[str, ...] = ()
    sort_column: str = "created_at"
    descending: bool = True
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def skip(self) -> int:
        """Number of matching rows before the requested page."""
        return (self.page - 1) * self.limit


def parse_sort(sort: Optional[str]) -> Optional[Tuple[str, bool]]:
    """
    Parse a ``[+|-]fieldName`` sort key.

    A ``+`` sent unencoded in a query string arrives as a space, so a
    leading space is read as the ascending prefix.

    Returns:
        (column_name, descending) or None if the field is not sortable
    """
    if sort is None or sort.strip() == "":
        sort = DEFAULT_SORT

    key = sort.lstrip(" ")
    descending = False
    if key[:1] in ("+", "-"):
        descending = key[0] == "-"
        key = key[1:]

    column = SORTABLE_FIELDS.get(key)
    if column is None:
        return None
    return column, descending


class BugListQuery(BaseModel):
    """Query parameters of the bug list endpoint."""
    status: Optional[BugStatus] = Field(None, description="Filter by status")
    priority: Optional[BugPriority] = Field(None, description="Filter by priority")
    severity: Optional[BugSeverity] = Field(None, description="Filter by severity")
    search: Optional[str] = Field(None, description="Search in title and description")
    sort: Optional[str] = Field(None, description="Sort key, e.g. -createdAt (default), title, +priority")
    page: Optional[int] = Field(None, ge=1, le=MAX_PAGE, description="Page number (1-based, default 1)")
    limit: Optional[int] = Field(None, ge=1, le=MAX_PAGE_SIZE, description="Items per page (1-100, default 10)")

    @field_validator("*", mode="before")
    @classmethod
    def empty_means_absent(cls, v):
        return None if v == "" else v

    @field_validator("sort")
    @classmethod
    def validate_sort(cls, v):
        if parse_sort(v) is None:
            raise ValueError(f"Unknown sort field: {v}")
        return v


def build_query_plan(params: BugListQuery) -> QueryPlan:
    """
    Build a deterministic query plan from validated list parameters.

    Args:
        params: Validated list query

    Returns:
        QueryPlan; equal inputs always give equal plans
    """
    filters = tuple(
        (field, getattr(params, field))
        for field in ("status", "priority", "severity")
        if getattr(params, field) is not None
    )
    sort_column, descending = parse_sort(params.sort)

    plan = QueryPlan(
        filters=filters,
        search_terms=tuple(params.search.split()) if params.search else (),
        sort_column=sort_column,
        descending=descending,
        page=params.page or DEFAULT_PAGE,
        limit=params.limit or DEFAULT_PAGE_SIZE,
    )
    logger.debug(f"Query plan: {plan}")
    return plan


def filter_clause(plan: QueryPlan) -> ColumnElement:
    """
    Render the plan's filters as a single SQL criterion.

    Equality filters are ANDed; the search terms are ORed against title and
    description (a bug matches if any term appears in either, case-insensitive).
    """
    criteria = [getattr(Bug, field) == value for field, value in plan.filters]

    if plan.search_terms:
        term_matches = []
        for term in plan.search_terms:
            pattern = f"%{escape_like_pattern(term)}%"
            term_matches.append(Bug.title.ilike(pattern, escape='\\'))
            term_matches.append(Bug.description.ilike(pattern, escape='\\'))
        criteria.append(or_(*term_matches))

    if not criteria:
        return true()
    return and_(*criteria)


def order_clauses(plan: QueryPlan) -> List[ColumnElement]:
    """Ordering for the plan, with id as tie-breaker so the order is total."""
    column = getattr(Bug, plan.sort_column)
    primary = column.desc() if plan.descending else column.asc()
    return [primary, Bug.id.asc()]
