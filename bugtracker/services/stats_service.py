"""
Bug statistics.

Collection-wide counts, recomputed from the database on every call.
"""
import logging
from typing import Any, Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from bugtracker.constants import STATUS_OPEN, STATUS_RESOLVED
from bugtracker.models.db_models import Bug

logger = logging.getLogger(__name__)


def count_by(db: Session, column) -> Dict[str, int]:
    """
    Count bugs grouped by a column.

    Args:
        db: Database session
        column: Bug column to group on (e.g. Bug.status)

    Returns:
        Mapping of each value present in the collection to its count
    """
    rows = (
        db.query(column, func.count(Bug.id))
        .group_by(column)
        .order_by(column)
        .all()
    )
    return {value: count for value, count in rows}


def get_bug_stats(db: Session) -> Dict[str, Any]:
    """
    Compute bug statistics over the whole collection.

    Args:
        db: Database session

    Returns:
        Dict with total, open, resolved, status_breakdown and priority_breakdown.
        Breakdowns only contain values that occur at least once.
    """
    status_breakdown = count_by(db, Bug.status)
    priority_breakdown = count_by(db, Bug.priority)
    total = db.query(func.count(Bug.id)).scalar() or 0

    stats = {
        "total": total,
        "open": status_breakdown.get(STATUS_OPEN, 0),
        "resolved": status_breakdown.get(STATUS_RESOLVED, 0),
        "status_breakdown": status_breakdown,
        "priority_breakdown": priority_breakdown,
    }
    logger.debug(f"Bug stats: total={total}, by status={status_breakdown}")
    return stats
