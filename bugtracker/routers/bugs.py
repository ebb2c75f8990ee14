"""
Bugs API router.

CRUD, comments, status transitions, per-status listing and statistics
for bug records. Request bodies, query and path parameters are validated by
pydantic; those errors and the repository errors are rendered into the error
envelope by the handlers registered in main.py.
"""
import math
from typing import Annotated
from fastapi import APIRouter, Depends, Query, status as http_status
from sqlalchemy.orm import Session

from bugtracker.database import get_db
from bugtracker.models.schemas import (
    BugCreate, BugListResponse, BugResponse, BugSchema, BugStatsResponse,
    BugStatsSchema, BugStatusListResponse, BugUpdate, CommentCreateRequest,
    DeleteResponse, ErrorResponse, PaginationSchema, StatusUpdateRequest,
)
from bugtracker.constants import BugStatus
from bugtracker.services.bug_repository import BugRepository
from bugtracker.services.query_builder import BugListQuery, build_query_plan
from bugtracker.services.stats_service import get_bug_stats

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation error or malformed bug id"},
    404: {"model": ErrorResponse, "description": "Bug not found"},
}


def get_repository(db: Session = Depends(get_db)) -> BugRepository:
    """FastAPI dependency providing a repository bound to the request session."""
    return BugRepository(db)


@router.get("", response_model=BugListResponse, responses={400: ERROR_RESPONSES[400]})
async def list_bugs(
    params: Annotated[BugListQuery, Query()],
    repo: BugRepository = Depends(get_repository)
):
    """
    List bugs with optional filters, sorting and pagination.

    Returns:
        One page of bugs plus the total number of matching bugs

    Raises:
        RequestValidationError: If any query parameter is invalid
    """
    plan = build_query_plan(params)
    bugs, total = repo.list_bugs(plan)

    return BugListResponse(
        count=len(bugs),
        total=total,
        pagination=PaginationSchema(
            page=plan.page,
            limit=plan.limit,
            pages=math.ceil(total / plan.limit),
        ),
        data=[BugSchema.from_model(bug) for bug in bugs],
    )


@router.get("/stats", response_model=BugStatsResponse)
async def bug_stats(db: Session = Depends(get_db)):
    """
    Get bug statistics for the whole collection.

    Not cached: counts are recomputed on every request.
    """
    return BugStatsResponse(data=BugStatsSchema(**get_bug_stats(db)))


@router.get("/status/{status}", response_model=BugStatusListResponse, responses={400: ERROR_RESPONSES[400]})
async def bugs_by_status(status: BugStatus, repo: BugRepository = Depends(get_repository)):
    """Get every bug with the given status."""
    bugs = repo.by_status(status)
    return BugStatusListResponse(
        count=len(bugs),
        data=[BugSchema.from_model(bug) for bug in bugs],
    )


@router.get("/{bug_id}", response_model=BugResponse, responses=ERROR_RESPONSES)
async def get_bug(bug_id: str, repo: BugRepository = Depends(get_repository)):
    """Get a single bug by id."""
    return BugResponse(data=BugSchema.from_model(repo.get_by_id(bug_id)))


@router.post("", response_model=BugResponse, status_code=http_status.HTTP_201_CREATED,
             responses={400: ERROR_RESPONSES[400]})
async def create_bug(payload: BugCreate, repo: BugRepository = Depends(get_repository)):
    """
    Create a new bug.

    status, priority and severity default to open, medium and medium.
    """
    bug = repo.create(payload)
    return BugResponse(data=BugSchema.from_model(bug))


@router.put("/{bug_id}", response_model=BugResponse, responses=ERROR_RESPONSES)
async def update_bug(bug_id: str, payload: BugUpdate, repo: BugRepository = Depends(get_repository)):
    """
    Update some or all fields of a bug.

    Fields that are not sent keep their current values.
    """
    bug = repo.update(bug_id, payload)
    return BugResponse(data=BugSchema.from_model(bug))


@router.delete("/{bug_id}", response_model=DeleteResponse, responses=ERROR_RESPONSES)
async def delete_bug(bug_id: str, repo: BugRepository = Depends(get_repository)):
    """Permanently delete a bug and its comments."""
    repo.delete(bug_id)
    return DeleteResponse()


@router.post("/{bug_id}/comments", response_model=BugResponse, responses=ERROR_RESPONSES)
async def add_comment(bug_id: str, payload: CommentCreateRequest,
                      repo: BugRepository = Depends(get_repository)):
    """Append a comment to a bug and return the updated bug."""
    bug = repo.append_comment(bug_id, payload.author, payload.content)
    return BugResponse(data=BugSchema.from_model(bug))


@router.patch("/{bug_id}/status", response_model=BugResponse, responses=ERROR_RESPONSES)
async def update_bug_status(bug_id: str, payload: StatusUpdateRequest,
                            repo: BugRepository = Depends(get_repository)):
    """Move a bug to a new status and return the updated bug."""
    bug = repo.transition_status(bug_id, payload.status)
    return BugResponse(data=BugSchema.from_model(bug))
