"""Attempt history endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.dependencies.auth import get_current_user
from api.models import AttemptResponse
from api.models.db.user import User
from api.services.attempt_service import count_attempts, get_attempts_by_user
from api.utils import validate_id

router = APIRouter(prefix="/api/attempts", tags=["attempts"])


@router.get("/me")
def list_my_attempts(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
    test_id: str | None = Query(None, alias="testId"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> dict[str, object]:
    """List the current user's completed attempts, newest first.

    Args:
        test_id: Optional test ID to filter by
        limit: Maximum number of results
        offset: Number of results to skip (for pagination)

    Returns:
        Dictionary with attempts list and pagination info
    """
    if test_id:
        test_id = validate_id("testId", test_id)

    attempts = []
    for attempt, title in get_attempts_by_user(
        db, current_user.id, test_id=test_id, limit=limit, offset=offset
    ):
        response = AttemptResponse.model_validate(attempt)
        response.test_title = title
        attempts.append(response.model_dump(mode="json"))

    return {
        "attempts": attempts,
        "total": count_attempts(db, user_id=current_user.id, test_id=test_id),
        "limit": limit,
        "offset": offset,
    }
