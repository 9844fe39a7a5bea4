"""Test management endpoints."""
import logging
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session as DbSession

from api.config import DEFAULT_TIME_LIMIT_MINUTES, MAX_UPLOAD_BYTES
from api.database import get_db
from api.dependencies.auth import get_admin_user, get_current_user
from api.dependencies.sessions import get_session_manager
from api.models import AttemptResponse, TestCreateResponse, TestSummary, TestUpdate
from api.models.db.test import Test
from api.models.db.user import User
from api.services import attempt_service, test_service
from api.services.session_manager import SessionManager
from api.utils import as_utc, validate_id, validate_title
from core.sampling import category_distribution
from csv_import import CsvQuestionExtractor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tests", tags=["tests"])


def _creator_name(test: Test) -> str:
    creator = test.creator
    if creator is None:
        return "Unknown User"
    return creator.display_name or creator.username


def _summary(test: Test, total_questions: int) -> TestSummary:
    return TestSummary(
        test_id=test.test_id,
        title=test.title,
        time_limit=test.time_limit,
        questions_count=test.questions_count,
        total_questions=total_questions,
        created_at=as_utc(test.created_at),
        created_by=test.created_by,
        creator_name=_creator_name(test),
    )


def _require_manager(test: Test, user: User) -> None:
    """Only the creator or an administrator may change a test."""
    if not (user.is_admin or test.created_by == user.id):
        raise HTTPException(status_code=403, detail="Only the owner can manage this test")


@router.get("", response_model=list[TestSummary])
def list_tests(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> list[TestSummary]:
    """List all tests, newest first."""
    return [_summary(test, total) for test, total in test_service.list_tests(db)]


@router.post("/upload", response_model=TestCreateResponse, status_code=201)
def upload_test(
    current_user: Annotated[User, Depends(get_admin_user)],
    db: Annotated[DbSession, Depends(get_db)],
    file: UploadFile = File(...),
    title: str = Form(...),
    time_limit: int = Form(DEFAULT_TIME_LIMIT_MINUTES),
    questions_count: int | None = Form(None),
) -> TestCreateResponse:
    """Create a test from an uploaded CSV question bank."""
    title = validate_title(title)
    file_name = file.filename or ""
    if Path(file_name).suffix.lower() != ".csv":
        raise HTTPException(status_code=400, detail="Only .csv files are supported")

    data = file.file.read(MAX_UPLOAD_BYTES + 1)
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="CSV file is too large")

    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded")

    # Validate every row before anything is written
    extractor = CsvQuestionExtractor(text, source=file_name)
    rows = extractor.extract()

    test = test_service.create_test_with_questions(
        db,
        title=title,
        time_limit=time_limit,
        rows=rows,
        created_by=current_user.id,
        questions_count=questions_count,
    )
    logger.info("User %s uploaded test %s from %s", current_user.id, test.test_id, file_name)

    return TestCreateResponse(
        test=_summary(test, len(rows)),
        categories=category_distribution(rows),
        logs=extractor.logs,
    )


@router.get("/{test_id}")
def get_test(
    test_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Get test configuration and its category breakdown."""
    test_id = validate_id("testId", test_id)
    test = test_service.get_test(db, test_id)
    questions = [question.to_data() for question in test_service.get_questions(db, test_id)]
    result = _summary(test, len(questions)).model_dump()
    result["categories"] = category_distribution(questions)
    result["can_manage"] = current_user.is_admin or test.created_by == current_user.id
    return result


@router.patch("/{test_id}", response_model=TestSummary)
def update_test(
    test_id: str,
    update: TestUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> TestSummary:
    """Update title, time limit or questions count."""
    test_id = validate_id("testId", test_id)
    test = test_service.get_test(db, test_id)
    _require_manager(test, current_user)

    fields = update.model_dump(exclude_unset=True, exclude={"use_all_questions"})
    if update.use_all_questions:
        fields["questions_count"] = None

    test = test_service.update_test(db, test_id, fields)
    return _summary(test, test_service.count_questions(db, test_id))


@router.delete("/{test_id}")
def delete_test(
    test_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> dict[str, str]:
    """Delete test with its questions and attempts."""
    test_id = validate_id("testId", test_id)
    test = test_service.get_test(db, test_id)
    _require_manager(test, current_user)

    sessions.discard_test(test_id)
    test_service.delete_test(db, test_id)
    return {"status": "deleted"}


@router.get("/{test_id}/attempts", response_model=list[AttemptResponse])
def list_test_attempts(
    test_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[DbSession, Depends(get_db)],
) -> list[AttemptResponse]:
    """List attempts for a test (owner or admin)."""
    test_id = validate_id("testId", test_id)
    test = test_service.get_test(db, test_id)
    _require_manager(test, current_user)

    results = []
    for attempt in attempt_service.get_attempts_by_test(db, test_id):
        response = AttemptResponse.model_validate(attempt)
        if attempt.user is not None:
            response.user_email = attempt.user.email
            response.user_name = attempt.user.display_name or attempt.user.username
        response.test_title = test.title
        results.append(response)
    return results
