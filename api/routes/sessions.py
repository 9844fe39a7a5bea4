"""Test-taking session endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends

from api.dependencies.auth import get_current_user
from api.dependencies.sessions import get_session_manager
from api.models import AnswerRequest, NavigateRequest, SessionResponse
from api.models.db.user import User
from api.services.session_manager import SessionManager
from api.utils import validate_id
from core.controller import SessionState
from serialization import serialize_session

router = APIRouter(prefix="/api/tests/{test_id}/session", tags=["sessions"])


@router.post("", response_model=SessionResponse)
async def start_session(
    test_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> dict[str, object]:
    """Start a session, or resume the one already in progress."""
    test_id = validate_id("testId", test_id)
    controller = await sessions.start(current_user.id, test_id)
    return serialize_session(controller)


@router.get("", response_model=SessionResponse)
async def get_session(
    test_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> dict[str, object]:
    """Current session state including the remaining time."""
    controller = sessions.get(current_user.id, validate_id("testId", test_id))
    # catch up in case the polling task has not run since the deadline
    await controller.tick()
    return serialize_session(controller)


@router.put("/answers/{question_id}", response_model=SessionResponse)
async def select_answer(
    test_id: str,
    question_id: str,
    payload: AnswerRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> dict[str, object]:
    """Select an option (0-based index string) for a question."""
    controller = sessions.get(current_user.id, validate_id("testId", test_id))
    controller.select_answer(question_id, payload.selected_option)
    return serialize_session(controller)


@router.post("/navigate", response_model=SessionResponse)
async def navigate(
    test_id: str,
    payload: NavigateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> dict[str, object]:
    """Jump to a question index or step next/previous."""
    controller = sessions.get(current_user.id, validate_id("testId", test_id))
    if payload.index is not None:
        controller.go_to(payload.index)
    elif payload.direction == "next":
        controller.next()
    elif payload.direction == "previous":
        controller.previous()
    return serialize_session(controller)


@router.post("/submit", response_model=SessionResponse)
async def submit_session(
    test_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> dict[str, object]:
    """Score the session and record the attempt."""
    test_id = validate_id("testId", test_id)
    controller = sessions.get(current_user.id, test_id)
    await controller.submit()
    payload = serialize_session(controller)
    if controller.state is SessionState.COMPLETED:
        sessions.discard(current_user.id, test_id)
    return payload


@router.delete("")
async def leave_session(
    test_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> dict[str, str]:
    """Leave the session page; a running deadline keeps counting."""
    discarded = sessions.discard(current_user.id, validate_id("testId", test_id))
    return {"status": "discarded" if discarded else "not_found"}
