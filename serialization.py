from __future__ import annotations

from typing import Any, Iterable

from core.controller import SessionController, SessionState
from core.scoring import ScoreResult
from models import Question, UserAnswer


def serialize_question(question: Question) -> dict[str, Any]:
    """Question as shown to a test-taker; the answer key is never included."""
    return {
        "question_id": question.question_id,
        "category": question.category,
        "sub_category": question.sub_category,
        "question_text": question.question_text,
        "options": list(question.options),
    }


def serialize_answers(answers: Iterable[UserAnswer]) -> list[dict[str, Any]]:
    return [
        {"question_id": answer.question_id, "selected_option": answer.selected_option}
        for answer in answers
    ]


def serialize_score(result: ScoreResult | None) -> dict[str, Any] | None:
    if result is None or result.total == 0:
        return None
    return {
        "correct": result.correct,
        "total": result.total,
        "percentage": result.percentage,
    }


def serialize_session(controller: SessionController) -> dict[str, Any]:
    test = controller.test
    payload: dict[str, Any] = {
        "test_id": controller.test_id,
        "title": test.title if test else None,
        "state": controller.state.value,
        "time_limit": test.time_limit if test else None,
        "deadline": controller.deadline,
        "remaining_seconds": controller.remaining(),
        "current_index": controller.current_index,
        "questions": [],
        "answers": [],
        "answered_count": controller.answered_count,
        "score": None,
        "error": controller.error,
    }
    if controller.state in (SessionState.IN_PROGRESS, SessionState.COMPLETED):
        payload["questions"] = [serialize_question(q) for q in controller.questions]
        payload["answers"] = serialize_answers(controller.answers.values())
    if controller.state is SessionState.COMPLETED:
        payload["score"] = serialize_score(controller.result)
    return payload
