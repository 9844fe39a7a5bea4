"""Test-session Pydantic models."""
from pydantic import BaseModel, Field


class SessionQuestion(BaseModel):
    """Question as shown to a test-taker (no answer key)."""

    question_id: str
    category: str
    sub_category: str
    question_text: str
    options: list[str]


class SessionAnswer(BaseModel):
    question_id: str
    selected_option: str


class SessionScore(BaseModel):
    correct: int
    total: int
    percentage: float


class SessionResponse(BaseModel):
    """Snapshot of a test session."""

    test_id: str
    title: str | None = None
    state: str
    time_limit: int | None = None
    deadline: int | None = None
    remaining_seconds: int
    current_index: int
    questions: list[SessionQuestion] = []
    answers: list[SessionAnswer] = []
    answered_count: int = 0
    score: SessionScore | None = None
    error: str | None = None


class AnswerRequest(BaseModel):
    """Select (or clear with "") the option for a question."""

    selected_option: str = Field("", max_length=4)


class NavigateRequest(BaseModel):
    index: int | None = None
    direction: str | None = Field(None, pattern="^(next|previous)$")
