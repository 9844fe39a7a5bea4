"""Attempt-related Pydantic models."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class AttemptResponse(BaseModel):
    """Completed attempt as listed on the dashboard."""

    model_config = ConfigDict(from_attributes=True)

    attempt_id: str
    user_id: int | None
    test_id: str
    score: int
    total_questions: int
    percentage: float
    completed_at: datetime
    user_email: str | None = None
    user_name: str | None = None
    test_title: str | None = None
