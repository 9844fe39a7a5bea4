"""Test-related Pydantic models."""
from datetime import datetime

from pydantic import BaseModel, Field


class TestSummary(BaseModel):
    """Test listing entry."""

    test_id: str
    title: str
    time_limit: int
    questions_count: int | None
    total_questions: int
    created_at: datetime
    created_by: int | None
    creator_name: str


class TestUpdate(BaseModel):
    """Model for updating test configuration."""

    title: str | None = Field(None, min_length=1, max_length=200)
    time_limit: int | None = Field(None, ge=1)
    questions_count: int | None = Field(None, ge=1)
    use_all_questions: bool = False


class TestCreateResponse(BaseModel):
    """Result of a CSV upload."""

    test: TestSummary
    categories: dict[str, int]
    logs: list[str]
