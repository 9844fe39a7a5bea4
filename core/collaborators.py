"""Interfaces of the backend services the session engine depends on."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, Sequence

from models import Question, QuestionRow, TestInfo


class QuestionBank(Protocol):
    """Stores tests and their questions."""

    async def get_test(self, test_id: str) -> TestInfo:
        """Raise ``NotFoundError`` when the test does not exist."""
        ...

    async def get_questions(self, test_id: str) -> list[Question]: ...

    async def create_test(
        self,
        title: str,
        time_limit: int,
        created_by: int | None = None,
        questions_count: int | None = None,
    ) -> TestInfo: ...

    async def create_questions(self, test_id: str, rows: Sequence[QuestionRow]) -> None: ...

    async def update_test(self, test_id: str, fields: dict[str, Any]) -> None: ...

    async def delete_test(self, test_id: str) -> None: ...


class AttemptRecorder(Protocol):
    """Persists finished attempts."""

    async def record_attempt(
        self,
        user_id: int,
        test_id: str,
        correct: int,
        total: int,
        percentage: float,
        completed_at: datetime,
    ) -> None: ...
