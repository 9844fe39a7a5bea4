"""Service layer for completed attempts."""
import logging
from datetime import datetime
from typing import Callable

from sqlalchemy import func, select
from sqlalchemy.orm import Session as DbSession, joinedload, sessionmaker

from api.database import SessionLocal
from api.models.db.attempt import Attempt
from api.models.db.test import Test
from api.utils.db_utils import run_db

logger = logging.getLogger(__name__)


def create_attempt(
    db: DbSession,
    user_id: int,
    test_id: str,
    score: int,
    total_questions: int,
    percentage: float,
    completed_at: datetime,
) -> Attempt:
    """Store a finished attempt."""
    attempt = Attempt(
        user_id=user_id,
        test_id=test_id,
        score=score,
        total_questions=total_questions,
        percentage=percentage,
        completed_at=completed_at,
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    return attempt


def get_attempts_by_test(
    db: DbSession,
    test_id: str,
    limit: int = 100,
    offset: int = 0,
) -> list[Attempt]:
    """
    Get all attempts for a test (for owner review), newest first.
    """
    query = (
        select(Attempt)
        .options(joinedload(Attempt.user))
        .where(Attempt.test_id == test_id)
        .order_by(Attempt.completed_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(db.execute(query).scalars().all())


def get_attempts_by_user(
    db: DbSession,
    user_id: int,
    test_id: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[tuple[Attempt, str]]:
    """
    Get attempts for a user with the test title, optionally filtered by test_id.
    """
    query = (
        select(Attempt, Test.title)
        .join(Test, Test.test_id == Attempt.test_id)
        .where(Attempt.user_id == user_id)
    )

    if test_id:
        query = query.where(Attempt.test_id == test_id)

    query = query.order_by(Attempt.completed_at.desc()).limit(limit).offset(offset)

    return [(attempt, title) for attempt, title in db.execute(query).all()]


def count_attempts(
    db: DbSession,
    user_id: int | None = None,
    test_id: str | None = None,
) -> int:
    """Count attempts matching criteria."""
    query = select(func.count(Attempt.attempt_id))

    if user_id:
        query = query.where(Attempt.user_id == user_id)
    if test_id:
        query = query.where(Attempt.test_id == test_id)

    return db.execute(query).scalar() or 0


class DatabaseAttemptRecorder:
    """AttemptRecorder backed by the SQL database."""

    def __init__(self, session_factory: Callable[[], DbSession] | sessionmaker = SessionLocal) -> None:
        self.session_factory = session_factory

    def _record(
        self,
        user_id: int,
        test_id: str,
        correct: int,
        total: int,
        percentage: float,
        completed_at: datetime,
    ) -> None:
        with self.session_factory() as db:
            attempt = create_attempt(
                db, user_id, test_id, correct, total, percentage, completed_at
            )
            logger.info(
                "Recorded attempt %s for user %s on test %s",
                attempt.attempt_id,
                user_id,
                test_id,
            )

    async def record_attempt(
        self,
        user_id: int,
        test_id: str,
        correct: int,
        total: int,
        percentage: float,
        completed_at: datetime,
    ) -> None:
        await run_db(
            self._record, user_id, test_id, correct, total, percentage, completed_at
        )
