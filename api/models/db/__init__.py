"""Database models."""
from api.models.db.user import User, Session, UserRole
from api.models.db.test import Question, Test
from api.models.db.attempt import Attempt
from api.models.db.timer import TimerDeadline

__all__ = [
    "User",
    "Session",
    "UserRole",
    "Test",
    "Question",
    "Attempt",
    "TimerDeadline",
]
