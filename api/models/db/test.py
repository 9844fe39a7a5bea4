"""
Test and Question database models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.database import Base
from models import Question as QuestionData
from models import TestInfo, decode_options, encode_options

if TYPE_CHECKING:
    from api.models.db.user import User


def _new_id() -> str:
    return uuid.uuid4().hex


class Test(Base):
    """
    Timed multiple-choice test created from an uploaded question bank.
    """

    __tablename__ = "tests"
    __test__ = False

    test_id: Mapped[str] = mapped_column(
        String(64), primary_key=True, index=True, default=_new_id
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    time_limit: Mapped[int] = mapped_column(nullable=False)  # minutes
    # None means every question is used
    questions_count: Mapped[int | None] = mapped_column(nullable=True)
    created_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    creator: Mapped["User | None"] = relationship("User", back_populates="tests")
    questions: Mapped[list["Question"]] = relationship(
        "Question", back_populates="test"
    )

    def to_info(self) -> TestInfo:
        return TestInfo(
            test_id=self.test_id,
            title=self.title,
            time_limit=self.time_limit,
            questions_count=self.questions_count,
            created_by=self.created_by,
            created_at=self.created_at,
        )


class Question(Base):
    """
    Single multiple-choice question.
    Options are stored as one JSON-encoded text field.
    """

    __tablename__ = "questions"

    question_id: Mapped[str] = mapped_column(
        String(64), primary_key=True, index=True, default=_new_id
    )
    test_id: Mapped[str] = mapped_column(
        ForeignKey("tests.test_id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(default=0, nullable=False)
    category: Mapped[str] = mapped_column(String(200), nullable=False)
    sub_category: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    options_json: Mapped[str] = mapped_column(Text, nullable=False)
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    test: Mapped["Test"] = relationship("Test", back_populates="questions")

    @property
    def options(self) -> list[str]:
        """Parse options from JSON."""
        return decode_options(self.options_json)

    @options.setter
    def options(self, value: list[str]) -> None:
        """Serialize options to JSON."""
        self.options_json = encode_options(value)

    def to_data(self) -> QuestionData:
        return QuestionData(
            question_id=self.question_id,
            test_id=self.test_id,
            category=self.category,
            sub_category=self.sub_category,
            question_text=self.question_text,
            options=self.options,
            correct_answer=self.correct_answer,
        )
