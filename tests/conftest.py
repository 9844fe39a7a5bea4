"""
Pytest configuration and shared fixtures.

The database location is pinned to a temporary directory before any
application module is imported, since the engine is created at import time.
"""
import os
import tempfile
from pathlib import Path

_DB_DIR = Path(tempfile.mkdtemp(prefix="testadmin-tests-"))
os.environ["DB_DIR"] = str(_DB_DIR)
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ["ADMIN_EMAILS"] = "admin@example.com"

import pytest  # noqa: E402

import api.models.db  # noqa: E402,F401
from api.database import Base, SessionLocal, engine  # noqa: E402
from models import Question  # noqa: E402


@pytest.fixture
def db_tables():
    """Fresh schema for every test that touches the database."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(db_tables):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_question(
    question_id: str,
    category: str = "General",
    correct_answer: str = "Option 1",
    options: list[str] | None = None,
    test_id: str = "t1",
) -> Question:
    return Question(
        question_id=question_id,
        test_id=test_id,
        category=category,
        sub_category="",
        question_text=f"Question {question_id}?",
        options=options or ["alpha", "beta", "gamma", "delta"],
        correct_answer=correct_answer,
    )


def make_bank(sizes: dict[str, int]) -> list[Question]:
    """Build questions grouped by category, e.g. ``{"A": 6, "B": 6}``."""
    return [
        make_question(f"{category}-{n}", category=category)
        for category, size in sizes.items()
        for n in range(size)
    ]
