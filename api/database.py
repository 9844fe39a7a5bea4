"""Engine, session factory and schema setup."""
from collections.abc import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session as DbSession, sessionmaker

from api.config import DATABASE_ECHO, DATABASE_URL

_is_sqlite = DATABASE_URL.startswith("sqlite")

# Sync routes and threadpool collaborators share the engine across threads
engine = create_engine(
    DATABASE_URL,
    echo=DATABASE_ECHO,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
)

if _is_sqlite:

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
        # questions and attempts cascade with their test
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all database models."""


def get_db() -> Iterator[DbSession]:
    """Request-scoped database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create missing tables for every registered model."""
    import api.models.db  # noqa: F401

    Base.metadata.create_all(bind=engine)
