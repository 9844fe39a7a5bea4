"""Database-backed key/value store for session deadlines."""
import logging
import threading
from typing import Callable

from sqlalchemy import delete
from sqlalchemy.orm import Session as DbSession, sessionmaker

from api.database import SessionLocal
from api.models.db.timer import TimerDeadline

logger = logging.getLogger(__name__)


class DatabaseStore:
    """
    KeyValueStore persisting deadlines in ``timer_deadlines``.

    Values are cached after the first read; writes go straight through to
    the database so a restarted server resumes running timers.
    """

    def __init__(self, session_factory: Callable[[], DbSession] | sessionmaker = SessionLocal) -> None:
        self.session_factory = session_factory
        self._cache: dict[str, str | None] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            if key in self._cache:
                return self._cache[key]
        with self.session_factory() as db:
            row = db.get(TimerDeadline, key)
            value = row.value if row else None
        with self._lock:
            self._cache[key] = value
        return value

    def set(self, key: str, value: str) -> None:
        with self.session_factory() as db:
            row = db.get(TimerDeadline, key)
            if row is None:
                db.add(TimerDeadline(key=key, value=value))
            else:
                row.value = value
            db.commit()
        with self._lock:
            self._cache[key] = value

    def delete(self, key: str) -> None:
        with self.session_factory() as db:
            db.execute(delete(TimerDeadline).where(TimerDeadline.key == key))
            db.commit()
        with self._lock:
            self._cache.pop(key, None)
        logger.debug("Cleared deadline %s", key)

    def forget(self, keys) -> None:
        """Drop cached values for keys removed behind the store's back."""
        with self._lock:
            for key in keys:
                self._cache.pop(key, None)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
