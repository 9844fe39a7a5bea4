"""Wall-clock session deadlines that survive reloads."""
from __future__ import annotations

import logging
import math
import time
from typing import Callable, Protocol

from core.errors import ValidationError

logger = logging.getLogger(__name__)

KEY_PREFIX = "test-deadline"


class KeyValueStore(Protocol):
    """Persistent string store used for timer deadlines."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store for tests and single-process use."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


def timer_key(test_id: str, scope: str | None = None) -> str:
    """Build the storage key for a test deadline."""
    if scope:
        return f"{KEY_PREFIX}:{scope}:{test_id}"
    return f"{KEY_PREFIX}:{test_id}"


def parse_deadline(raw: str | None) -> int | None:
    """Parse a stored millisecond timestamp; anything else means no timer."""
    if raw is None:
        return None
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    return value if value > 0 else None


class SessionTimer:
    """
    Deadline bookkeeping for test sessions.

    Deadlines are absolute epoch milliseconds kept in ``store`` under a key
    namespaced by ``scope`` and test id. Starting a timer that already has
    a deadline resumes it instead of resetting the clock.
    """

    def __init__(
        self,
        store: KeyValueStore,
        scope: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.scope = scope
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _key(self, test_id: str) -> str:
        return timer_key(test_id, self.scope)

    def deadline(self, test_id: str) -> int | None:
        return parse_deadline(self.store.get(self._key(test_id)))

    def start(self, test_id: str, limit_minutes: int) -> int:
        """Return the session deadline, creating it on first entry."""
        existing = self.deadline(test_id)
        if existing is not None:
            logger.debug("Resuming timer for test %s", test_id)
            return existing

        if not isinstance(limit_minutes, int) or limit_minutes <= 0:
            raise ValidationError("Time limit must be a positive number of minutes")

        deadline = self._now_ms() + limit_minutes * 60 * 1000
        self.store.set(self._key(test_id), str(deadline))
        logger.debug("Started %d minute timer for test %s", limit_minutes, test_id)
        return deadline

    def remaining(self, test_id: str) -> int:
        """Whole seconds left before the deadline, never negative."""
        deadline = self.deadline(test_id)
        if deadline is None:
            return 0
        return max(0, math.floor((deadline - self._now_ms()) / 1000))

    def clear(self, test_id: str) -> None:
        self.store.delete(self._key(test_id))
