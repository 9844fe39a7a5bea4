"""Service for cleanup operations."""
import logging
import threading
import time
from datetime import datetime, timezone

from sqlalchemy import delete

from api.database import SessionLocal
from api.models.db.timer import TimerDeadline
from api.services.auth_service import cleanup_expired_sessions
from api.services.timer_store import DatabaseStore

# Keep expired deadlines for a day so late reloads still see "time is up"
STALE_DEADLINE_GRACE_MS = 24 * 60 * 60 * 1000


def cleanup_stale_deadlines(now_ms: int | None = None, store: DatabaseStore | None = None) -> int:
    """Remove timer deadlines that expired long ago, evicting them from ``store``'s cache."""
    if now_ms is None:
        now_ms = int(datetime.now(timezone.utc).timestamp() * 1000)
    cutoff = now_ms - STALE_DEADLINE_GRACE_MS
    logger = logging.getLogger(__name__)

    db = SessionLocal()
    try:
        stale = [
            row.key
            for row in db.query(TimerDeadline).all()
            if not row.value.isdigit() or int(row.value) < cutoff
        ]
        if stale:
            db.execute(delete(TimerDeadline).where(TimerDeadline.key.in_(stale)))
            db.commit()
            if store is not None:
                store.forget(stale)
            logger.info(f"Cleaned up {len(stale)} stale timer deadlines")
        return len(stale)
    finally:
        db.close()


def run_cleanup(store: DatabaseStore | None = None) -> None:
    """Run all periodic cleanup jobs once."""
    logger = logging.getLogger(__name__)
    try:
        cleanup_stale_deadlines(store=store)
        db = SessionLocal()
        try:
            removed = cleanup_expired_sessions(db)
            if removed:
                logger.info(f"Cleaned up {removed} expired login sessions")
        finally:
            db.close()
    except Exception as e:
        logger.error(f"Cleanup failed: {e}")


def schedule_cleanup(store: DatabaseStore | None = None) -> None:
    """Schedule periodic cleanup of stale deadlines and login sessions."""
    # Run cleanup once per day
    cleanup_interval = 24 * 60 * 60

    def _worker() -> None:
        # Initial delay before first cleanup
        time.sleep(60)
        while True:
            run_cleanup(store)
            time.sleep(cleanup_interval)

    thread = threading.Thread(
        target=_worker,
        name="deadline_cleanup",
        daemon=True,
    )
    thread.start()
