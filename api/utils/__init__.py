"""Utility modules."""
from api.utils.db_utils import run_db
from api.utils.time_utils import as_utc
from api.utils.validation import validate_id, validate_title

__all__ = [
    "run_db",
    "as_utc",
    "validate_id",
    "validate_title",
]
