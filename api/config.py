"""Application configuration and constants."""
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float_env(name: str, default: float) -> float:
    """Parse float from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_bool_env(name: str, default: bool = False) -> bool:
    """Parse boolean flag from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _parse_list_env(name: str) -> set[str]:
    """Parse comma-separated values from environment variable."""
    raw = os.environ.get(name, "")
    return {item.strip().lower() for item in raw.split(",") if item.strip()}


# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'testadmin.db'}"
)
DATABASE_ECHO = _parse_bool_env("DATABASE_ECHO")

# Authentication
SECRET_KEY = os.environ.get(
    "SECRET_KEY",
    "CHANGE_ME_IN_PRODUCTION_USE_openssl_rand_hex_32"
)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = _parse_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60)
SESSION_EXTEND_MINUTES = _parse_int_env("SESSION_EXTEND_MINUTES", 60)
ADMIN_EMAILS = _parse_list_env("ADMIN_EMAILS")

# Tests and sessions
DEFAULT_TIME_LIMIT_MINUTES = _parse_int_env("DEFAULT_TIME_LIMIT_MINUTES", 20)
TIMER_POLL_INTERVAL_SECONDS = _parse_float_env("TIMER_POLL_INTERVAL_SECONDS", 1.0)
MAX_UPLOAD_BYTES = _parse_int_env("MAX_UPLOAD_BYTES", 5 * 1024 * 1024)  # 5 MB

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
