"""API route modules."""
from api.routes import attempts, auth, sessions, tests

__all__ = ["attempts", "auth", "sessions", "tests"]
