"""FastAPI dependencies."""
from api.dependencies.auth import get_admin_user, get_current_user
from api.dependencies.sessions import get_session_manager

__all__ = [
    "get_admin_user",
    "get_current_user",
    "get_session_manager",
]
