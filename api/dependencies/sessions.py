"""Session manager dependency."""
from fastapi import Request

from api.services.session_manager import SessionManager


def get_session_manager(request: Request) -> SessionManager:
    """Return the application-wide session manager."""
    manager = getattr(request.app.state, "session_manager", None)
    if manager is None:
        manager = SessionManager()
        request.app.state.session_manager = manager
    return manager
