"""Main FastAPI application with modularized routes."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.config import LOG_LEVEL
from api.database import init_db
from api.routes import attempts, auth, sessions, tests
from api.services.cleanup_service import schedule_cleanup
from api.services.session_manager import SessionManager
from api.services.timer_store import DatabaseStore
from core.errors import (
    BackendError,
    NotFoundError,
    ScoringError,
    SessionStateError,
    TestSessionError,
    ValidationError,
)
from core.logging_setup import level_from_name, setup_console_logging

setup_console_logging(level_from_name(LOG_LEVEL))
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotFoundError: 404,
    ValidationError: 400,
    SessionStateError: 409,
    BackendError: 502,
    ScoringError: 500,
}

app = FastAPI(title="Test Administration API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TestSessionError)
async def test_session_error_handler(request: Request, exc: TestSessionError) -> JSONResponse:
    """Translate engine errors into HTTP responses."""
    status_code = ERROR_STATUS.get(type(exc), 400)
    if status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Initialize database, session registry and cleanup tasks on startup."""
    init_db()
    if getattr(app.state, "session_manager", None) is None:
        app.state.session_manager = SessionManager()
    store = app.state.session_manager.store
    schedule_cleanup(store if isinstance(store, DatabaseStore) else None)


@app.on_event("shutdown")
async def shutdown_events() -> None:
    """Stop timer polling for live sessions."""
    manager = getattr(app.state, "session_manager", None)
    if manager is not None:
        manager.shutdown()


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# Include routers
app.include_router(auth.router)
app.include_router(tests.router)
app.include_router(sessions.router)
app.include_router(attempts.router)
