"""Helpers for running blocking database work from coroutines."""
import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from core.errors import BackendError

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def run_db(func: Callable[..., T], *args, **kwargs) -> T:
    """Run ``func`` in the threadpool, reporting database failures as BackendError."""
    try:
        return await run_in_threadpool(func, *args, **kwargs)
    except SQLAlchemyError as exc:
        logger.exception("Database call %s failed", getattr(func, "__name__", func))
        raise BackendError("Database request failed. Please try again.") from exc
