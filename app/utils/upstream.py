"""Helpers that turn store failures and slow upstream calls into ``UpstreamFailure``."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], *, timeout: Optional[float] = None, operation: str = "request") -> T:
    """Await ``awaitable`` for at most ``timeout`` seconds (``REQUEST_TIMEOUT_SECONDS`` by default)."""
    limit = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(awaitable, timeout=limit)
    except asyncio.TimeoutError as e:
        logger.error(f"{operation} timed out after {limit}s")
        raise UpstreamFailure(f"{operation} timed out") from e


@asynccontextmanager
async def store_errors(db: AsyncSession, operation: str):
    """Roll back and raise ``UpstreamFailure`` when the block hits a database error."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Database error during {operation}: {e}", exc_info=True)
        await db.rollback()
        raise UpstreamFailure(f"Database error during {operation}") from e
