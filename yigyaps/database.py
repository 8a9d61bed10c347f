import asyncio
import json
import logging
import random
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from yigyaps.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Substrings of driver messages for errors that succeed when simply retried.
_TRANSIENT_MARKERS = ("locked", "busy", "deadlock", "could not serialize", "connection was closed")


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(UTC)


def json_dumps(value: Any) -> str:
    """JSON columns keep non-ASCII text (tags, configuration) unescaped."""
    return json.dumps(value, ensure_ascii=False)


def engine_kwargs(url: str) -> dict:
    kwargs: dict[str, Any] = {"json_serializer": json_dumps}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    return kwargs


engine = create_async_engine(settings.database_url, echo=settings.debug, **engine_kwargs(settings.database_url))
async_session = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


def is_transient(exc: DBAPIError) -> bool:
    if exc.connection_invalidated:
        return True
    message = str(exc.orig).lower()
    return any(marker in message for marker in _TRANSIENT_MARKERS)


async def retry_transient(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 2,
    initial_delay: float = 0.05,
    max_delay: float = 0.5,
) -> T:
    """Run *operation*, retrying after a jittered backoff on a transient DB error.

    The operation must own its transaction (commit on success) and re-read
    whatever it needs, so that a rollback before the retry leaves nothing
    half-written. Non-transient errors and the last failure propagate.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    delay = initial_delay
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except OperationalError as exc:
            await db.rollback()
            if attempt == attempts or not is_transient(exc):
                raise
            pause = random.uniform(delay / 2, delay)
            logger.warning("transient database error, retry %d/%d in %.3fs: %s", attempt, attempts - 1, pause, exc.orig)
            await asyncio.sleep(pause)
            delay = min(delay * 2, max_delay)
    raise AssertionError("retry loop exited without a result")
