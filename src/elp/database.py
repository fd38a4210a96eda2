"""Async SQLAlchemy engine and session management."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from elp.db.base import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_kwargs(url: str, echo: bool) -> dict[str, Any]:
    """Pool settings per backend. SQLite in-memory needs a single shared connection."""
    if url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"echo": echo, "connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "echo": echo,
        "connect_args": {"statement_cache_size": 0},
    }


async def init_db(url: str, *, echo: bool = False) -> None:
    """Initialize the database engine and session factory."""
    global _engine, _session_factory  # noqa: PLW0603
    _engine = create_async_engine(url, **_engine_kwargs(url, echo))
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_tables() -> None:
    """Create all tables from ORM metadata (idempotent)."""
    import elp.db.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the database engine."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_engine() -> AsyncEngine:
    """Get the async engine instance."""
    if _engine is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _engine


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    if _session_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    async with _session_factory() as session:
        yield session


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """Session for work outside a request. Commits on success, rolls back on error."""
    if _session_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def retry_read(
    read: Callable[[], Awaitable[T]],
    *,
    attempts: int = 2,
    delay: float = 0.1,
) -> T:
    """Run an idempotent read, retrying on transient connection errors.

    Only use for SELECT-only callables; writes are never retried.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await read()
        except OperationalError:
            if attempt == attempts:
                raise
            logger.warning("Transient database error, retrying read (attempt %d)", attempt, exc_info=True)
            await asyncio.sleep(delay)
    msg = "retry_read requires at least one attempt"
    raise ValueError(msg)
