"""Shared test fixtures.

Tests run against an in-memory SQLite database (one shared connection via
StaticPool) with Redis disabled, so no external services are needed.
"""

import os

os.environ.setdefault("ELP_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ELP_JWT_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("ELP_LOG_FORMAT", "console")
os.environ.setdefault("ELP_ENVIRONMENT", "test")
os.environ.setdefault("ELP_EXAM_TICK_INTERVAL_SECONDS", "0")

from collections.abc import AsyncGenerator  # noqa: E402

import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from elp.config import get_settings  # noqa: E402
from elp.database import close_db, create_tables, get_session, init_db, session_scope  # noqa: E402
from elp.db.models import User  # noqa: E402
from elp.exams.service import persist_expired_attempt  # noqa: E402
from elp.exams.sessions import ExamSessionManager  # noqa: E402
from elp.gamification.seed import seed_achievements  # noqa: E402
from tests.factories import make_user  # noqa: E402

get_settings.cache_clear()


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory schema with the achievement catalog seeded."""
    await init_db("sqlite+aiosqlite:///:memory:")
    await create_tables()
    async with session_scope() as db:
        await seed_achievements(db)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    return await make_user(db_session)


@pytest_asyncio.fixture
async def app(database: None) -> AsyncGenerator[FastAPI, None]:
    """The application without its lifespan; the database fixture stands in for it."""
    from elp.main import create_app

    application = create_app()
    application.state.exam_sessions = ExamSessionManager(persist_expired_attempt, tick_interval=0)
    yield application
    await application.state.exam_sessions.shutdown()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
