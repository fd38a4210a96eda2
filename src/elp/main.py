"""FastAPI application factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from redis.exceptions import RedisError

from elp.auth.router import router as auth_router
from elp.catalog.router import router as catalog_router
from elp.config import get_settings
from elp.database import close_db, create_tables, init_db, session_scope
from elp.exams.router import router as exams_router
from elp.exams.service import persist_expired_attempt
from elp.exams.sessions import ExamSessionManager
from elp.exercises.router import router as exercises_router
from elp.gamification.router import router as gamification_router
from elp.gamification.seed import seed_achievements
from elp.health.router import router as health_router
from elp.listening.router import router as listening_router
from elp.middleware import setup_middleware
from elp.notifications.router import router as notifications_router
from elp.progress.router import router as progress_router
from elp.redis_client import close_redis, get_redis, init_redis
from elp.users.router import router as users_router
from elp.ws.bridge import PubSubBridge
from elp.ws.manager import manager
from elp.ws.router import router as ws_router

logger = structlog.get_logger()


async def _connect_redis(url: str) -> bool:
    """Initialize Redis. Without it the API runs with realtime push and lockout disabled."""
    await init_redis(url)
    try:
        await get_redis().ping()
    except (RedisError, OSError):
        logger.warning("redis_unavailable", url=url, exc_info=True)
        await close_redis()
        return False
    return True


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url, echo=settings.database_echo)
    if settings.create_tables_on_startup:
        await create_tables()

    async with session_scope() as db:
        await seed_achievements(db)

    manager.max_connections_per_user = settings.ws_max_connections_per_user

    bridge: PubSubBridge | None = None
    bridge_task: asyncio.Task[None] | None = None
    if await _connect_redis(settings.redis_url):
        bridge = PubSubBridge(get_redis())
        bridge_task = asyncio.create_task(bridge.start())

    try:
        yield
    finally:
        await app.state.exam_sessions.shutdown()

        if bridge is not None and bridge_task is not None:
            await bridge.stop()
            bridge_task.cancel()
            try:
                await bridge_task
            except asyncio.CancelledError:
                pass

        await close_db()
        await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="English Learning Platform API",
        description="Vocabulary, exercises, timed exams and gamification for English learners",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.exam_sessions = ExamSessionManager(
        persist_expired_attempt,
        tick_interval=settings.exam_tick_interval_seconds,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(catalog_router)
    app.include_router(progress_router)
    app.include_router(exercises_router)
    app.include_router(exams_router)
    app.include_router(listening_router)
    app.include_router(gamification_router)
    app.include_router(notifications_router)
    app.include_router(ws_router)

    return app


app = create_app()
