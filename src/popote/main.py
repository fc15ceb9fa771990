"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from popote.config import get_settings
from popote.database import close_db, get_session_factory, init_db
from popote.health.router import router as health_router
from popote.middleware import setup_middleware
from popote.progression.router import router as progression_router
from popote.progression.seed import seed_catalog
from popote.redis_client import close_redis, init_redis

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    if settings.seed_catalog_on_startup:
        try:
            async with get_session_factory()() as db:
                await seed_catalog(db)
        except Exception:
            logger.warning("catalog_seed_failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Popote Progression API",
        description="Streaks, XP levels and badges for Popote restaurant owners",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(progression_router)

    return app


app = create_app()
