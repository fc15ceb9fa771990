"""Progression arq worker: daily streak reconciliation.

Import path for the arq CLI:
    arq popote.progression.worker.ProgressionWorkerSettings
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from arq import cron

from popote.config import get_settings
from popote.database import close_db, get_session_factory, init_db
from popote.middleware.logging import setup_logging
from popote.progression.streak_service import reconcile_all_streaks

logger = logging.getLogger(__name__)

_settings = get_settings()


async def progression_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize DB + Redis connections on worker startup."""
    setup_logging(_settings)
    await init_db(_settings.database_url)
    ctx["redis"] = aioredis.from_url(
        _settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=10,
    )
    logger.info("Progression worker started")


async def progression_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    redis_client: aioredis.Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Progression worker shut down")


async def reconcile_streaks(ctx: dict) -> dict[str, int]:  # type: ignore[type-arg]
    """Scheduled task: zero every streak whose owner skipped yesterday."""
    async with get_session_factory()() as db:
        checked, reset = await reconcile_all_streaks(db)
    logger.info("Streak reconciliation: %d checked, %d reset", checked, reset)
    return {"checked": checked, "reset": reset}


class ProgressionWorkerSettings:
    """arq worker settings for progression maintenance jobs."""

    functions = [reconcile_streaks]
    cron_jobs = [
        cron(
            reconcile_streaks,
            hour={_settings.streak_sweep_hour},
            minute={_settings.streak_sweep_minute},
            run_at_startup=False,
            unique=True,
        ),
    ]
    on_startup = progression_startup
    on_shutdown = progression_shutdown
    max_jobs = 2
    job_timeout = 3600
