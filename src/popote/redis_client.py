"""Shared Redis client for push fan-out and readiness checks."""

import redis.asyncio as redis

from popote.config import get_settings

_client: redis.Redis | None = None


async def init_redis(url: str | None = None) -> redis.Redis:
    """Create the shared client. Defaults to ``POPOTE_REDIS_URL``."""
    global _client  # noqa: PLW0603
    settings = get_settings()
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.redis_max_connections,
    )
    return _client


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis_or_none() -> redis.Redis | None:
    """The client if the app started one. Progression code treats push as optional."""
    return _client
