"""Publish push payloads over Redis pub/sub for the web-push deliverer."""

from __future__ import annotations

import json
from typing import Any

import structlog

from popote.config import get_settings

logger = structlog.get_logger()


async def send_push_to_user(redis: object | None, user_id: int, payload: dict[str, Any]) -> bool:
    """Publish ``payload`` to push:user:{user_id}. Best-effort.

    The deliverer subscribes to ``push:user:*`` and fans the message out to
    the user's active browser subscriptions. Returns True if published.
    """
    if redis is None:
        return False

    channel = f"{get_settings().push_channel_prefix}{user_id}"
    try:
        await redis.publish(channel, json.dumps(payload))  # type: ignore[union-attr]
    except Exception:
        logger.warning("push_failed", user_id=user_id, channel=channel, exc_info=True)
        return False
    return True
