"""In-app notification creation.

Rows are read by the notification center of the web app. Progression
code creates them after its own writes are committed so a failure here
never undoes a level-up or an unlock.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from popote.db.models import InAppNotification

VALID_TYPES = {"level_up", "badge_earned", "streak_milestone"}


async def create_in_app_notification(
    db: AsyncSession,
    user_id: int,
    type_: str,
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> InAppNotification:
    """Persist an in-app notification and flush it (assigns ``id``)."""
    if type_ not in VALID_TYPES:
        raise ValueError(f"Invalid notification type: {type_}. Must be one of {VALID_TYPES}")

    notification = InAppNotification(
        user_id=user_id,
        type=type_,
        title=title,
        body=body,
        data=data,
        created_at=datetime.now(timezone.utc),
    )
    db.add(notification)
    await db.flush()
    return notification
