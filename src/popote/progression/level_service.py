"""XP ledger with level-up detection and notifications."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy import select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from popote.config import get_settings
from popote.db.models import LevelThreshold, User, XpAction
from popote.notifications.push import send_push_to_user
from popote.notifications.service import create_in_app_notification
from popote.progression.catalog import ProgressionCatalog, XpActionType, load_catalog

logger = structlog.get_logger()


@dataclass(frozen=True)
class LevelUpResult:
    leveled_up: bool = False
    new_level: int | None = None
    new_level_name: str | None = None
    new_level_icon: str | None = None


NO_LEVEL_UP = LevelUpResult()


@dataclass(frozen=True)
class XpGrant:
    xp_added: int
    level_up: LevelUpResult


@dataclass(frozen=True)
class LevelInfo:
    xp_total: int
    current_level: int
    level_name: str
    level_icon: str
    xp_for_next_level: int
    xp_progress_in_level: int
    progress_percent: int
    is_max_level: bool


# Snapshot for users without a progression row.
DEFAULT_LEVEL_INFO = LevelInfo(
    xp_total=0,
    current_level=1,
    level_name="Débutant",
    level_icon="🌱",
    xp_for_next_level=50,
    xp_progress_in_level=0,
    progress_percent=0,
    is_max_level=False,
)


def compute_level_info(catalog: ProgressionCatalog, xp_total: int, current_level: int) -> LevelInfo:
    """Progress toward the level after ``current_level`` (pure)."""
    current = catalog.threshold_for(current_level)
    following = catalog.threshold_for(current_level + 1)

    level_name = current.display_name if current else f"Niveau {current_level}"
    level_icon = current.display_icon if current else "⭐"
    current_level_xp = current.xp_required if current else 0

    if following is None:
        return LevelInfo(
            xp_total=xp_total,
            current_level=current_level,
            level_name=level_name,
            level_icon=level_icon,
            xp_for_next_level=0,
            xp_progress_in_level=0,
            progress_percent=100,
            is_max_level=True,
        )

    xp_in_level = max(0, xp_total - current_level_xp)
    xp_needed = following.xp_required - current_level_xp
    if xp_needed > 0:
        # Half-up rounding in integers: 0.5 % shows as 1 %.
        progress = min(100, max(0, (xp_in_level * 200 + xp_needed) // (2 * xp_needed)))
    else:
        progress = 0

    return LevelInfo(
        xp_total=xp_total,
        current_level=current_level,
        level_name=level_name,
        level_icon=level_icon,
        xp_for_next_level=following.xp_required - xp_total,
        xp_progress_in_level=xp_in_level,
        progress_percent=progress,
        is_max_level=False,
    )


async def _get_progression_row(db: AsyncSession, user_id: int) -> Row[tuple[int, int]] | None:
    """Fresh (xp_total, current_level) straight from the database."""
    result = await db.execute(select(User.xp_total, User.current_level).where(User.id == user_id))
    return result.one_or_none()


async def add_xp(
    db: AsyncSession,
    redis: object,
    user_id: int,
    action_type: str | XpActionType,
    catalog: ProgressionCatalog | None = None,
) -> XpGrant:
    """Grant the XP configured for ``action_type`` and promote the level if earned.

    Unknown or inactive actions and missing users are silent no-ops.
    """
    if catalog is None:
        catalog = await load_catalog(db)

    action = catalog.xp_action(action_type)
    if action is None:
        key = action_type.value if isinstance(action_type, XpActionType) else action_type
        logger.info("xp_action_missing", user_id=user_id, action_type=key)
        return XpGrant(xp_added=0, level_up=NO_LEVEL_UP)

    # Atomic increment: concurrent grants cannot lose an update.
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(xp_total=User.xp_total + action.xp_amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.commit()
        logger.warning("progression_user_missing", user_id=user_id, operation="add_xp")
        return XpGrant(xp_added=0, level_up=NO_LEVEL_UP)
    await db.commit()

    level_up = await check_level_up(db, redis, user_id, catalog)
    return XpGrant(xp_added=action.xp_amount, level_up=level_up)


async def check_level_up(
    db: AsyncSession,
    redis: object,
    user_id: int,
    catalog: ProgressionCatalog | None = None,
) -> LevelUpResult:
    """Promote the user to the highest level their XP qualifies for.

    Crossing several thresholds at once reports (and notifies) only the
    final level.
    """
    if catalog is None:
        catalog = await load_catalog(db)

    row = await _get_progression_row(db, user_id)
    if row is None:
        return NO_LEVEL_UP

    reached = catalog.level_for_xp(row.xp_total)
    if reached is None or reached.level <= row.current_level:
        return NO_LEVEL_UP

    # Only the statement that actually raises the level reports the level-up.
    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.current_level < reached.level)
        .values(current_level=reached.level)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.commit()
        return NO_LEVEL_UP
    await db.commit()

    level_up = LevelUpResult(
        leveled_up=True,
        new_level=reached.level,
        new_level_name=reached.display_name,
        new_level_icon=reached.display_icon,
    )
    logger.info(
        "level_up",
        user_id=user_id,
        old_level=row.current_level,
        new_level=reached.level,
        xp_total=row.xp_total,
    )
    await _emit_level_up(db, redis, user_id, level_up)
    return level_up


async def _emit_level_up(db: AsyncSession, redis: object, user_id: int, level_up: LevelUpResult) -> None:
    """In-app notification + one push attempt. Failures never undo the level-up."""
    level = level_up.new_level
    name = level_up.new_level_name
    icon = level_up.new_level_icon

    try:
        await create_in_app_notification(
            db,
            user_id,
            "level_up",
            title=f"{icon} Bravo ! Tu passes au {name} !",
            body=f"Tu es maintenant niveau {level}. Continue comme ça !",
            data={"level": level, "levelName": name, "levelIcon": icon},
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.warning("notification_failed", user_id=user_id, type="level_up", exc_info=True)

    await send_push_to_user(
        redis,
        user_id,
        {
            "title": f"{icon} Niveau {level} débloqué !",
            "body": f"Bravo ! Tu passes au {name} !",
            "url": get_settings().level_up_url,
            "type": "level_up",
        },
    )


async def get_level_info(
    db: AsyncSession,
    user_id: int,
    catalog: ProgressionCatalog | None = None,
) -> LevelInfo:
    """XP, level and progress toward the next level; defaults for unknown users."""
    row = await _get_progression_row(db, user_id)
    if row is None:
        return DEFAULT_LEVEL_INFO

    if catalog is None:
        catalog = await load_catalog(db)
    return compute_level_info(catalog, row.xp_total or 0, row.current_level or 1)


async def list_levels(db: AsyncSession) -> list[LevelThreshold]:
    """All level thresholds, lowest first."""
    result = await db.execute(select(LevelThreshold).order_by(LevelThreshold.level.asc()))
    return list(result.scalars())


async def list_xp_actions(db: AsyncSession) -> list[XpAction]:
    """All XP actions, most rewarding first."""
    result = await db.execute(select(XpAction).order_by(XpAction.xp_amount.desc(), XpAction.action_type))
    return list(result.scalars())
