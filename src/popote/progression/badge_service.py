"""Badge unlock evaluation against a user's aggregate stats."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from popote.db.models import BadgeUnlock, Mission, StreakRecord, TutorialCompletion
from popote.db.upsert import conflict_insert
from popote.progression.catalog import BadgeCriteria, BadgeEntry, ProgressionCatalog, load_catalog

logger = structlog.get_logger()


@dataclass(frozen=True)
class UserStats:
    missions_completed: int = 0
    longest_streak: int = 0
    tutorials_viewed: int = 0


@dataclass(frozen=True)
class UserBadgeStatus:
    badge: BadgeEntry
    unlocked: bool
    unlocked_at: datetime | None


def meets_criteria(badge: BadgeEntry, stats: UserStats) -> bool:
    """True if ``stats`` reach the badge's criteria value. Unknown criteria never match."""
    if badge.criteria_type == BadgeCriteria.MISSIONS_COMPLETED.value:
        return stats.missions_completed >= badge.criteria_value
    if badge.criteria_type == BadgeCriteria.STREAK_DAYS.value:
        return stats.longest_streak >= badge.criteria_value
    if badge.criteria_type == BadgeCriteria.TUTORIALS_VIEWED.value:
        return stats.tutorials_viewed >= badge.criteria_value
    return False


async def get_user_stats(db: AsyncSession, user_id: int) -> UserStats:
    """Completed missions, longest streak and tutorials viewed."""
    missions = await db.execute(
        select(func.count())
        .select_from(Mission)
        .where(Mission.user_id == user_id, Mission.status == "completed")
    )
    longest = await db.execute(select(StreakRecord.longest_streak).where(StreakRecord.user_id == user_id))
    tutorials = await db.execute(
        select(func.count()).select_from(TutorialCompletion).where(TutorialCompletion.user_id == user_id)
    )
    return UserStats(
        missions_completed=missions.scalar_one(),
        longest_streak=longest.scalar_one_or_none() or 0,
        tutorials_viewed=tutorials.scalar_one(),
    )


async def get_unlocked_badge_ids(db: AsyncSession, user_id: int) -> set[int]:
    result = await db.execute(select(BadgeUnlock.badge_id).where(BadgeUnlock.user_id == user_id))
    return set(result.scalars())


async def evaluate_badges(
    db: AsyncSession,
    user_id: int,
    catalog: ProgressionCatalog | None = None,
    stats: UserStats | None = None,
) -> list[BadgeEntry]:
    """Unlock every active badge the user now qualifies for. Returns the new ones.

    Badges are checked in display order. The (user_id, badge_id) unique
    constraint makes a concurrent duplicate insert a no-op.
    """
    if catalog is None:
        catalog = await load_catalog(db)
    if stats is None:
        stats = await get_user_stats(db, user_id)

    already_unlocked = await get_unlocked_badge_ids(db, user_id)
    now = datetime.now(timezone.utc)
    newly_unlocked: list[BadgeEntry] = []

    for badge in catalog.active_badges():
        if badge.id in already_unlocked:
            continue
        if not meets_criteria(badge, stats):
            continue

        stmt = conflict_insert(db, BadgeUnlock).values(user_id=user_id, badge_id=badge.id, unlocked_at=now)
        stmt = stmt.on_conflict_do_nothing(index_elements=["user_id", "badge_id"])
        result = await db.execute(stmt)
        if result.rowcount != 1:
            logger.info("badge_unlock_conflict", user_id=user_id, badge=badge.slug)
            continue

        newly_unlocked.append(badge)
        logger.info("badge_unlocked", user_id=user_id, badge=badge.slug, criteria=badge.criteria_type)

    await db.commit()
    return newly_unlocked


async def get_user_badges(
    db: AsyncSession,
    user_id: int,
    catalog: ProgressionCatalog | None = None,
) -> list[UserBadgeStatus]:
    """Active badges in display order with the user's unlock state. Read-only."""
    if catalog is None:
        catalog = await load_catalog(db)

    result = await db.execute(
        select(BadgeUnlock.badge_id, BadgeUnlock.unlocked_at).where(BadgeUnlock.user_id == user_id)
    )
    unlocks = {row.badge_id: row.unlocked_at for row in result}

    return [
        UserBadgeStatus(
            badge=badge,
            unlocked=badge.id in unlocks,
            unlocked_at=unlocks.get(badge.id),
        )
        for badge in catalog.active_badges()
    ]
