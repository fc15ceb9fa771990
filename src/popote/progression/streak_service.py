"""Daily streak tracking: activity updates, inactivity reconciliation, read helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from popote.db.models import StreakRecord
from popote.db.upsert import conflict_insert

logger = structlog.get_logger()


class StreakTransition(Enum):
    """How an activity on ``today`` relates to the last recorded activity day."""

    FIRST = "first"
    SAME_DAY = "same_day"
    CONSECUTIVE = "consecutive"
    BROKEN = "broken"
    CLOCK_SKEW = "clock_skew"


@dataclass(frozen=True)
class StreakSnapshot:
    current_streak: int
    longest_streak: int
    last_activity_date: date | None
    transition: StreakTransition | None = None

    @property
    def advanced(self) -> bool:
        """True if this activity counted a new calendar day."""
        return self.transition in (StreakTransition.FIRST, StreakTransition.CONSECUTIVE, StreakTransition.BROKEN)


@dataclass(frozen=True)
class StreakInfo:
    current_streak: int
    longest_streak: int
    is_at_risk: bool


def utc_today(now: datetime | None = None) -> date:
    """Current UTC calendar day."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).date()


def classify_activity(last_activity_date: date | None, today: date) -> StreakTransition:
    """Three-way branch on the whole-day gap, plus first and negative-gap cases."""
    if last_activity_date is None:
        return StreakTransition.FIRST
    gap = (today - last_activity_date).days
    if gap < 0:
        return StreakTransition.CLOCK_SKEW
    if gap == 0:
        return StreakTransition.SAME_DAY
    if gap == 1:
        return StreakTransition.CONSECUTIVE
    return StreakTransition.BROKEN


def apply_activity(
    current_streak: int,
    longest_streak: int,
    last_activity_date: date | None,
    today: date,
) -> StreakSnapshot:
    """Return the streak state after an activity on ``today`` (pure)."""
    transition = classify_activity(last_activity_date, today)

    if transition is StreakTransition.FIRST:
        return StreakSnapshot(1, max(longest_streak, 1), today, transition)
    if transition is StreakTransition.CONSECUTIVE:
        current = current_streak + 1
        return StreakSnapshot(current, max(longest_streak, current), today, transition)
    if transition is StreakTransition.BROKEN:
        return StreakSnapshot(1, max(longest_streak, 1), today, transition)

    # SAME_DAY and CLOCK_SKEW leave the record untouched.
    return StreakSnapshot(current_streak, longest_streak, last_activity_date, transition)


def is_at_risk(current_streak: int, last_activity_date: date | None, today: date) -> bool:
    """Streak alive but not yet secured today."""
    return current_streak > 0 and last_activity_date is not None and last_activity_date != today


def streak_encouragement(current_streak: int, at_risk: bool) -> str:
    """Coach message shown next to the streak counter."""
    if at_risk:
        return "Fais ta mission pour garder ton streak ! 🔥"
    if current_streak <= 0:
        return "Commence ta série dès maintenant !"
    if current_streak == 1:
        return "Premier jour, c'est parti ! 💪"
    if current_streak <= 3:
        return f"{current_streak} jours de suite, continue comme ça !"
    if current_streak <= 7:
        return f"{current_streak} jours de suite, tu es en feu ! 🔥"
    if current_streak <= 14:
        return f"{current_streak} jours, tu es un chef ! 👨‍🍳"
    if current_streak <= 30:
        return f"{current_streak} jours, incroyable régularité ! ⭐"
    return f"{current_streak} jours, tu es une légende ! 🏆"


async def get_streak_record(db: AsyncSession, user_id: int, *, for_update: bool = False) -> StreakRecord | None:
    """Fetch the user's streak row, optionally locking it until commit."""
    stmt = select(StreakRecord).where(StreakRecord.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def record_activity(db: AsyncSession, user_id: int, today: date | None = None) -> StreakSnapshot:
    """Update the user's streak for an activity today and commit.

    Same-day activities are idempotent. A negative day gap (clock skew or a
    replayed event) is logged and ignored.
    """
    if today is None:
        today = utc_today()
    now = datetime.now(timezone.utc)

    record = await get_streak_record(db, user_id, for_update=True)
    if record is None:
        stmt = conflict_insert(db, StreakRecord).values(
            user_id=user_id,
            current_streak=1,
            longest_streak=1,
            last_activity_date=today,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_nothing(index_elements=["user_id"])
        result = await db.execute(stmt)
        if result.rowcount == 1:
            await db.commit()
            return StreakSnapshot(1, 1, today, StreakTransition.FIRST)
        # A concurrent activity created the row first; continue on it.
        record = await get_streak_record(db, user_id, for_update=True)
        if record is None:
            msg = f"Streak row for user {user_id} vanished after insert conflict"
            raise RuntimeError(msg)

    snapshot = apply_activity(record.current_streak, record.longest_streak, record.last_activity_date, today)

    if snapshot.transition is StreakTransition.CLOCK_SKEW:
        logger.warning(
            "streak_clock_skew",
            user_id=user_id,
            last_activity_date=record.last_activity_date.isoformat() if record.last_activity_date else None,
            today=today.isoformat(),
        )
    elif snapshot.advanced:
        record.current_streak = snapshot.current_streak
        record.longest_streak = snapshot.longest_streak
        record.last_activity_date = snapshot.last_activity_date
        record.updated_at = now

    await db.commit()
    return snapshot


async def reconcile_inactivity(db: AsyncSession, user_id: int, today: date | None = None) -> bool:
    """Zero a streak whose last activity is more than one day old.

    Leaves last_activity_date and longest_streak alone. Returns True if reset.
    """
    if today is None:
        today = utc_today()

    record = await get_streak_record(db, user_id, for_update=True)
    if record is None or record.last_activity_date is None:
        await db.commit()
        return False

    gap = (today - record.last_activity_date).days
    if gap > 1 and record.current_streak > 0:
        previous = record.current_streak
        record.current_streak = 0
        record.updated_at = datetime.now(timezone.utc)
        await db.commit()
        logger.info("streak_reset", user_id=user_id, previous_streak=previous, days_inactive=gap)
        return True

    await db.commit()
    return False


async def reconcile_all_streaks(db: AsyncSession, today: date | None = None) -> tuple[int, int]:
    """Daily sweep over every live streak. Returns (checked, reset)."""
    if today is None:
        today = utc_today()

    result = await db.execute(
        select(StreakRecord.user_id).where(StreakRecord.current_streak > 0).order_by(StreakRecord.user_id)
    )
    user_ids = list(result.scalars())

    reset = 0
    for user_id in user_ids:
        if await reconcile_inactivity(db, user_id, today):
            reset += 1

    logger.info("streak_sweep_complete", checked=len(user_ids), reset=reset, today=today.isoformat())
    return len(user_ids), reset


async def get_streak_info(db: AsyncSession, user_id: int, today: date | None = None) -> StreakInfo:
    """Current/longest streak and whether today's activity is still missing."""
    if today is None:
        today = utc_today()

    record = await get_streak_record(db, user_id)
    if record is None:
        return StreakInfo(current_streak=0, longest_streak=0, is_at_risk=False)

    return StreakInfo(
        current_streak=record.current_streak,
        longest_streak=record.longest_streak,
        is_at_risk=is_at_risk(record.current_streak, record.last_activity_date, today),
    )
