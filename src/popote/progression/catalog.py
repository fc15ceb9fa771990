"""Read-only snapshot of the progression catalogs.

Level thresholds, XP actions and badge definitions are edited by
administrators elsewhere. The engine loads them once per request (or job)
into an immutable ``ProgressionCatalog`` and never writes them back.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from popote.db.models import Badge, LevelThreshold, XpAction

DEFAULT_LEVEL_ICON = "⭐"


class XpActionType(str, Enum):
    """Keys of the xp_actions table."""

    MISSION_COMPLETED = "mission_completed"
    TUTORIAL_COMPLETED = "tutorial_completed"
    STREAK_DAY = "streak_day"
    FIRST_MISSION = "first_mission"
    FIRST_TUTORIAL = "first_tutorial"
    WEEKLY_STREAK = "weekly_streak"
    BADGE_EARNED = "badge_earned"


class BadgeCriteria(str, Enum):
    """Stat a badge is measured against."""

    MISSIONS_COMPLETED = "missions_completed"
    STREAK_DAYS = "streak_days"
    TUTORIALS_VIEWED = "tutorials_viewed"


class CatalogError(ValueError):
    """Raised when administrator-managed catalog data is inconsistent."""


@dataclass(frozen=True)
class LevelThresholdEntry:
    level: int
    xp_required: int
    name: str | None = None
    icon: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or f"Niveau {self.level}"

    @property
    def display_icon(self) -> str:
        return self.icon or DEFAULT_LEVEL_ICON


@dataclass(frozen=True)
class XpActionEntry:
    action_type: str
    xp_amount: int
    is_active: bool = True


@dataclass(frozen=True)
class BadgeEntry:
    id: int
    slug: str
    name: str
    icon: str
    criteria_type: str
    criteria_value: int
    description: str | None = None
    sort_order: int = 0
    is_active: bool = True


def validate_thresholds(thresholds: list[LevelThresholdEntry] | tuple[LevelThresholdEntry, ...]) -> None:
    """Check levels are unique and >= 1, XP strictly increases, level 1 starts at 0.

    ``thresholds`` must already be sorted by level.
    """
    previous: LevelThresholdEntry | None = None
    for entry in thresholds:
        if entry.level < 1:
            raise CatalogError(f"Level must be >= 1, got {entry.level}")
        if entry.xp_required < 0:
            raise CatalogError(f"Level {entry.level} requires negative XP")
        if entry.level == 1 and entry.xp_required != 0:
            raise CatalogError("Level 1 must require 0 XP")
        if previous is not None:
            if entry.level == previous.level:
                raise CatalogError(f"Duplicate level {entry.level}")
            if entry.xp_required <= previous.xp_required:
                raise CatalogError(
                    f"Level {entry.level} requires {entry.xp_required} XP, "
                    f"not more than level {previous.level} ({previous.xp_required})"
                )
        previous = entry


@dataclass(frozen=True)
class ProgressionCatalog:
    """Immutable view over the three catalog tables."""

    thresholds: tuple[LevelThresholdEntry, ...] = ()
    xp_actions: tuple[XpActionEntry, ...] = ()
    badges: tuple[BadgeEntry, ...] = ()

    def threshold_for(self, level: int) -> LevelThresholdEntry | None:
        for entry in self.thresholds:
            if entry.level == level:
                return entry
        return None

    def level_for_xp(self, xp_total: int) -> LevelThresholdEntry | None:
        """Highest threshold whose xp_required <= xp_total."""
        reached: LevelThresholdEntry | None = None
        for entry in self.thresholds:
            if xp_total >= entry.xp_required and (reached is None or entry.level > reached.level):
                reached = entry
        return reached

    def xp_action(self, action_type: str | XpActionType) -> XpActionEntry | None:
        """Active XP action for a type, or None."""
        key = action_type.value if isinstance(action_type, XpActionType) else action_type
        for entry in self.xp_actions:
            if entry.action_type == key and entry.is_active:
                return entry
        return None

    def active_badges(self) -> tuple[BadgeEntry, ...]:
        """Active badges in display order."""
        return tuple(
            sorted((b for b in self.badges if b.is_active), key=lambda b: (b.sort_order, b.id))
        )


async def load_catalog(db: AsyncSession) -> ProgressionCatalog:
    """Load all catalog rows into a ProgressionCatalog."""
    threshold_rows = (
        await db.execute(select(LevelThreshold).order_by(LevelThreshold.level.asc()))
    ).scalars().all()
    thresholds = tuple(
        LevelThresholdEntry(level=t.level, xp_required=t.xp_required, name=t.name, icon=t.icon)
        for t in threshold_rows
    )
    validate_thresholds(thresholds)

    action_rows = (await db.execute(select(XpAction))).scalars().all()
    xp_actions = tuple(
        XpActionEntry(action_type=a.action_type, xp_amount=a.xp_amount, is_active=a.is_active)
        for a in action_rows
    )

    badge_rows = (
        await db.execute(select(Badge).order_by(Badge.sort_order.asc(), Badge.id.asc()))
    ).scalars().all()
    badges = tuple(
        BadgeEntry(
            id=b.id,
            slug=b.slug,
            name=b.name,
            icon=b.icon,
            criteria_type=b.criteria_type,
            criteria_value=b.criteria_value,
            description=b.description,
            sort_order=b.sort_order,
            is_active=b.is_active,
        )
        for b in badge_rows
    )

    return ProgressionCatalog(thresholds=thresholds, xp_actions=xp_actions, badges=badges)
