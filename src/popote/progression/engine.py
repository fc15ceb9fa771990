"""Progression engine: ties streaks, XP and badges to completed activities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from popote.config import get_settings
from popote.db.models import User
from popote.notifications.service import create_in_app_notification
from popote.progression import badge_service, level_service, streak_service
from popote.progression.catalog import (
    BadgeEntry,
    CatalogError,
    ProgressionCatalog,
    XpActionType,
    load_catalog,
)
from popote.progression.level_service import NO_LEVEL_UP, LevelUpResult, XpGrant
from popote.progression.streak_service import StreakSnapshot

logger = structlog.get_logger()


class ActivityKind(Enum):
    MISSION = "mission"
    TUTORIAL = "tutorial"


ACTIVITY_XP = {
    ActivityKind.MISSION: XpActionType.MISSION_COMPLETED,
    ActivityKind.TUTORIAL: XpActionType.TUTORIAL_COMPLETED,
}


@dataclass
class ProgressionOutcome:
    """What one recorded activity changed."""

    streak: StreakSnapshot | None = None
    xp_added: int = 0
    level_up: LevelUpResult = NO_LEVEL_UP
    new_badges: list[BadgeEntry] = field(default_factory=list)
    completed: bool = False

    @property
    def streak_milestone(self) -> int | None:
        """Streak length if it sits on a milestone (every Nth day, same-day repeats included)."""
        if self.streak is None:
            return None
        interval = get_settings().streak_milestone_interval
        current = self.streak.current_streak
        if interval > 0 and current > 0 and current % interval == 0:
            return current
        return None


class ProgressionEngine:
    """Entry point for mission and tutorial workflows.

    Call after the activity itself (mission status, tutorial completion) is
    committed: badges count those rows. Storage errors are logged and never
    propagate to the calling workflow.
    """

    def __init__(self, db: AsyncSession, redis: object, catalog: ProgressionCatalog | None = None) -> None:
        self.db = db
        self.redis = redis
        self._catalog = catalog

    async def catalog(self) -> ProgressionCatalog:
        """Load and cache the catalog for the lifetime of this engine."""
        if self._catalog is None:
            self._catalog = await load_catalog(self.db)
        return self._catalog

    async def record_mission_completed(self, user_id: int, today: date | None = None) -> ProgressionOutcome:
        return await self.record_activity(user_id, ActivityKind.MISSION, today)

    async def record_tutorial_completed(self, user_id: int, today: date | None = None) -> ProgressionOutcome:
        return await self.record_activity(user_id, ActivityKind.TUTORIAL, today)

    async def record_activity(
        self,
        user_id: int,
        kind: ActivityKind,
        today: date | None = None,
    ) -> ProgressionOutcome:
        """Streak, then XP, then badges, each step committed before the next."""
        outcome = ProgressionOutcome()

        try:
            if not await self._user_exists(user_id):
                logger.warning("progression_user_missing", user_id=user_id, operation="record_activity")
                return outcome

            catalog = await self.catalog()

            outcome.streak = await streak_service.record_activity(self.db, user_id, today)

            await self._grant(outcome, user_id, ACTIVITY_XP[kind])

            # Same-day repeats on a live streak earn the bonus too.
            if outcome.streak.current_streak > 0:
                await self._grant(outcome, user_id, XpActionType.STREAK_DAY)
                if outcome.streak_milestone is not None:
                    await self._grant(outcome, user_id, XpActionType.WEEKLY_STREAK)

            outcome.new_badges = await badge_service.evaluate_badges(self.db, user_id, catalog)
            for _badge in outcome.new_badges:
                await self._grant(outcome, user_id, XpActionType.BADGE_EARNED)

            outcome.completed = True
        except (SQLAlchemyError, CatalogError):
            await self.db.rollback()
            logger.error("progression_failed", user_id=user_id, activity=kind.value, exc_info=True)
            return outcome

        await self._notify(user_id, outcome)
        return outcome

    async def add_xp(self, user_id: int, action_type: str | XpActionType) -> XpGrant:
        """Grant XP for a single action outside of an activity."""
        return await level_service.add_xp(self.db, self.redis, user_id, action_type, await self.catalog())

    async def evaluate_badges(self, user_id: int) -> list[BadgeEntry]:
        """Re-check badges for a user (e.g. after an admin catalog change)."""
        return await badge_service.evaluate_badges(self.db, user_id, await self.catalog())

    async def _user_exists(self, user_id: int) -> bool:
        result = await self.db.execute(select(User.id).where(User.id == user_id))
        return result.scalar_one_or_none() is not None

    async def _grant(self, outcome: ProgressionOutcome, user_id: int, action_type: XpActionType) -> None:
        grant = await level_service.add_xp(self.db, self.redis, user_id, action_type, await self.catalog())
        outcome.xp_added += grant.xp_added
        if grant.level_up.leveled_up and (
            not outcome.level_up.leveled_up or (grant.level_up.new_level or 0) > (outcome.level_up.new_level or 0)
        ):
            outcome.level_up = grant.level_up

    async def _notify(self, user_id: int, outcome: ProgressionOutcome) -> None:
        """In-app notifications for streak milestones and badges (no push)."""
        milestone = outcome.streak_milestone
        if milestone is not None:
            await self._safe_notification(
                user_id,
                "streak_milestone",
                title=f"{milestone} jours de suite ! 🔥",
                body=f"Incroyable ! Tu as maintenu ta série pendant {milestone} jours consécutifs.",
                data={"streak": milestone},
            )

        for badge in outcome.new_badges:
            await self._safe_notification(
                user_id,
                "badge_earned",
                title=f"Badge débloqué : {badge.name} 🏆",
                body=badge.description or f'Tu as débloqué le badge "{badge.name}" !',
                data={"badgeId": badge.id, "badgeSlug": badge.slug},
            )

    async def _safe_notification(self, user_id: int, type_: str, title: str, body: str, data: dict) -> None:
        try:
            await create_in_app_notification(self.db, user_id, type_, title=title, body=body, data=data)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.warning("notification_failed", user_id=user_id, type=type_, exc_info=True)
