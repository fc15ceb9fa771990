"""Badge evaluator: stats snapshot, unlocks, uniqueness, read projection."""

from __future__ import annotations

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from popote.db.models import Badge, BadgeUnlock, Mission
from popote.progression.badge_service import (
    UserStats,
    evaluate_badges,
    get_user_badges,
    get_user_stats,
)
from popote.progression.catalog import BadgeEntry, ProgressionCatalog, load_catalog


async def _unlock_count(db, user_id) -> int:
    result = await db.execute(select(func.count()).select_from(BadgeUnlock).where(BadgeUnlock.user_id == user_id))
    return result.scalar_one()


class TestGetUserStats:
    @pytest.mark.asyncio
    async def test_empty_user(self, db_session, user):
        assert await get_user_stats(db_session, user.id) == UserStats(0, 0, 0)

    @pytest.mark.asyncio
    async def test_counts_only_completed_missions(self, db_session, user, complete_missions, complete_tutorials, set_streak):
        """The stats snapshot counts completed missions only."""
        await complete_missions(user.id, 3)
        db_session.add(Mission(user_id=user.id, status="pending"))
        db_session.add(Mission(user_id=user.id, status="skipped"))
        await db_session.commit()
        await complete_tutorials(user.id, 2)
        await set_streak(user.id, current=1, longest=9, last_activity_date=date(2024, 1, 10))

        assert await get_user_stats(db_session, user.id) == UserStats(
            missions_completed=3, longest_streak=9, tutorials_viewed=2
        )


class TestEvaluateBadges:
    @pytest.mark.asyncio
    async def test_streak_badge_unlocks_once(self, db_session, make_user, set_streak):
        """A 7-day longest streak unlocks the streak badge on the first call only."""
        user = await make_user()
        await set_streak(user.id, current=7, longest=7, last_activity_date=date(2024, 1, 10))
        catalog = ProgressionCatalog(
            badges=(BadgeEntry(id=1, slug="regulier", name="Régulier", icon="🔥", criteria_type="streak_days", criteria_value=7),)
        )
        # Badge rows must exist for the unlock foreign key.
        db_session.add(Badge(id=1, slug="regulier", name="Régulier", icon="🔥", criteria_type="streak_days", criteria_value=7))
        await db_session.commit()

        first = await evaluate_badges(db_session, user.id, catalog)
        second = await evaluate_badges(db_session, user.id, catalog)

        assert [b.slug for b in first] == ["regulier"]
        assert second == []
        assert await _unlock_count(db_session, user.id) == 1

    @pytest.mark.asyncio
    async def test_all_qualifying_badges_unlock_in_display_order(self, db_session, user, complete_missions, complete_tutorials):
        await complete_missions(user.id, 20)
        await complete_tutorials(user.id, 3)

        unlocked = await evaluate_badges(db_session, user.id)

        assert [b.slug for b in unlocked] == ["commis", "sous-chef", "curieux"]

    @pytest.mark.asyncio
    async def test_repeated_evaluation_never_duplicates(self, db_session, user, complete_missions):
        await complete_missions(user.id, 5)
        for _ in range(4):
            await evaluate_badges(db_session, user.id)
        assert await _unlock_count(db_session, user.id) == 1

    @pytest.mark.asyncio
    async def test_new_threshold_unlocks_only_new_badge(self, db_session, user, complete_missions):
        """Already unlocked badges are skipped when a higher threshold is reached."""
        await complete_missions(user.id, 5)
        assert [b.slug for b in await evaluate_badges(db_session, user.id)] == ["commis"]

        await complete_missions(user.id, 15)
        assert [b.slug for b in await evaluate_badges(db_session, user.id)] == ["sous-chef"]

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_insert_is_not_reported(self, db_session, user, complete_missions):
        """A unlock row written by another request between skip-list read and insert."""
        await complete_missions(user.id, 5)
        catalog = await load_catalog(db_session)
        commis = next(b for b in catalog.badges if b.slug == "commis")
        db_session.add(BadgeUnlock(user_id=user.id, badge_id=commis.id, unlocked_at=datetime(2024, 1, 1, tzinfo=timezone.utc)))
        await db_session.commit()

        with patch("popote.progression.badge_service.get_unlocked_badge_ids", AsyncMock(return_value=set())):
            unlocked = await evaluate_badges(db_session, user.id, catalog)

        assert unlocked == []
        assert await _unlock_count(db_session, user.id) == 1

    @pytest.mark.asyncio
    async def test_inactive_badges_are_skipped(self, db_session, user, complete_missions):
        await db_session.execute(Badge.__table__.update().where(Badge.slug == "commis").values(is_active=False))
        await db_session.commit()
        await complete_missions(user.id, 5)

        assert await evaluate_badges(db_session, user.id) == []


class TestGetUserBadges:
    @pytest.mark.asyncio
    async def test_projection_marks_unlocked(self, db_session, user, complete_missions):
        await complete_missions(user.id, 5)
        await evaluate_badges(db_session, user.id)

        statuses = await get_user_badges(db_session, user.id)

        assert len(statuses) == 10
        assert [s.badge.slug for s in statuses][:2] == ["commis", "sous-chef"]
        assert statuses[0].unlocked is True
        assert statuses[0].unlocked_at is not None
        assert all(not s.unlocked for s in statuses[1:])

    @pytest.mark.asyncio
    async def test_projection_does_not_evaluate(self, db_session, user, complete_missions):
        """Reading badges never unlocks them, even when the stats qualify."""
        await complete_missions(user.id, 50)

        statuses = await get_user_badges(db_session, user.id)

        assert not any(s.unlocked for s in statuses)
        assert await _unlock_count(db_session, user.id) == 0
