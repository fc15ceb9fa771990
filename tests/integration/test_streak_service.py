"""Streak tracker against a real session: activity, reconciliation, reads."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from popote.db.models import StreakRecord
from popote.progression.streak_service import (
    StreakTransition,
    get_streak_info,
    reconcile_all_streaks,
    reconcile_inactivity,
    record_activity,
)

JAN_10 = date(2024, 1, 10)


async def _row(db, user_id) -> StreakRecord:
    result = await db.execute(select(StreakRecord).where(StreakRecord.user_id == user_id))
    return result.scalar_one()


class TestRecordActivity:
    @pytest.mark.asyncio
    async def test_first_activity_creates_record(self, db_session, user):
        snap = await record_activity(db_session, user.id, JAN_10)

        assert snap.transition is StreakTransition.FIRST
        row = await _row(db_session, user.id)
        assert (row.current_streak, row.longest_streak, row.last_activity_date) == (1, 1, JAN_10)

    @pytest.mark.asyncio
    async def test_consecutive_then_same_day(self, db_session, user, set_streak):
        """3/5 on Jan 10, then Jan 11 twice: 4/5 once, unchanged on the repeat."""
        await set_streak(user.id, current=3, longest=5, last_activity_date=JAN_10)

        snap = await record_activity(db_session, user.id, date(2024, 1, 11))
        assert (snap.current_streak, snap.longest_streak) == (4, 5)

        again = await record_activity(db_session, user.id, date(2024, 1, 11))
        assert again.transition is StreakTransition.SAME_DAY

        row = await _row(db_session, user.id)
        assert (row.current_streak, row.longest_streak, row.last_activity_date) == (4, 5, date(2024, 1, 11))

    @pytest.mark.asyncio
    async def test_gap_resets(self, db_session, user, set_streak):
        """A three-day gap restarts at 1 and keeps the longest streak."""
        await set_streak(user.id, current=3, longest=5, last_activity_date=JAN_10)

        await record_activity(db_session, user.id, date(2024, 1, 14))

        row = await _row(db_session, user.id)
        assert (row.current_streak, row.longest_streak, row.last_activity_date) == (1, 5, date(2024, 1, 14))

    @pytest.mark.asyncio
    async def test_same_day_repeats_are_idempotent(self, db_session, user):
        for _ in range(5):
            await record_activity(db_session, user.id, JAN_10)

        row = await _row(db_session, user.id)
        assert (row.current_streak, row.last_activity_date) == (1, JAN_10)
        count = await db_session.execute(select(func.count()).select_from(StreakRecord))
        assert count.scalar_one() == 1

    @pytest.mark.asyncio
    async def test_clock_skew_leaves_record_untouched(self, db_session, user, set_streak):
        """An activity dated before the last one is ignored."""
        await set_streak(user.id, current=3, longest=5, last_activity_date=JAN_10)

        snap = await record_activity(db_session, user.id, JAN_10 - timedelta(days=2))

        assert snap.transition is StreakTransition.CLOCK_SKEW
        row = await _row(db_session, user.id)
        assert (row.current_streak, row.longest_streak, row.last_activity_date) == (3, 5, JAN_10)

    @pytest.mark.asyncio
    async def test_long_run_raises_longest(self, db_session, user):
        for offset in range(8):
            await record_activity(db_session, user.id, JAN_10 + timedelta(days=offset))

        row = await _row(db_session, user.id)
        assert (row.current_streak, row.longest_streak) == (8, 8)


class TestReconcileInactivity:
    @pytest.mark.asyncio
    async def test_stale_streak_is_zeroed(self, db_session, user, set_streak):
        """Zeroing keeps last_activity_date and longest_streak."""
        await set_streak(user.id, current=4, longest=6, last_activity_date=JAN_10)

        assert await reconcile_inactivity(db_session, user.id, JAN_10 + timedelta(days=2)) is True

        row = await _row(db_session, user.id)
        assert row.current_streak == 0
        assert row.longest_streak == 6
        assert row.last_activity_date == JAN_10

    @pytest.mark.asyncio
    async def test_yesterday_is_not_stale(self, db_session, user, set_streak):
        await set_streak(user.id, current=4, longest=6, last_activity_date=JAN_10)
        assert await reconcile_inactivity(db_session, user.id, JAN_10 + timedelta(days=1)) is False

    @pytest.mark.asyncio
    async def test_already_zero_is_not_reset_again(self, db_session, user, set_streak):
        await set_streak(user.id, current=0, longest=6, last_activity_date=JAN_10)
        assert await reconcile_inactivity(db_session, user.id, JAN_10 + timedelta(days=10)) is False

    @pytest.mark.asyncio
    async def test_no_record(self, db_session, user):
        assert await reconcile_inactivity(db_session, user.id, JAN_10) is False

    @pytest.mark.asyncio
    async def test_activity_after_reset_restarts_at_one(self, db_session, user, set_streak):
        """A reconciled streak resumes at 1 on the next activity."""
        await set_streak(user.id, current=4, longest=6, last_activity_date=JAN_10)
        await reconcile_inactivity(db_session, user.id, JAN_10 + timedelta(days=3))

        snap = await record_activity(db_session, user.id, JAN_10 + timedelta(days=3))

        assert (snap.current_streak, snap.longest_streak) == (1, 6)

    @pytest.mark.asyncio
    async def test_sweep_counts_checked_and_reset(self, db_session, make_user, set_streak):
        """Only live streaks are checked; only stale ones are reset."""
        today = JAN_10 + timedelta(days=5)
        stale = await make_user()
        fresh = await make_user()
        idle = await make_user()
        await set_streak(stale.id, current=3, longest=3, last_activity_date=JAN_10)
        await set_streak(fresh.id, current=2, longest=2, last_activity_date=today - timedelta(days=1))
        await set_streak(idle.id, current=0, longest=9, last_activity_date=JAN_10)

        checked, reset = await reconcile_all_streaks(db_session, today)

        assert (checked, reset) == (2, 1)
        assert (await _row(db_session, stale.id)).current_streak == 0
        assert (await _row(db_session, fresh.id)).current_streak == 2


class TestGetStreakInfo:
    @pytest.mark.asyncio
    async def test_no_record_defaults(self, db_session, user):
        info = await get_streak_info(db_session, user.id, JAN_10)
        assert (info.current_streak, info.longest_streak, info.is_at_risk) == (0, 0, False)

    @pytest.mark.asyncio
    async def test_at_risk_until_secured_today(self, db_session, user, set_streak):
        await set_streak(user.id, current=3, longest=5, last_activity_date=JAN_10)
        today = JAN_10 + timedelta(days=1)

        assert (await get_streak_info(db_session, user.id, today)).is_at_risk is True
        await record_activity(db_session, user.id, today)
        assert (await get_streak_info(db_session, user.id, today)).is_at_risk is False
