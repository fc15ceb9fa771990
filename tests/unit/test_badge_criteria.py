"""Badge criteria evaluation against a stats snapshot."""

import pytest

from popote.progression.badge_service import UserStats, meets_criteria
from popote.progression.catalog import BadgeEntry


def _badge(criteria_type: str, value: int) -> BadgeEntry:
    return BadgeEntry(id=1, slug="b", name="B", icon="🏅", criteria_type=criteria_type, criteria_value=value)


class TestMeetsCriteria:
    @pytest.mark.parametrize(
        ("criteria", "stats", "expected"),
        [
            ("missions_completed", UserStats(missions_completed=4), False),
            ("missions_completed", UserStats(missions_completed=5), True),
            ("missions_completed", UserStats(missions_completed=6), True),
            ("streak_days", UserStats(longest_streak=6), False),
            ("streak_days", UserStats(longest_streak=7), True),
            ("tutorials_viewed", UserStats(tutorials_viewed=4), False),
            ("tutorials_viewed", UserStats(tutorials_viewed=5), True),
        ],
    )
    def test_threshold_is_inclusive(self, criteria, stats, expected):
        value = 7 if criteria == "streak_days" else 5
        assert meets_criteria(_badge(criteria, value), stats) is expected

    def test_stats_are_not_mixed(self):
        stats = UserStats(missions_completed=100, longest_streak=0, tutorials_viewed=0)
        assert meets_criteria(_badge("streak_days", 7), stats) is False
        assert meets_criteria(_badge("tutorials_viewed", 3), stats) is False

    def test_unknown_criteria_never_matches(self):
        stats = UserStats(missions_completed=100, longest_streak=100, tutorials_viewed=100)
        assert meets_criteria(_badge("recipes_cooked", 1), stats) is False
