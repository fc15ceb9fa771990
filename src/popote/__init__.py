"""Popote progression engine: daily streaks, XP levels and badge unlocks."""

__version__ = "0.1.0"
