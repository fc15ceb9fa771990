"""Pydantic response models for progression endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

# --- Catalogs ---


class LevelEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    level: int
    xp_required: int
    name: str | None = None
    icon: str | None = None


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]


class XpActionEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    action_type: str
    xp_amount: int
    description: str | None = None
    is_active: bool = True


class AllXpActionsResponse(BaseModel):
    actions: list[XpActionEntry]


# --- Streak ---


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    is_at_risk: bool
    encouragement: str


# --- Level ---


class LevelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    xp_total: int
    current_level: int
    level_name: str
    level_icon: str
    xp_for_next_level: int
    xp_progress_in_level: int
    progress_percent: int
    is_max_level: bool


# --- Badges ---


class UserBadgeItem(BaseModel):
    id: int
    slug: str
    name: str
    description: str | None = None
    icon: str
    criteria_type: str
    criteria_value: int
    unlocked: bool
    unlocked_at: datetime | None = None


class UserBadgesResponse(BaseModel):
    badges: list[UserBadgeItem]
    total_unlocked: int
    total_available: int


# --- Summary ---


class ProgressionSummaryResponse(BaseModel):
    streak: StreakResponse
    level: LevelResponse
    badges: UserBadgesResponse
