"""Progression API endpoints: catalogs and the current user's progress."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from popote.auth.dependencies import get_current_user
from popote.database import get_session
from popote.db.models import User
from popote.progression.badge_service import UserBadgeStatus, get_user_badges
from popote.progression.catalog import load_catalog
from popote.progression.level_service import get_level_info, list_levels, list_xp_actions
from popote.progression.schemas import (
    AllLevelsResponse,
    AllXpActionsResponse,
    LevelEntry,
    LevelResponse,
    ProgressionSummaryResponse,
    StreakResponse,
    UserBadgeItem,
    UserBadgesResponse,
    XpActionEntry,
)
from popote.progression.streak_service import get_streak_info, streak_encouragement

router = APIRouter(prefix="/api/v1", tags=["Progression"])


def _badges_response(statuses: list[UserBadgeStatus]) -> UserBadgesResponse:
    items = [
        UserBadgeItem(
            id=s.badge.id,
            slug=s.badge.slug,
            name=s.badge.name,
            description=s.badge.description,
            icon=s.badge.icon,
            criteria_type=s.badge.criteria_type,
            criteria_value=s.badge.criteria_value,
            unlocked=s.unlocked,
            unlocked_at=s.unlocked_at,
        )
        for s in statuses
    ]
    return UserBadgesResponse(
        badges=items,
        total_unlocked=sum(1 for i in items if i.unlocked),
        total_available=len(items),
    )


async def _streak_response(db: AsyncSession, user_id: int) -> StreakResponse:
    info = await get_streak_info(db, user_id)
    return StreakResponse(
        current_streak=info.current_streak,
        longest_streak=info.longest_streak,
        is_at_risk=info.is_at_risk,
        encouragement=streak_encouragement(info.current_streak, info.is_at_risk),
    )


# ── Public catalogs ──


@router.get("/levels", response_model=AllLevelsResponse)
async def get_levels(db: AsyncSession = Depends(get_session)):
    """Level thresholds, lowest first."""
    levels = await list_levels(db)
    return AllLevelsResponse(levels=[LevelEntry.model_validate(t) for t in levels])


@router.get("/xp-actions", response_model=AllXpActionsResponse)
async def get_xp_actions(db: AsyncSession = Depends(get_session)):
    """XP rewards per action, most rewarding first."""
    actions = await list_xp_actions(db)
    return AllXpActionsResponse(actions=[XpActionEntry.model_validate(a) for a in actions])


# ── Current user ──


@router.get("/users/me/streak", response_model=StreakResponse)
async def get_my_streak(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await _streak_response(db, user.id)


@router.get("/users/me/level", response_model=LevelResponse)
async def get_my_level(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    info = await get_level_info(db, user.id)
    return LevelResponse.model_validate(info)


@router.get("/users/me/badges", response_model=UserBadgesResponse)
async def get_my_badges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Every active badge in display order, flagged unlocked or not."""
    return _badges_response(await get_user_badges(db, user.id))


@router.get("/users/me/progression", response_model=ProgressionSummaryResponse)
async def get_my_progression(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Streak, level and badges in one call (one catalog load)."""
    catalog = await load_catalog(db)
    level = await get_level_info(db, user.id, catalog)
    badges = await get_user_badges(db, user.id, catalog)
    return ProgressionSummaryResponse(
        streak=await _streak_response(db, user.id),
        level=LevelResponse.model_validate(level),
        badges=_badges_response(badges),
    )
