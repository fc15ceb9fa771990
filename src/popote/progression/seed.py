"""Default catalog: levels, XP actions and badges shipped with the product."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from popote.db.models import Badge, LevelThreshold, XpAction
from popote.db.upsert import conflict_insert
from popote.progression.catalog import LevelThresholdEntry, validate_thresholds

logger = logging.getLogger(__name__)

LEVEL_SEED_DATA: list[dict] = [
    {"level": 1, "xp_required": 0, "name": "Débutant", "icon": "🌱"},
    {"level": 2, "xp_required": 50, "name": "Apprenti", "icon": "🌿"},
    {"level": 3, "xp_required": 150, "name": "Curieux", "icon": "🌲"},
    {"level": 4, "xp_required": 300, "name": "Motivé", "icon": "🌳"},
    {"level": 5, "xp_required": 500, "name": "Régulier", "icon": "⭐"},
    {"level": 6, "xp_required": 750, "name": "Engagé", "icon": "🌟"},
    {"level": 7, "xp_required": 1000, "name": "Expert", "icon": "💫"},
    {"level": 8, "xp_required": 1500, "name": "Maître", "icon": "🏆"},
    {"level": 9, "xp_required": 2000, "name": "Légende", "icon": "👑"},
    {"level": 10, "xp_required": 3000, "name": "Le Phare", "icon": "🔥"},
]

XP_ACTION_SEED_DATA: list[dict] = [
    {"action_type": "mission_completed", "xp_amount": 10, "description": "Mission quotidienne complétée"},
    {"action_type": "tutorial_completed", "xp_amount": 5, "description": "Tutoriel terminé"},
    {"action_type": "streak_day", "xp_amount": 2, "description": "Jour de streak consécutif"},
    {"action_type": "first_mission", "xp_amount": 20, "description": "Première mission complétée"},
    {"action_type": "first_tutorial", "xp_amount": 10, "description": "Premier tutoriel terminé"},
    {"action_type": "weekly_streak", "xp_amount": 15, "description": "7 jours de streak"},
    {"action_type": "badge_earned", "xp_amount": 25, "description": "Badge débloqué"},
]

BADGE_SEED_DATA: list[dict] = [
    # Missions (kitchen brigade)
    {
        "slug": "commis",
        "name": "Commis",
        "description": "Complète 5 missions",
        "icon": "👨‍🍳",
        "criteria_type": "missions_completed",
        "criteria_value": 5,
        "sort_order": 1,
    },
    {
        "slug": "sous-chef",
        "name": "Sous-chef",
        "description": "Complète 20 missions",
        "icon": "🍳",
        "criteria_type": "missions_completed",
        "criteria_value": 20,
        "sort_order": 2,
    },
    {
        "slug": "chef",
        "name": "Chef",
        "description": "Complète 50 missions",
        "icon": "👨‍🍳",
        "criteria_type": "missions_completed",
        "criteria_value": 50,
        "sort_order": 3,
    },
    {
        "slug": "chef-etoile",
        "name": "Chef Étoilé",
        "description": "Complète 100 missions",
        "icon": "⭐",
        "criteria_type": "missions_completed",
        "criteria_value": 100,
        "sort_order": 4,
    },
    # Streaks
    {
        "slug": "regulier",
        "name": "Régulier",
        "description": "Maintiens un streak de 7 jours",
        "icon": "🔥",
        "criteria_type": "streak_days",
        "criteria_value": 7,
        "sort_order": 5,
    },
    {
        "slug": "assidu",
        "name": "Assidu",
        "description": "Maintiens un streak de 14 jours",
        "icon": "💪",
        "criteria_type": "streak_days",
        "criteria_value": 14,
        "sort_order": 6,
    },
    {
        "slug": "machine",
        "name": "Machine",
        "description": "Maintiens un streak de 30 jours",
        "icon": "🚀",
        "criteria_type": "streak_days",
        "criteria_value": 30,
        "sort_order": 7,
    },
    # Tutorials
    {
        "slug": "curieux",
        "name": "Curieux",
        "description": "Regarde 3 tutoriels",
        "icon": "📚",
        "criteria_type": "tutorials_viewed",
        "criteria_value": 3,
        "sort_order": 8,
    },
    {
        "slug": "apprenti",
        "name": "Apprenti",
        "description": "Regarde 10 tutoriels",
        "icon": "🎓",
        "criteria_type": "tutorials_viewed",
        "criteria_value": 10,
        "sort_order": 9,
    },
    {
        "slug": "expert",
        "name": "Expert",
        "description": "Regarde tous les tutoriels",
        "icon": "🏆",
        "criteria_type": "tutorials_viewed",
        "criteria_value": 20,
        "sort_order": 10,
    },
]


async def seed_level_system(db: AsyncSession) -> int:
    """Insert missing level thresholds and XP actions. Returns rows inserted.

    Existing rows are left alone so administrator edits survive restarts.
    """
    validate_thresholds([LevelThresholdEntry(**level) for level in LEVEL_SEED_DATA])

    inserted = 0
    for level_data in LEVEL_SEED_DATA:
        stmt = conflict_insert(db, LevelThreshold).values(**level_data)
        result = await db.execute(stmt.on_conflict_do_nothing(index_elements=["level"]))
        inserted += result.rowcount

    for action_data in XP_ACTION_SEED_DATA:
        stmt = conflict_insert(db, XpAction).values(**action_data, is_active=True)
        result = await db.execute(stmt.on_conflict_do_nothing(index_elements=["action_type"]))
        inserted += result.rowcount

    await db.commit()
    logger.info("Seeded %d level thresholds and XP actions", inserted)
    return inserted


async def seed_badges(db: AsyncSession) -> int:
    """Insert missing badge definitions. Returns rows inserted."""
    inserted = 0
    for badge_data in BADGE_SEED_DATA:
        stmt = conflict_insert(db, Badge).values(**badge_data, is_active=True)
        result = await db.execute(stmt.on_conflict_do_nothing(index_elements=["slug"]))
        inserted += result.rowcount

    await db.commit()
    logger.info("Seeded %d badge definitions", inserted)
    return inserted


async def seed_catalog(db: AsyncSession) -> int:
    """Seed every catalog table (idempotent)."""
    return await seed_level_system(db) + await seed_badges(db)
