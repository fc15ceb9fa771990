"""Progression: XP/level columns, streaks, level and XP catalogs, badges.

Revision ID: 002_progression_tables
Revises: 001_baseline
Create Date: 2026-10-12
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_progression_tables"
down_revision: str | None = "001_baseline"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- XP and level on users ---
    op.execute("ALTER TABLE users ADD COLUMN IF NOT EXISTS xp_total INTEGER NOT NULL DEFAULT 0")
    op.execute("ALTER TABLE users ADD COLUMN IF NOT EXISTS current_level INTEGER NOT NULL DEFAULT 1")

    # --- Streaks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS streaks (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            current_streak INTEGER NOT NULL DEFAULT 0 CHECK (current_streak >= 0),
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_activity_date DATE,
            updated_at TIMESTAMPTZ,
            CONSTRAINT uq_streaks_user_id UNIQUE (user_id),
            CONSTRAINT ck_streaks_longest_covers_current CHECK (longest_streak >= current_streak)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_streaks_live
        ON streaks(user_id) WHERE current_streak > 0
    """)

    # --- Level thresholds ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS level_thresholds (
            id SERIAL PRIMARY KEY,
            level INTEGER UNIQUE NOT NULL CHECK (level >= 1),
            xp_required INTEGER NOT NULL CHECK (xp_required >= 0),
            name VARCHAR(50),
            icon VARCHAR(10)
        )
    """)

    # --- XP actions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS xp_actions (
            id SERIAL PRIMARY KEY,
            action_type VARCHAR(50) UNIQUE NOT NULL,
            xp_amount INTEGER NOT NULL CHECK (xp_amount >= 0),
            description VARCHAR(255),
            is_active BOOLEAN NOT NULL DEFAULT true
        )
    """)

    # --- Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id SERIAL PRIMARY KEY,
            slug VARCHAR(100) UNIQUE NOT NULL,
            name VARCHAR(100) NOT NULL,
            description TEXT,
            icon VARCHAR(50) NOT NULL,
            criteria_type VARCHAR(50) NOT NULL,
            criteria_value INTEGER NOT NULL,
            sort_order INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true
        )
    """)

    # --- Badge unlocks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badge_unlocks (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id INTEGER NOT NULL REFERENCES badges(id) ON DELETE CASCADE,
            unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE(user_id, badge_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_badge_unlocks_user
        ON badge_unlocks(user_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS badge_unlocks CASCADE")
    op.execute("DROP TABLE IF EXISTS badges CASCADE")
    op.execute("DROP TABLE IF EXISTS xp_actions CASCADE")
    op.execute("DROP TABLE IF EXISTS level_thresholds CASCADE")
    op.execute("DROP TABLE IF EXISTS streaks CASCADE")
    op.execute("ALTER TABLE users DROP COLUMN IF EXISTS current_level")
    op.execute("ALTER TABLE users DROP COLUMN IF EXISTS xp_total")
