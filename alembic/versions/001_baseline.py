"""Baseline: users and the activity tables progression reads.

These tables belong to the account, mission and tutorial workflows. They
are created here with IF NOT EXISTS so a fresh database is usable on its
own and an existing one is only stamped.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-12
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            email VARCHAR(254) UNIQUE NOT NULL,
            display_name VARCHAR(100),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS missions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status VARCHAR(16) NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'completed', 'skipped')),
            assigned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            completed_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_missions_user_status
        ON missions(user_id, status)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS tutorial_completions (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            tutorial_id INTEGER NOT NULL,
            completed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE(user_id, tutorial_id)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS in_app_notifications (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type VARCHAR(32) NOT NULL,
            title VARCHAR(255) NOT NULL,
            body TEXT NOT NULL,
            data JSONB,
            read_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_in_app_notifications_user_unread
        ON in_app_notifications(user_id, created_at DESC)
        WHERE read_at IS NULL
    """)


def downgrade() -> None:
    """Cannot downgrade from baseline."""
