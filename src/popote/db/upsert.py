"""Dialect-specific INSERT constructs for ON CONFLICT clauses."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def conflict_insert(db: AsyncSession, model: Any) -> Any:
    """Return an INSERT for ``model`` that supports on_conflict_do_nothing/update.

    PostgreSQL in production, SQLite for local runs and tests.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    msg = f"ON CONFLICT inserts are not supported on dialect {dialect!r}"
    raise RuntimeError(msg)
