"""Dialect-aware INSERT ... ON CONFLICT builders.

PostgreSQL and SQLite both support ``ON CONFLICT`` and ``RETURNING``; the
statement classes live in separate dialect modules, so pick the one that
matches the session's bind.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_name(db: AsyncSession) -> str:
    return db.get_bind().dialect.name


def insert_for(db: AsyncSession, model: Any) -> Any:
    """Return an ``insert()`` construct for ``model`` supporting on_conflict_* methods."""
    if dialect_name(db) == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)
