"""Dialect-specific INSERT for ``ON CONFLICT`` upserts.

PostgreSQL in production, SQLite in tests; both expose the same
``on_conflict_do_update`` / ``on_conflict_do_nothing`` API.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def upsert_insert(session: AsyncSession, model: type) -> Any:
    if session.get_bind().dialect.name == "sqlite":
        return sqlite.insert(model)
    return postgresql.insert(model)
