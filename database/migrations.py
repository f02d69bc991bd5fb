"""
Ordered, additive schema migrations.

Each migration runs in its own transaction and is recorded in
``schema_migrations``; applying twice is a no-op.  Migrations only ever
create tables, add columns or add indexes, so existing rows survive every
upgrade.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    statements: Tuple[str, ...]


MIGRATIONS: Tuple[Migration, ...] = (
    Migration(
        version=1,
        name="create_todos",
        statements=(
            """
            CREATE TABLE todos (
                id VARCHAR(36) PRIMARY KEY NOT NULL,
                text TEXT NOT NULL,
                completed BOOLEAN NOT NULL DEFAULT FALSE,
                category TEXT,
                tags JSON,
                priority VARCHAR(8)
                    CONSTRAINT ck_todos_priority CHECK (priority IN ('high', 'medium', 'low')),
                due_date TIMESTAMP WITH TIME ZONE,
                created_at TIMESTAMP WITH TIME ZONE NOT NULL,
                updated_at TIMESTAMP WITH TIME ZONE NOT NULL
            )
            """,
            "CREATE INDEX idx_todos_completed ON todos (completed)",
            "CREATE INDEX idx_todos_category ON todos (category)",
            "CREATE INDEX idx_todos_priority ON todos (priority)",
            "CREATE INDEX idx_todos_due_date ON todos (due_date)",
            "CREATE INDEX idx_todos_created_at ON todos (created_at)",
        ),
    ),
    Migration(
        version=2,
        name="create_users",
        statements=(
            """
            CREATE TABLE users (
                id VARCHAR(36) PRIMARY KEY NOT NULL,
                username VARCHAR(64) UNIQUE NOT NULL,
                email VARCHAR(255) UNIQUE NOT NULL,
                password_hash VARCHAR(255) NOT NULL,
                created_at TIMESTAMP WITH TIME ZONE NOT NULL,
                updated_at TIMESTAMP WITH TIME ZONE NOT NULL
            )
            """,
            "ALTER TABLE todos ADD COLUMN user_id VARCHAR(36) REFERENCES users (id)",
            "CREATE INDEX idx_todos_user_id ON todos (user_id)",
        ),
    ),
)


async def _applied_versions(engine: AsyncEngine) -> set[int]:
    async with engine.begin() as conn:
        await conn.execute(
            text(
                "CREATE TABLE IF NOT EXISTS schema_migrations ("
                " version INTEGER PRIMARY KEY NOT NULL,"
                " name VARCHAR(128) NOT NULL,"
                " applied_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP)"
            )
        )
        result = await conn.execute(text("SELECT version FROM schema_migrations"))
        return {row[0] for row in result}


async def apply_migrations(
    engine: AsyncEngine,
    migrations: Tuple[Migration, ...] = MIGRATIONS,
) -> List[int]:
    """
    Apply every pending migration in version order.

    Returns the versions applied by this call (empty when the schema is
    already current).
    """
    versions = [m.version for m in migrations]
    if versions != sorted(set(versions)):
        raise ValueError("migration versions must be unique and ascending")

    applied = await _applied_versions(engine)
    newly_applied: List[int] = []

    for migration in migrations:
        if migration.version in applied:
            continue
        async with engine.begin() as conn:
            for statement in migration.statements:
                await conn.execute(text(statement))
            await conn.execute(
                text("INSERT INTO schema_migrations (version, name) VALUES (:version, :name)"),
                {"version": migration.version, "name": migration.name},
            )
        logger.info("Applied migration %04d_%s", migration.version, migration.name)
        newly_applied.append(migration.version)

    if not newly_applied:
        logger.debug("Schema is up to date (version %d)", max(applied, default=0))
    return newly_applied
