"""
Programmatic Alembic runner.

Every command runs on a connection borrowed from the application's engine and
inside a single transaction, so a failed upgrade leaves no partial schema
behind. ``env.py`` picks the shared connection up from ``Config.attributes``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import sqlalchemy as sa
import structlog
from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

from task_manager.core.config import get_settings
from task_manager.core.errors import SchemaConflictError

log = structlog.get_logger()

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"

# Column layout of the head revision, in table order.
EXPECTED_COLUMNS: dict[str, list[str]] = {
    "topic": ["id", "name", "description", "created_at", "updated_at"],
    "task": [
        "id",
        "topic_id",
        "name",
        "description",
        "completed",
        "favourite",
        "created_at",
        "updated_at",
    ],
}

# Storage class each column must reflect as. TEXT and VARCHAR both satisfy String.
EXPECTED_TYPES: dict[str, dict[str, type]] = {
    "topic": {
        "id": sa.Integer,
        "name": sa.String,
        "description": sa.String,
        "created_at": sa.String,
        "updated_at": sa.String,
    },
    "task": {
        "id": sa.Integer,
        "topic_id": sa.Integer,
        "name": sa.String,
        "description": sa.String,
        "completed": sa.Boolean,
        "favourite": sa.Boolean,
        "created_at": sa.String,
        "updated_at": sa.String,
    },
}

# (constrained columns, referred table, referred columns)
EXPECTED_FOREIGN_KEYS: dict[str, list[tuple[list[str], str, list[str]]]] = {
    "task": [(["topic_id"], "topic", ["id"])],
}


def alembic_config(database_url: Optional[str] = None) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    url = database_url or get_settings().database_url
    # ConfigParser interpolation treats "%" specially.
    cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return cfg


def _config_for(connection: Connection) -> Config:
    cfg = alembic_config(connection.engine.url.render_as_string(hide_password=False))
    cfg.attributes["connection"] = connection
    return cfg


def head_revision() -> Optional[str]:
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def _check_types(table: str, columns: list[dict]) -> None:
    expected = EXPECTED_TYPES.get(table, {})
    wrong = [
        f"{c['name']} {c['type']}"
        for c in columns
        if c["name"] in expected and not isinstance(c["type"], expected[c["name"]])
    ]
    if wrong:
        raise SchemaConflictError(f"Table '{table}' has columns of the wrong type: {wrong}")


def _check_foreign_keys(table: str, foreign_keys: list[dict]) -> None:
    present = [
        (fk["constrained_columns"], fk["referred_table"], fk["referred_columns"])
        for fk in foreign_keys
    ]
    for constrained, referred_table, referred in EXPECTED_FOREIGN_KEYS.get(table, []):
        if (constrained, referred_table, referred) not in present:
            raise SchemaConflictError(
                f"Table '{table}' lacks foreign key {constrained} -> {referred_table}{referred}"
            )


def verify_schema(connection: Connection, missing_ok: bool = False) -> None:
    """Fail if ``topic``/``task`` are missing or laid out differently than expected.

    ``CREATE TABLE IF NOT EXISTS`` silently keeps a pre-existing table, so this
    is the only place an incompatible leftover table gets noticed.
    """
    inspector = sa.inspect(connection)
    for table, expected in EXPECTED_COLUMNS.items():
        if not inspector.has_table(table):
            if missing_ok:
                continue
            raise SchemaConflictError(f"Table '{table}' is missing after upgrade")
        columns = inspector.get_columns(table)
        names = [c["name"] for c in columns]
        if names != expected:
            raise SchemaConflictError(
                f"Table '{table}' has columns {names}, expected {expected}"
            )
        nullable = [c["name"] for c in columns if c["nullable"]]
        if nullable:
            raise SchemaConflictError(
                f"Table '{table}' has nullable columns {nullable}"
            )
        _check_types(table, columns)
        _check_foreign_keys(table, inspector.get_foreign_keys(table))


def _upgrade(connection: Connection, revision: str) -> None:
    if _current(connection) is None:
        # Leftover tables from an unmanaged database.
        verify_schema(connection, missing_ok=True)
    command.upgrade(_config_for(connection), revision)
    if revision == "head":
        verify_schema(connection)


def _downgrade(connection: Connection, revision: str) -> None:
    command.downgrade(_config_for(connection), revision)


def _stamp(connection: Connection, revision: str) -> None:
    command.stamp(_config_for(connection), revision)


def _current(connection: Connection) -> Optional[str]:
    return MigrationContext.configure(connection).get_current_revision()


async def upgrade(engine: AsyncEngine, revision: str = "head") -> None:
    async with engine.begin() as conn:
        await conn.run_sync(_upgrade, revision)
    log.info("schema.upgraded", revision=revision)


async def downgrade(engine: AsyncEngine, revision: str = "base") -> None:
    async with engine.begin() as conn:
        await conn.run_sync(_downgrade, revision)
    log.info("schema.downgraded", revision=revision)


async def stamp(engine: AsyncEngine, revision: str) -> None:
    """Record ``revision`` as applied without running any migration."""
    async with engine.begin() as conn:
        await conn.run_sync(_stamp, revision)
    log.info("schema.stamped", revision=revision)


async def current_revision(engine: AsyncEngine) -> Optional[str]:
    async with engine.connect() as conn:
        return await conn.run_sync(_current)
