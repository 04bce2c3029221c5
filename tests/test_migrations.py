"""
Tests for the initial migration and the programmatic Alembic runner.

Tests cover:
- Seeded topics and empty task table after a fresh upgrade
- Referential integrity and column defaults enforced by the database
- Re-applying the migration body without duplicating seeds
- Downgrade to base and rollback of a failed upgrade
- Rejection of leftover tables with the wrong layout, types or foreign keys
- Guarded seed statements in offline SQL output
"""

from __future__ import annotations

import io

import pytest
from alembic import command
from sqlalchemy.exc import IntegrityError

from task_manager.core.database import create_engine, init_db
from task_manager.core.errors import SchemaConflictError, SchemaInitError
from task_manager.core.migrations import (
    EXPECTED_COLUMNS,
    alembic_config,
    current_revision,
    downgrade,
    head_revision,
    stamp,
    upgrade,
)

from .db_helpers import execute, fetch_all, table_names

NOW = "2025-03-25 03:38:11"


async def _insert_task(engine, topic_id: int, name: str = "Write report") -> None:
    await execute(
        engine,
        "INSERT INTO task (topic_id, name, description, created_at, updated_at) "
        "VALUES (:topic_id, :name, '', :now, :now)",
        topic_id=topic_id,
        name=name,
        now=NOW,
    )


# ---------------------------------------------------------------------------
# Fresh upgrade
# ---------------------------------------------------------------------------


async def test_upgrade_seeds_default_topics(migrated_engine):
    rows = await fetch_all(migrated_engine, "SELECT name, description FROM topic ORDER BY id")
    assert [tuple(r) for r in rows] == [
        ("Favourites", "Favourite tasks"),
        ("Default", "All tasks"),
    ]


async def test_seeded_topics_have_timestamps(migrated_engine):
    rows = await fetch_all(migrated_engine, "SELECT created_at, updated_at FROM topic")
    for created_at, updated_at in rows:
        assert len(created_at) == len(NOW)
        assert created_at == updated_at


async def test_upgrade_leaves_task_table_empty(migrated_engine):
    rows = await fetch_all(migrated_engine, "SELECT COUNT(*) FROM task")
    assert rows[0][0] == 0


async def test_upgrade_creates_expected_columns(migrated_engine):
    for table, expected in EXPECTED_COLUMNS.items():
        rows = await fetch_all(migrated_engine, f"PRAGMA table_info({table})")
        assert [r[1] for r in rows] == expected
        # notnull flag
        assert all(r[3] == 1 for r in rows)


async def test_upgrade_records_head_revision(migrated_engine):
    assert await current_revision(migrated_engine) == head_revision()
    assert head_revision() == "0001_task_manager"


async def test_current_revision_on_empty_database(engine):
    assert await current_revision(engine) is None


async def test_foreign_keys_enforced_on_every_connection(migrated_engine):
    rows = await fetch_all(migrated_engine, "PRAGMA foreign_keys")
    assert rows[0][0] == 1


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------


async def test_task_with_existing_topic_accepted(migrated_engine):
    topic_rows = await fetch_all(migrated_engine, "SELECT id FROM topic WHERE name = 'Default'")
    await _insert_task(migrated_engine, topic_rows[0][0])

    rows = await fetch_all(migrated_engine, "SELECT topic_id FROM task")
    assert [r[0] for r in rows] == [topic_rows[0][0]]


async def test_task_with_unknown_topic_rejected(migrated_engine):
    with pytest.raises(IntegrityError):
        await _insert_task(migrated_engine, 999)

    rows = await fetch_all(migrated_engine, "SELECT COUNT(*) FROM task")
    assert rows[0][0] == 0


async def test_task_flags_default_to_false(migrated_engine):
    await _insert_task(migrated_engine, 1)
    rows = await fetch_all(migrated_engine, "SELECT completed, favourite FROM task")
    assert tuple(rows[0]) == (0, 0)


async def test_topic_ids_are_not_reused(migrated_engine):
    await execute(
        migrated_engine,
        "INSERT INTO topic (name, description, created_at, updated_at) VALUES ('Work', '', :now, :now)",
        now=NOW,
    )
    await execute(migrated_engine, "DELETE FROM topic WHERE name = 'Work'")
    await execute(
        migrated_engine,
        "INSERT INTO topic (name, description, created_at, updated_at) VALUES ('Home', '', :now, :now)",
        now=NOW,
    )
    rows = await fetch_all(migrated_engine, "SELECT id FROM topic WHERE name = 'Home'")
    assert rows[0][0] == 4


# ---------------------------------------------------------------------------
# Re-application and downgrade
# ---------------------------------------------------------------------------


async def test_second_upgrade_is_a_no_op(migrated_engine):
    await upgrade(migrated_engine)
    rows = await fetch_all(migrated_engine, "SELECT COUNT(*) FROM topic")
    assert rows[0][0] == 2


async def test_reapplying_migration_does_not_duplicate_seeds(migrated_engine):
    """Forget the applied revision and run the migration body again."""
    await stamp(migrated_engine, "base")
    assert await current_revision(migrated_engine) is None

    await upgrade(migrated_engine)

    rows = await fetch_all(migrated_engine, "SELECT name FROM topic ORDER BY id")
    assert [r[0] for r in rows] == ["Favourites", "Default"]
    assert {"topic", "task"} <= await table_names(migrated_engine)


async def test_reapplying_migration_keeps_existing_tasks(migrated_engine):
    await _insert_task(migrated_engine, 2)
    await stamp(migrated_engine, "base")
    await upgrade(migrated_engine)

    rows = await fetch_all(migrated_engine, "SELECT COUNT(*) FROM task")
    assert rows[0][0] == 1


async def test_reapplying_migration_restores_missing_seed(migrated_engine):
    await execute(migrated_engine, "DELETE FROM topic WHERE name = 'Favourites'")
    await stamp(migrated_engine, "base")
    await upgrade(migrated_engine)

    rows = await fetch_all(migrated_engine, "SELECT name FROM topic ORDER BY id")
    assert [r[0] for r in rows] == ["Default", "Favourites"]


async def test_downgrade_removes_all_tables(migrated_engine):
    await downgrade(migrated_engine)

    assert await table_names(migrated_engine) == {"alembic_version"}
    assert await current_revision(migrated_engine) is None


async def test_upgrade_after_downgrade_reseeds(migrated_engine):
    await _insert_task(migrated_engine, 1)
    await downgrade(migrated_engine)
    await upgrade(migrated_engine)

    topics = await fetch_all(migrated_engine, "SELECT COUNT(*) FROM topic")
    tasks = await fetch_all(migrated_engine, "SELECT COUNT(*) FROM task")
    assert topics[0][0] == 2
    assert tasks[0][0] == 0


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


async def test_conflicting_table_rolls_back_upgrade(engine):
    await execute(engine, "CREATE TABLE topic (id INTEGER PRIMARY KEY, title TEXT NOT NULL)")

    with pytest.raises(SchemaConflictError):
        await upgrade(engine)

    assert await table_names(engine) == {"topic"}
    assert await current_revision(engine) is None


async def test_leftover_task_table_without_foreign_key_is_rejected(engine):
    await execute(
        engine,
        "CREATE TABLE task ("
        "id INTEGER NOT NULL PRIMARY KEY, topic_id INTEGER NOT NULL, "
        "name TEXT NOT NULL, description TEXT NOT NULL, "
        "completed BOOLEAN NOT NULL, favourite BOOLEAN NOT NULL, "
        "created_at TEXT NOT NULL, updated_at TEXT NOT NULL)",
    )

    with pytest.raises(SchemaConflictError, match="foreign key"):
        await upgrade(engine)

    assert await table_names(engine) == {"task"}
    assert await current_revision(engine) is None


async def test_leftover_topic_table_with_wrong_types_is_rejected(engine):
    await execute(
        engine,
        "CREATE TABLE topic ("
        "id INTEGER NOT NULL PRIMARY KEY, name BLOB NOT NULL, "
        "description INTEGER NOT NULL, created_at REAL NOT NULL, "
        "updated_at TEXT NOT NULL)",
    )

    with pytest.raises(SchemaConflictError, match="wrong type"):
        await upgrade(engine)

    assert await table_names(engine) == {"topic"}
    assert await current_revision(engine) is None


async def test_failed_verification_rolls_back_created_tables(engine, monkeypatch):
    """Tables created by the migration vanish if the upgrade fails afterwards."""
    monkeypatch.setitem(
        EXPECTED_COLUMNS, "task", EXPECTED_COLUMNS["task"] + ["priority"]
    )

    with pytest.raises(SchemaConflictError):
        await upgrade(engine)

    assert await table_names(engine) == set()
    assert await current_revision(engine) is None


async def test_init_db_applies_schema(engine):
    await init_db(engine)
    assert await current_revision(engine) == head_revision()


async def test_init_db_reports_unreachable_storage(tmp_path):
    missing = tmp_path / "missing" / "tasks.db"
    engine = create_engine(f"sqlite+aiosqlite:///{missing}")
    try:
        with pytest.raises(SchemaInitError):
            await init_db(engine)
    finally:
        await engine.dispose()


def test_alembic_config_escapes_percent_signs():
    cfg = alembic_config("sqlite+aiosqlite:///./my%20tasks.db")
    assert cfg.get_main_option("sqlalchemy.url") == "sqlite+aiosqlite:///./my%20tasks.db"
    assert cfg.get_main_option("script_location").endswith("migrations")


def test_offline_sql_guards_seed_inserts(database_url):
    """`alembic upgrade --sql` output must be as re-runnable as an online upgrade."""
    cfg = alembic_config(database_url)
    buf = io.StringIO()
    cfg.output_buffer = buf

    command.upgrade(cfg, "head", sql=True)

    sql = buf.getvalue()
    assert sql.count("INSERT INTO topic") == 2
    assert sql.count("EXISTS (SELECT") == 2
    assert "existing.name = 'Favourites'" in sql
    assert "'Default'" in sql
