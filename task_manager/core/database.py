"""
Database connection and session management.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, Optional

import structlog
from alembic.util.exc import CommandError
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from task_manager.core.config import get_settings
from task_manager.core.errors import SchemaInitError

log = structlog.get_logger()


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """Turn on foreign keys and make DDL transactional for SQLite connections."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Stop the driver from managing BEGIN itself; see _on_begin.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    engine = create_async_engine(database_url, echo=echo, future=True)
    if engine.dialect.name == "sqlite":
        _install_sqlite_hooks(engine)
    return engine


@lru_cache
def get_engine() -> AsyncEngine:
    settings = get_settings()
    return create_engine(settings.database_url, echo=settings.debug)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def get_session_context(
    engine: Optional[AsyncEngine] = None,
) -> AsyncIterator[AsyncSession]:
    """Session scope for one unit of work: commit on success, rollback on error."""
    factory = make_session_factory(engine or get_engine())
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Bring the schema up to date. Startup must not continue if this raises."""
    from task_manager.core.migrations import upgrade

    engine = engine or get_engine()
    try:
        await upgrade(engine)
    except (SQLAlchemyError, CommandError, OSError) as exc:
        log.error("schema.init_failed", url=engine.url.render_as_string(), error=str(exc))
        raise SchemaInitError(f"Could not initialise database schema: {exc}") from exc
