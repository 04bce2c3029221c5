"""
Shared fixtures: a fresh file-backed SQLite database per test.
"""

import pytest
import structlog

from task_manager.core.database import create_engine, make_session_factory
from task_manager.core.migrations import upgrade


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}"


@pytest.fixture
async def engine(database_url):
    eng = create_engine(database_url)
    yield eng
    await eng.dispose()


@pytest.fixture
async def migrated_engine(engine):
    await upgrade(engine)
    return engine


@pytest.fixture
async def session(migrated_engine):
    factory = make_session_factory(migrated_engine)
    async with factory() as s:
        yield s
        await s.rollback()
