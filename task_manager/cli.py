"""
Command-line entry point.

Manages the schema (upgrade, downgrade, current revision) and lists topics.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional, Sequence

import structlog
from alembic.util.exc import CommandError
from sqlalchemy.exc import SQLAlchemyError

from task_manager.core import migrations
from task_manager.core.config import get_settings
from task_manager.core.database import create_engine, get_session_context, init_db
from task_manager.core.errors import TaskManagerError
from task_manager.core.logging import configure_logging
from task_manager.services.topics import list_topics


async def _upgrade(engine, revision: str) -> None:
    if revision == "head":
        await init_db(engine)
    else:
        await migrations.upgrade(engine, revision)


async def _current(engine) -> None:
    current = await migrations.current_revision(engine)
    head = migrations.head_revision()
    suffix = " (head)" if current is not None and current == head else ""
    print(f"{current or 'base'}{suffix}")


async def _topics(engine) -> None:
    if get_settings().migrate_on_startup:
        await init_db(engine)
    async with get_session_context(engine) as session:
        for topic in await list_topics(session):
            print(f"{topic.id}\t{topic.name}\t{topic.description}")


async def _dispatch(args: argparse.Namespace, database_url: str) -> None:
    engine = create_engine(database_url, echo=get_settings().debug)
    try:
        if args.command == "upgrade":
            await _upgrade(engine, args.revision)
        elif args.command == "downgrade":
            await migrations.downgrade(engine, args.revision)
        elif args.command == "current":
            await _current(engine)
        elif args.command == "topics":
            await _topics(engine)
    finally:
        await engine.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="task-manager", description="Task manager database management"
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL (default: TASKS_DATABASE_URL or ./tasks.db)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    up = sub.add_parser("upgrade", help="Apply migrations up to a revision")
    up.add_argument("revision", nargs="?", default="head")

    down = sub.add_parser("downgrade", help="Revert migrations down to a revision")
    down.add_argument("revision", nargs="?", default="base")

    sub.add_parser("current", help="Show the applied revision")
    sub.add_parser("topics", help="List topics")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    log = structlog.get_logger()

    database_url = args.database_url or settings.database_url
    log.debug("cli.start", command=args.command)
    try:
        asyncio.run(_dispatch(args, database_url))
    except (TaskManagerError, SQLAlchemyError, CommandError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
