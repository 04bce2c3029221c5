"""Create topic and task tables and seed the built-in topics.

Revision ID: 0001_task_manager
Revises:
Create Date: 2025-03-25 03:38:11.000000
"""

from typing import Sequence, Union
from datetime import datetime, timezone

from alembic import op
import sqlalchemy as sa

revision: str = "0001_task_manager"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DEFAULT_TOPICS = [
    ("Favourites", "Favourite tasks"),
    ("Default", "All tasks"),
]


def _seed_default_topics() -> None:
    """Insert each built-in topic unless a topic with that name already exists.

    The guard lives in the statement itself so `alembic upgrade --sql` output
    is just as safe to re-run.
    """
    topic = sa.table(
        "topic",
        sa.column("name", sa.Text()),
        sa.column("description", sa.Text()),
        sa.column("created_at", sa.Text()),
        sa.column("updated_at", sa.Text()),
    )
    existing = topic.alias("existing")
    now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    for name, description in DEFAULT_TOPICS:
        row = sa.select(
            sa.literal(name, sa.Text()),
            sa.literal(description, sa.Text()),
            sa.literal(now, sa.Text()),
            sa.literal(now, sa.Text()),
        ).where(~sa.exists().where(existing.c.name == name))
        op.execute(
            topic.insert().from_select(
                ["name", "description", "created_at", "updated_at"], row
            )
        )


def upgrade() -> None:
    op.create_table(
        "topic",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("created_at", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.Text(), nullable=False),
        sqlite_autoincrement=True,
        if_not_exists=True,
    )

    # Deleting a topic removes its tasks.
    op.create_table(
        "task",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "topic_id",
            sa.Integer(),
            sa.ForeignKey("topic.id", name="fk_task_topic_id_topic", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("favourite", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.Text(), nullable=False),
        sqlite_autoincrement=True,
        if_not_exists=True,
    )

    _seed_default_topics()


def downgrade() -> None:
    op.drop_table("task")
    op.drop_table("topic")
