"""Task model."""

from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin


class Task(TimestampMixin, SQLModel, table=True):
    __tablename__ = "task"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    topic_id: int = Field(foreign_key="topic.id", ondelete="CASCADE", nullable=False)
    name: str = Field(nullable=False, sa_type=sa.Text)
    description: str = Field(default="", nullable=False, sa_type=sa.Text)
    completed: bool = Field(
        default=False,
        nullable=False,
        sa_column_kwargs={"server_default": sa.false()},
    )
    favourite: bool = Field(
        default=False,
        nullable=False,
        sa_column_kwargs={"server_default": sa.false()},
    )
