"""Topic model."""

from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin

FAVOURITES = "Favourites"
DEFAULT = "Default"

# Seeded by the initial migration; these act as views over all tasks.
SPECIAL_TOPICS = frozenset({FAVOURITES, DEFAULT})


class Topic(TimestampMixin, SQLModel, table=True):
    __tablename__ = "topic"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, sa_type=sa.Text)
    description: str = Field(default="", nullable=False, sa_type=sa.Text)
