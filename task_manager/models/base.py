"""Base mixins for SQLModel tables."""

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def now_text() -> str:
    """Current UTC time in the text form stored in timestamp columns."""
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


class TimestampMixin(SQLModel):
    created_at: str = Field(
        default_factory=now_text,
        nullable=False,
        sa_type=sa.Text,
    )
    updated_at: str = Field(
        default_factory=now_text,
        nullable=False,
        sa_column_kwargs={"onupdate": now_text},
        sa_type=sa.Text,
    )
