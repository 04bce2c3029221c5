# SQLModel definitions — imported here to ensure metadata is populated for Alembic.
from .base import TimestampMixin, now_text  # noqa: F401
from .topic import DEFAULT, FAVOURITES, SPECIAL_TOPICS, Topic  # noqa: F401
from .task import Task  # noqa: F401
