from .tasks import TaskCreate, TaskRead, TaskUpdate  # noqa: F401
from .topics import TopicCreate, TopicRead  # noqa: F401
