"""Exceptions raised by the task manager persistence layer."""


class TaskManagerError(Exception):
    """Base class for every error raised by this package."""


class NotFoundError(TaskManagerError):
    def __init__(self, kind: str, ident: int):
        super().__init__(f"{kind} {ident} not found")
        self.kind = kind
        self.ident = ident


class ProtectedTopicError(TaskManagerError):
    """Raised when deleting one of the built-in topics."""

    def __init__(self, name: str):
        super().__init__(f"Topic '{name}' is built in and cannot be deleted")
        self.name = name


class SchemaConflictError(TaskManagerError):
    """An existing table does not match the migrated layout."""


class SchemaInitError(TaskManagerError):
    """The schema could not be brought up to date at startup."""
