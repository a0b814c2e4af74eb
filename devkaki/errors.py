"""Error types raised by devkaki.

Every error is local and recoverable: it is raised synchronously to the
immediate caller, which decides how to report it.
"""


class TaskError(ValueError):
    """Base class for all devkaki errors."""


class DuplicateIdError(TaskError):
    """Raised when adding a task whose id is already held by the store."""

    def __init__(self, task_id: str):
        super().__init__(f"Task with ID {task_id} already exists")
        self.task_id = task_id


class NotFoundError(TaskError, LookupError):
    """Raised when an operation targets a task id the store does not hold."""

    def __init__(self, task_id: str):
        super().__init__(f"Task with ID {task_id} does not exist")
        self.task_id = task_id


class ValidationError(TaskError):
    """Raised when task field values break the model's rules."""


class StorageError(TaskError):
    """Raised when a snapshot file cannot be decoded."""
