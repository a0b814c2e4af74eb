"""Task store holding the canonical collection of tasks.

This module provides the TaskStore class, the single writer of the task
collection. It handles task creation, retrieval, replacement, completion
toggling and deletion, and pushes an immutable snapshot to its subscribers
after every successful mutation.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from devkaki.errors import DuplicateIdError, NotFoundError, ValidationError
from devkaki.models import Priority, Task, TaskType, local_now, new_task_id

logger = logging.getLogger(__name__)

Snapshot = Tuple[Task, ...]
Subscriber = Callable[[Snapshot], None]


def validate_task(task: Task) -> None:
    """Check a task against the model's rules.

    Args:
        task: Task to check

    Raises:
        ValidationError: If any field value is not acceptable
    """
    if not isinstance(task.name, str) or not task.name.strip():
        raise ValidationError("Task name cannot be blank")
    if not isinstance(task.type, TaskType):
        raise ValidationError(f"Invalid task type: {task.type!r}")
    if not isinstance(task.priority, Priority):
        raise ValidationError(f"Invalid priority: {task.priority!r}")
    if (
        isinstance(task.estimated_hours, bool)
        or not isinstance(task.estimated_hours, int)
        or task.estimated_hours < 0
    ):
        raise ValidationError(
            f"Estimated hours must be a non-negative integer, got {task.estimated_hours!r}"
        )
    if any(not isinstance(tag, str) or not tag for tag in task.tags):
        raise ValidationError("Tags must be non-empty strings")
    if task.is_completed != (task.completed_at is not None):
        raise ValidationError("completed_at must be set if and only if the task is completed")


class TaskStore:
    """In-memory store and single source of truth for tasks.

    Tasks keep their insertion order: additions go at the end, updates keep
    their position and deletions leave the remaining order unchanged. All
    operations run under one lock, so readers never observe a partially
    applied mutation and subscribers receive snapshots in mutation order.

    Attributes:
        clock: Callable returning the current instant, used for creation and
               completion timestamps
    """

    def __init__(
        self,
        tasks: Optional[Iterable[Task]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize TaskStore.

        Args:
            tasks: Optional tasks to preload, in order. Each one is validated
                   and ids must be unique.
            clock: Source of the current instant. If None, uses the system
                   clock in the local zone.

        Raises:
            DuplicateIdError: If two preloaded tasks share an id
            ValidationError: If a preloaded task is invalid
        """
        self.clock = clock or local_now
        self._lock = threading.RLock()
        self._tasks: Dict[str, Task] = {}
        self._subscribers: List[Subscriber] = []

        for task in tasks or ():
            task = self._stamp(task)
            validate_task(task)
            if task.id in self._tasks:
                raise DuplicateIdError(task.id)
            self._tasks[task.id] = task

    @classmethod
    def from_snapshot(
        cls, tasks: Iterable[Task], clock: Optional[Callable[[], datetime]] = None
    ) -> "TaskStore":
        """Build a store preloaded with a previously taken snapshot."""
        return cls(tasks, clock=clock)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        with self._lock:
            return task_id in self._tasks

    def __iter__(self) -> Iterator[Task]:
        return iter(self.snapshot())

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register an observer of snapshot changes.

        The callback is invoked synchronously, with the new snapshot, after
        each successful mutation.

        Args:
            callback: Callable receiving the new snapshot

        Returns:
            A function that removes the subscription when called
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def snapshot(self) -> Snapshot:
        """Return the current ordered collection of tasks."""
        with self._lock:
            return tuple(self._tasks.values())

    def get_by_id(self, task_id: str) -> Optional[Task]:
        """Get a specific task by ID.

        Args:
            task_id: ID of the task to retrieve

        Returns:
            Task object if found, None otherwise
        """
        with self._lock:
            return self._tasks.get(task_id)

    def add(self, task: Task) -> Task:
        """Add a new task at the end of the collection.

        Args:
            task: Task to insert. An empty id is replaced by a fresh one and
                  a missing created_at is stamped with the store clock.

        Returns:
            The stored Task object

        Raises:
            DuplicateIdError: If a task with the same id already exists
            ValidationError: If the task is invalid
        """
        task = self._stamp(task)
        validate_task(task)

        with self._lock:
            if task.id in self._tasks:
                raise DuplicateIdError(task.id)
            self._tasks[task.id] = task
            logger.debug("Added task %s", task.id)
            self._publish()

        return task

    def create(self, name: str, type: TaskType, priority: Priority = Priority.MEDIUM, **fields) -> Task:
        """Create and add a task with a fresh id and creation time.

        Args:
            name: Task name
            type: Task type
            priority: Task priority level (default: MEDIUM)
            **fields: Any other Task field (description, due_date, tags, ...)

        Returns:
            The created Task object
        """
        fields.pop("id", None)
        task = Task(name=name, type=type, priority=priority, id=new_task_id(), **fields)
        return self.add(task)

    def update(self, task: Task) -> Task:
        """Replace an existing task entirely.

        The stored creation time is kept regardless of the value passed in.

        Args:
            task: Task with updated data, matched by id

        Returns:
            The stored Task object

        Raises:
            NotFoundError: If no task with that id exists
            ValidationError: If the task is invalid
        """
        validate_task(task)

        with self._lock:
            current = self._tasks.get(task.id)
            if current is None:
                raise NotFoundError(task.id)
            if task.created_at != current.created_at:
                task = replace(task, created_at=current.created_at)
            self._tasks[task.id] = task
            logger.debug("Updated task %s", task.id)
            self._publish()

        return task

    def delete(self, task_id: str) -> bool:
        """Delete a task by ID.

        Deleting an unknown id is a no-op and publishes nothing.

        Args:
            task_id: ID of the task to delete

        Returns:
            True if task was deleted, False if task didn't exist
        """
        with self._lock:
            if task_id not in self._tasks:
                return False
            del self._tasks[task_id]
            logger.debug("Deleted task %s", task_id)
            self._publish()

        return True

    def toggle_completion(self, task_id: str) -> Task:
        """Flip a task's completion state.

        Completing a task stamps completed_at with the store clock;
        reopening it clears completed_at.

        Args:
            task_id: ID of the task to toggle

        Returns:
            The updated Task object

        Raises:
            NotFoundError: If no task with that id exists
        """
        with self._lock:
            current = self._tasks.get(task_id)
            if current is None:
                raise NotFoundError(task_id)

            if current.is_completed:
                task = replace(current, is_completed=False, completed_at=None)
            else:
                task = replace(current, is_completed=True, completed_at=self.clock())
            self._tasks[task_id] = task
            logger.debug("Toggled task %s completed=%s", task_id, task.is_completed)
            self._publish()

        return task

    def _stamp(self, task: Task) -> Task:
        if not task.id:
            task = replace(task, id=new_task_id())
        if task.created_at is None:
            task = replace(task, created_at=self.clock())
        return task

    def _publish(self) -> None:
        snapshot = tuple(self._tasks.values())
        for callback in list(self._subscribers):
            callback(snapshot)
