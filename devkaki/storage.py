"""Snapshot storage for devkaki.

This module provides an abstract storage interface and a JSON file
implementation used to carry a TaskStore snapshot between CLI runs. Each
task is one record with the Task fields; instants are encoded as epoch
milliseconds. JsonStorage uses fcntl-based file locking while reading and
writing.
"""

import fcntl
import json
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from devkaki.errors import StorageError
from devkaki.models import Priority, Task, TaskType, system_zone


def to_epoch_ms(instant: datetime) -> int:
    """Encode an instant as milliseconds since the Unix epoch.

    Naive datetimes are taken as local time.
    """
    return int(round(instant.timestamp() * 1000))


def from_epoch_ms(millis: int, tz: Optional[tzinfo] = None) -> datetime:
    """Decode epoch milliseconds into an aware datetime.

    Args:
        millis: Milliseconds since the Unix epoch
        tz: Zone of the result. If None, uses the system local zone.
    """
    instant = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return instant.astimezone(tz or system_zone())


def _optional_ms(instant: Optional[datetime]) -> Optional[int]:
    return None if instant is None else to_epoch_ms(instant)


def task_to_record(task: Task) -> Dict[str, Any]:
    """Convert a task to its JSON-serializable record."""
    return {
        "id": task.id,
        "name": task.name,
        "description": task.description,
        "type": task.type.value,
        "priority": task.priority.value,
        "dueDate": _optional_ms(task.due_date),
        "estimatedHours": task.estimated_hours,
        "isCompleted": task.is_completed,
        "createdAt": to_epoch_ms(task.created_at),
        "completedAt": _optional_ms(task.completed_at),
        "tags": list(task.tags),
    }


def task_from_record(record: Dict[str, Any], tz: Optional[tzinfo] = None) -> Task:
    """Convert a stored record back into a Task.

    Raises:
        StorageError: If the record is missing fields or holds bad values
    """
    try:
        due_date = record.get("dueDate")
        completed_at = record.get("completedAt")
        return Task(
            id=record["id"],
            name=record["name"],
            description=record.get("description", ""),
            type=TaskType(record["type"]),
            priority=Priority(record["priority"]),
            due_date=None if due_date is None else from_epoch_ms(due_date, tz),
            estimated_hours=int(record.get("estimatedHours", 0)),
            is_completed=bool(record.get("isCompleted", False)),
            created_at=from_epoch_ms(record["createdAt"], tz),
            completed_at=None if completed_at is None else from_epoch_ms(completed_at, tz),
            tags=tuple(record.get("tags", ())),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise StorageError(f"Invalid task record: {exc}") from exc


class Storage(ABC):
    """Abstract base class for snapshot storage implementations."""

    @abstractmethod
    def save(self, tasks: Iterable[Task]) -> None:
        """Save a snapshot of tasks, in order.

        Args:
            tasks: Tasks to save
        """
        pass

    @abstractmethod
    def load(self) -> List[Task]:
        """Load the saved snapshot.

        Returns:
            Tasks in their saved order
        """
        pass

    @abstractmethod
    def delete(self) -> None:
        """Delete all data from storage."""
        pass


class JsonStorage(Storage):
    """JSON file-based snapshot storage with file locking.

    Attributes:
        file_path: Path to the JSON storage file
        tz: Zone used for decoded instants (None for the system local zone)
    """

    def __init__(self, file_path: Optional[str] = None, tz: Optional[tzinfo] = None):
        """Initialize JsonStorage with a file path.

        Args:
            file_path: Path to the JSON file for storage. If None, uses
                      TASK_DB_PATH environment variable or defaults to tasks.json
            tz: Zone used for decoded instants
        """
        if file_path is None:
            file_path = os.environ.get("TASK_DB_PATH", "tasks.json")
        self.file_path = Path(file_path)
        self.tz = tz

    def save(self, tasks: Iterable[Task]) -> None:
        """Save tasks to the JSON file with file locking.

        Args:
            tasks: Tasks to save, in order
        """
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

        records = [task_to_record(task) for task in tasks]

        with open(self.file_path, "w", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                json.dump(records, f, indent=2, ensure_ascii=False)
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def load(self) -> List[Task]:
        """Load tasks from the JSON file with file locking.

        Returns:
            Tasks in their saved order. Returns an empty list if the file
            doesn't exist or is empty.

        Raises:
            StorageError: If the file is not a valid snapshot
        """
        if not self.file_path.exists():
            return []

        with open(self.file_path, "r", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_SH)
            try:
                content = f.read().strip()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

        if not content:
            return []

        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Cannot read {self.file_path}: {exc}") from exc
        if not isinstance(data, list):
            raise StorageError(f"Cannot read {self.file_path}: expected a list of tasks")

        return [task_from_record(record, self.tz) for record in data]

    def delete(self) -> None:
        """Delete the JSON storage file.

        If the file doesn't exist, this method does nothing.
        """
        if self.file_path.exists():
            self.file_path.unlink()
