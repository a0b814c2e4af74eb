"""Comprehensive tests for TaskStore."""

import dataclasses
import threading
from datetime import timedelta

import pytest

from devkaki.errors import DuplicateIdError, NotFoundError, TaskError, ValidationError
from devkaki.models import Priority, Task, TaskType
from devkaki.store import TaskStore, validate_task


def assert_completion_invariant(store):
    for task in store.snapshot():
        assert task.is_completed == (task.completed_at is not None)


class TestTaskStore:
    """Test suite for TaskStore."""

    @pytest.fixture
    def store(self, clock):
        """Create an empty TaskStore driven by a fake clock."""
        return TaskStore(clock=clock)

    @pytest.fixture
    def published(self, store):
        """Collect every snapshot the store publishes."""
        snapshots = []
        store.subscribe(snapshots.append)
        return snapshots

    def test_create_task_defaults(self, store, clock):
        """Test creating a task assigns id and creation time."""
        task = store.create("Fix login bug", TaskType.BUG)

        assert task.id
        assert task.name == "Fix login bug"
        assert task.priority == Priority.MEDIUM
        assert task.created_at == clock()
        assert task.is_completed is False

    def test_create_task_with_fields(self, store, now):
        """Test creating a task with optional fields."""
        task = store.create(
            "Learn Compose",
            TaskType.LEARNING,
            Priority.LOW,
            due_date=now + timedelta(days=3),
            estimated_hours=8,
            tags=("android", "ui"),
        )
        assert task.estimated_hours == 8
        assert task.tags == ("android", "ui")
        assert task.due_date == now + timedelta(days=3)

    def test_add_then_get_by_id(self, store, clock):
        """Test that an added task can be fetched back, stamped by the clock."""
        task = Task(name="Review PR", type=TaskType.REVIEW)
        stored = store.add(task)

        assert stored == dataclasses.replace(task, created_at=clock())
        assert store.get_by_id(task.id) == stored

    def test_add_stamps_created_at_from_store_clock(self, store, clock):
        """Test that a task without creation time gets the store clock's instant."""
        clock.advance(hours=5)
        stored = store.add(Task(name="Later", type=TaskType.BUG))
        assert stored.created_at == clock()

    def test_add_keeps_explicit_created_at(self, store, now):
        """Test that a given creation time is not overwritten."""
        created = now - timedelta(days=2)
        stored = store.add(Task(name="Old", type=TaskType.BUG, created_at=created))
        assert stored.created_at == created

    def test_add_assigns_id_when_empty(self, store):
        """Test that a task without id gets a fresh one."""
        stored = store.add(Task(id="", name="No id", type=TaskType.FEATURE))
        assert stored.id
        assert store.get_by_id(stored.id) == stored

    def test_add_duplicate_id_raises_error(self, store):
        """Test adding a task whose id exists raises DuplicateIdError."""
        task = store.create("Original", TaskType.BUG)
        duplicate = Task(id=task.id, name="Copy", type=TaskType.BUG)

        with pytest.raises(DuplicateIdError, match=task.id):
            store.add(duplicate)
        assert store.get_by_id(task.id).name == "Original"
        assert len(store) == 1

    def test_add_blank_name_raises_error(self, store):
        """Test that blank names are rejected at the store boundary."""
        with pytest.raises(ValidationError):
            store.add(Task(name="   ", type=TaskType.BUG))
        assert len(store) == 0

    def test_add_negative_hours_raises_error(self, store):
        """Test that negative estimates are rejected."""
        with pytest.raises(ValidationError):
            store.add(Task(name="Task", type=TaskType.BUG, estimated_hours=-1))

    def test_add_inconsistent_completion_raises_error(self, store, now):
        """Test that completed_at must match is_completed."""
        with pytest.raises(ValidationError):
            store.add(Task(name="Task", type=TaskType.BUG, is_completed=True))
        with pytest.raises(ValidationError):
            store.add(Task(name="Task", type=TaskType.BUG, completed_at=now))

    def test_errors_are_task_errors(self):
        """Test that store errors share a common base."""
        assert issubclass(DuplicateIdError, TaskError)
        assert issubclass(NotFoundError, TaskError)
        assert issubclass(NotFoundError, LookupError)
        assert issubclass(ValidationError, ValueError)

    def test_snapshot_preserves_insertion_order(self, store):
        """Test that snapshots list tasks in insertion order."""
        names = ["Task 1", "Task 2", "Task 3"]
        for name in names:
            store.create(name, TaskType.FEATURE)

        assert [t.name for t in store.snapshot()] == names

    def test_snapshot_is_immutable(self, store):
        """Test that a snapshot is a tuple detached from later mutations."""
        store.create("Task 1", TaskType.FEATURE)
        snapshot = store.snapshot()
        store.create("Task 2", TaskType.FEATURE)

        assert isinstance(snapshot, tuple)
        assert len(snapshot) == 1

    def test_update_replaces_task_in_place(self, store):
        """Test that update keeps the task's position."""
        first = store.create("Task 1", TaskType.FEATURE)
        second = store.create("Task 2", TaskType.FEATURE)
        store.create("Task 3", TaskType.FEATURE)

        store.update(dataclasses.replace(second, name="Task 2 edited", priority=Priority.HIGH))

        snapshot = store.snapshot()
        assert [t.name for t in snapshot] == ["Task 1", "Task 2 edited", "Task 3"]
        assert snapshot[1].priority == Priority.HIGH
        assert snapshot[0] == first

    def test_update_nonexistent_raises_error(self, store):
        """Test updating a missing task raises NotFoundError."""
        with pytest.raises(NotFoundError, match="does not exist"):
            store.update(Task(id="missing", name="Ghost", type=TaskType.BUG))
        assert len(store) == 0

    def test_update_preserves_created_at(self, store, now):
        """Test that created_at never changes after creation."""
        task = store.create("Task", TaskType.FEATURE)
        edited = dataclasses.replace(task, name="Edited", created_at=now + timedelta(days=5))

        stored = store.update(edited)
        assert stored.created_at == task.created_at
        assert store.get_by_id(task.id).created_at == task.created_at

    def test_delete_then_get_returns_none(self, store):
        """Test deleting a task removes it."""
        task = store.create("Task", TaskType.FEATURE)

        assert store.delete(task.id) is True
        assert store.get_by_id(task.id) is None
        assert task.id not in store

    def test_delete_twice_is_noop(self, store):
        """Test that deleting a missing id does not raise."""
        task = store.create("Task", TaskType.FEATURE)
        store.delete(task.id)

        assert store.delete(task.id) is False
        assert store.delete("never-existed") is False

    def test_delete_keeps_remaining_order(self, store):
        """Test that deletion leaves the other tasks in order."""
        store.create("Task 1", TaskType.FEATURE)
        middle = store.create("Task 2", TaskType.FEATURE)
        store.create("Task 3", TaskType.FEATURE)

        store.delete(middle.id)
        assert [t.name for t in store.snapshot()] == ["Task 1", "Task 3"]

    def test_toggle_completion_sets_completed_at(self, store, clock):
        """Test completing a task stamps the current instant."""
        task = store.create("Task", TaskType.FEATURE)
        completed_time = clock.advance(hours=2)

        toggled = store.toggle_completion(task.id)
        assert toggled.is_completed is True
        assert toggled.completed_at == completed_time
        assert_completion_invariant(store)

    def test_toggle_completion_twice_restores_state(self, store, clock):
        """Test that toggling is its own inverse."""
        task = store.create("Task", TaskType.FEATURE)

        store.toggle_completion(task.id)
        clock.advance(minutes=5)
        restored = store.toggle_completion(task.id)

        assert restored.is_completed is False
        assert restored.completed_at is None
        assert restored == task
        assert_completion_invariant(store)

    def test_toggle_completion_nonexistent_raises_error(self, store):
        """Test toggling a missing task raises NotFoundError."""
        with pytest.raises(NotFoundError):
            store.toggle_completion("missing")

    def test_subscribers_receive_snapshots_in_order(self, store, published):
        """Test every mutation publishes the new snapshot."""
        task = store.create("Task", TaskType.FEATURE)
        store.toggle_completion(task.id)
        store.update(dataclasses.replace(store.get_by_id(task.id), name="Renamed"))
        store.delete(task.id)

        assert len(published) == 4
        assert published[0] == (task,)
        assert published[1][0].is_completed is True
        assert published[2][0].name == "Renamed"
        assert published[3] == ()

    def test_failed_mutations_publish_nothing(self, store, published):
        """Test that errors and no-op deletes do not notify subscribers."""
        with pytest.raises(NotFoundError):
            store.toggle_completion("missing")
        with pytest.raises(ValidationError):
            store.add(Task(name="", type=TaskType.BUG))
        store.delete("missing")

        assert published == []

    def test_unsubscribe_stops_notifications(self, store):
        """Test that an unsubscribed observer gets no further snapshots."""
        received = []
        unsubscribe = store.subscribe(received.append)
        store.create("Task 1", TaskType.FEATURE)
        unsubscribe()
        store.create("Task 2", TaskType.FEATURE)

        assert len(received) == 1

    def test_subscriber_error_propagates_after_mutation(self, store):
        """Test a failing observer raises to the caller and skips later observers."""
        def failing(snapshot):
            raise RuntimeError("observer failed")

        later = []
        store.subscribe(failing)
        store.subscribe(later.append)

        with pytest.raises(RuntimeError, match="observer failed"):
            store.create("Applied anyway", TaskType.BUG)

        assert [task.name for task in store.snapshot()] == ["Applied anyway"]
        assert later == []

    def test_concurrent_mutations_are_atomic(self, store):
        """Test snapshots stay consistent while several threads mutate the store."""
        threads_count = 8
        per_thread = 25
        sizes = []
        broken = []

        def observe(snapshot):
            sizes.append(len(snapshot))
            if any(task.is_completed != (task.completed_at is not None) for task in snapshot):
                broken.append(snapshot)

        store.subscribe(observe)

        def worker(index):
            for i in range(per_thread):
                task = store.create(f"Task {index}-{i}", TaskType.FEATURE)
                store.toggle_completion(task.id)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        total = threads_count * per_thread
        assert len(store) == total
        assert len(sizes) == 2 * total
        assert sizes == sorted(sizes)
        assert broken == []
        assert all(task.is_completed for task in store.snapshot())
        assert len({task.id for task in store.snapshot()}) == total

    def test_from_snapshot_preloads_tasks(self, clock):
        """Test building a store from an existing snapshot."""
        tasks = [Task(name=f"Task {i}", type=TaskType.BUG, created_at=clock()) for i in range(3)]
        store = TaskStore.from_snapshot(tasks, clock=clock)

        assert store.snapshot() == tuple(tasks)
        assert store.clock is clock

    def test_from_snapshot_stamps_missing_created_at(self, clock):
        """Test preloaded tasks without creation time get the store clock's instant."""
        store = TaskStore.from_snapshot([Task(name="Task", type=TaskType.BUG)], clock=clock)
        assert store.snapshot()[0].created_at == clock()

    def test_from_snapshot_duplicate_ids_raise_error(self):
        """Test that a snapshot with repeated ids is rejected."""
        task = Task(name="Task", type=TaskType.BUG)
        with pytest.raises(DuplicateIdError):
            TaskStore.from_snapshot([task, task])

    def test_completion_invariant_after_mixed_mutations(self, store, clock):
        """Test the completion invariant across a sequence of mutations."""
        tasks = [store.create(f"Task {i}", TaskType.FEATURE) for i in range(4)]
        for task in tasks[::2]:
            store.toggle_completion(task.id)
            assert_completion_invariant(store)
        clock.advance(days=1)
        store.toggle_completion(tasks[0].id)
        store.delete(tasks[1].id)

        assert_completion_invariant(store)


class TestValidateTask:
    """Tests for validate_task."""

    def test_valid_task_passes(self, now):
        """Test that a well-formed task validates."""
        validate_task(Task(name="Task", type=TaskType.BUG, is_completed=True, completed_at=now))

    def test_empty_tag_rejected(self):
        """Test that empty tags are rejected."""
        with pytest.raises(ValidationError, match="Tags"):
            validate_task(Task(name="Task", type=TaskType.BUG, tags=("ok", "")))

    def test_wrong_enum_rejected(self):
        """Test that plain strings are not accepted as enums."""
        with pytest.raises(ValidationError):
            validate_task(Task(name="Task", type="bug"))
        with pytest.raises(ValidationError):
            validate_task(Task(name="Task", type=TaskType.BUG, priority="high"))
