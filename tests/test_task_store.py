# tests/test_task_store.py

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from taskflow.domain.errors import InvalidDomainValue, NotFound, ValidationError
from taskflow.domain.task_models import (
    FilterCriteria,
    SortDirection,
    SortField,
    StatusFilter,
    StoreSnapshot,
    Task,
    TaskPriority,
    TaskStatus,
)
from taskflow.services.task_store import TaskStore

from .fakes import T0, StepClock


def test_add_task_defaults_and_timestamps(store: TaskStore) -> None:
    task = store.add_task("  Buy milk  ")

    assert task.title == "Buy milk"
    assert task.description == ""
    assert task.status == TaskStatus.todo
    assert task.priority == TaskPriority.medium
    assert task.created_at == task.updated_at == T0
    assert store.all_tasks == [task]


def test_add_task_with_explicit_fields(store: TaskStore) -> None:
    task = store.add_task("Ship", "release notes", status="in-progress", priority=TaskPriority.high)

    assert task.description == "release notes"
    assert task.status == TaskStatus.in_progress
    assert task.priority == TaskPriority.high


@pytest.mark.parametrize("title", ["", "   ", "\t\n"])
def test_add_task_rejects_blank_title(store: TaskStore, title: str) -> None:
    with pytest.raises(ValidationError):
        store.add_task(title)
    assert store.all_tasks == []
    assert store.version == 0
    assert not store.dirty


def test_add_task_rejects_unknown_priority(store: TaskStore) -> None:
    with pytest.raises(InvalidDomainValue):
        store.add_task("x", priority="urgent")
    assert store.all_tasks == []


def test_ids_unique_after_delete_and_readd(store: TaskStore) -> None:
    seen = set()
    for i in range(20):
        task = store.add_task(f"task {i}")
        assert task.id not in seen
        seen.add(task.id)
        if i % 2 == 0:
            store.delete_task(task.id)
    ids = [t.id for t in store.all_tasks]
    assert len(ids) == len(set(ids)) == 10


def test_id_factory_reuse_is_skipped(clock: StepClock) -> None:
    ids = iter(["a", "a", "b"])
    store = TaskStore(clock=clock, id_factory=lambda: next(ids))

    first = store.add_task("one")
    store.delete_task(first.id)
    second = store.add_task("two")

    assert first.id == "a"
    assert second.id == "b"


def test_update_merges_and_refreshes_updated_at(store: TaskStore) -> None:
    task = store.add_task("Draft", "v1", priority="low")

    updated = store.update_task(task.id, title="Final", priority="high")

    assert updated.title == "Final"
    assert updated.description == "v1"
    assert updated.priority == TaskPriority.high
    assert updated.status == TaskStatus.todo
    assert updated.created_at == task.created_at
    assert updated.updated_at == T0 + timedelta(seconds=1)


def test_update_without_changes_still_touches(store: TaskStore) -> None:
    task = store.add_task("Same")
    version = store.version

    updated = store.update_task(task.id)

    assert updated.title == "Same"
    assert updated.updated_at > task.updated_at
    assert store.version == version + 1


def test_update_unknown_id_changes_nothing(store: TaskStore) -> None:
    store.add_task("keep")
    before = store.snapshot()

    with pytest.raises(NotFound) as excinfo:
        store.update_task("missing", title="x")

    assert excinfo.value.task_id == "missing"
    assert store.snapshot() == before


def test_update_blank_title_is_atomic(store: TaskStore) -> None:
    task = store.add_task("Title", priority="low")

    with pytest.raises(ValidationError):
        store.update_task(task.id, priority="high", title="   ")

    current = store.get_task(task.id)
    assert current.priority == TaskPriority.low
    assert current.updated_at == task.updated_at


def test_update_rejects_immutable_fields(store: TaskStore) -> None:
    task = store.add_task("Title")
    with pytest.raises(InvalidDomainValue):
        store.update_task(task.id, created_at=T0)
    with pytest.raises(InvalidDomainValue):
        store.update_task(task.id, id="other")


def test_delete_then_delete_again(store: TaskStore) -> None:
    task = store.add_task("gone")

    removed = store.delete_task(task.id)
    assert removed.id == task.id
    assert store.all_tasks == []

    with pytest.raises(NotFound):
        store.delete_task(task.id)


def test_toggle_cycles_through_statuses(store: TaskStore) -> None:
    task = store.add_task("cycle")

    seen = [store.toggle_status(task.id).status for _ in range(3)]

    assert seen == [TaskStatus.in_progress, TaskStatus.completed, TaskStatus.todo]


@pytest.mark.parametrize(
    "start, expected",
    [
        (TaskStatus.todo, [TaskStatus.in_progress, TaskStatus.completed, TaskStatus.todo]),
        (TaskStatus.in_progress, [TaskStatus.completed, TaskStatus.todo, TaskStatus.in_progress]),
        (TaskStatus.completed, [TaskStatus.todo, TaskStatus.in_progress, TaskStatus.completed]),
    ],
)
def test_toggle_from_any_start_returns_after_three(store: TaskStore, start, expected) -> None:
    task = store.add_task("cycle", status=start)
    assert [store.toggle_status(task.id).status for _ in range(3)] == expected


def test_toggle_corrupt_status_falls_back_to_todo(clock: StepClock) -> None:
    raw = Task.model_validate(
        {"id": "x1", "title": "legacy", "status": "doing", "created_at": T0, "updated_at": T0}
    )
    assert raw.status == "doing"
    store = TaskStore(StoreSnapshot(tasks=[raw]), clock=clock)

    assert store.toggle_status("x1").status == TaskStatus.todo


def test_toggle_unknown_id(store: TaskStore) -> None:
    with pytest.raises(NotFound):
        store.toggle_status("nope")


def test_clear_completed_counts_and_is_repeatable(store: TaskStore) -> None:
    a = store.add_task("a", status="completed")
    b = store.add_task("b")
    c = store.add_task("c", status="completed")
    d = store.add_task("d", status="in-progress")

    assert store.clear_completed() == 2
    assert [t.id for t in store.all_tasks] == [b.id, d.id]
    assert a.id not in {t.id for t in store.all_tasks}
    assert c.id not in {t.id for t in store.all_tasks}

    version = store.version
    assert store.clear_completed() == 0
    assert store.version == version


def test_updated_at_never_precedes_created_at() -> None:
    times = iter([T0, T0 - timedelta(hours=1)])
    store = TaskStore(clock=lambda: next(times))
    task = store.add_task("skew")

    touched = store.toggle_status(task.id)

    assert touched.updated_at == touched.created_at


def test_returned_tasks_are_copies(store: TaskStore) -> None:
    task = store.add_task("original")
    task.title = "mutated outside"
    store.all_tasks[0].title = "also mutated"

    assert store.get_task(task.id).title == "original"


def test_set_filter_merges_and_validates(store: TaskStore) -> None:
    store.set_filter(status="completed")
    store.set_filter(search="abc")

    assert store.filter == FilterCriteria(status=StatusFilter.completed, search="abc")

    with pytest.raises(InvalidDomainValue):
        store.set_filter(priority="urgent")
    with pytest.raises(InvalidDomainValue):
        store.set_filter(colour="red")
    assert store.filter.priority.value == "all"


def test_reset_filter_keeps_sort(store: TaskStore) -> None:
    store.set_sort("title", "asc")
    store.set_filter(status="todo", priority="high", search="q")

    store.reset_filter()

    assert store.filter == FilterCriteria()
    assert store.sort.field == SortField.title
    assert store.sort.direction == SortDirection.asc


def test_set_sort_partial_and_invalid(store: TaskStore) -> None:
    assert store.sort.field == SortField.created_at
    assert store.sort.direction == SortDirection.desc

    store.set_sort(direction="asc")
    assert store.sort.field == SortField.created_at
    assert store.sort.direction == SortDirection.asc

    with pytest.raises(InvalidDomainValue):
        store.set_sort("due_at")
    with pytest.raises(InvalidDomainValue):
        store.set_sort(direction="sideways")
    assert store.sort.direction == SortDirection.asc


def test_observers_receive_snapshot_after_each_mutation(store: TaskStore) -> None:
    received = []
    unsubscribe = store.subscribe(received.append)

    task = store.add_task("watched")
    store.toggle_status(task.id)
    with pytest.raises(NotFound):
        store.toggle_status("missing")

    assert len(received) == 2
    assert received[-1].tasks[0].status == TaskStatus.in_progress
    assert store.dirty

    unsubscribe()
    store.delete_task(task.id)
    assert len(received) == 2


def test_failing_observer_does_not_block_others(store: TaskStore) -> None:
    received = []

    def broken(_snapshot) -> None:
        raise RuntimeError("boom")

    store.subscribe(broken)
    store.subscribe(received.append)

    store.add_task("still saved")

    assert len(received) == 1
    assert len(store.all_tasks) == 1


def test_mark_saved_only_clears_matching_version(store: TaskStore) -> None:
    store.add_task("one")
    saved_version = store.version
    store.add_task("two")

    store.mark_saved(saved_version)
    assert store.dirty

    store.mark_saved(store.version)
    assert not store.dirty


def test_scenario_buy_milk(store: TaskStore) -> None:
    a = store.add_task("Buy milk", priority="high")
    store.add_task("Write report", priority="low")

    store.toggle_status(a.id)
    store.toggle_status(a.id)

    assert store.get_task(a.id).status == TaskStatus.completed
    stats = store.stats
    assert (stats.total, stats.todo, stats.in_progress, stats.completed, stats.high_priority) == (2, 1, 0, 1, 1)

    store.set_filter(status="completed")
    assert [t.id for t in store.filtered_tasks] == [a.id]


def test_naive_clock_readings_are_taken_as_utc() -> None:
    times = iter([datetime(2024, 1, 1, 12), datetime(2024, 1, 1, 13)])
    store = TaskStore(clock=lambda: next(times))
    task = store.add_task("naive")

    touched = store.toggle_status(task.id)

    assert task.created_at == T0
    assert touched.updated_at == datetime(2024, 1, 1, 13, tzinfo=timezone.utc)
    assert touched.updated_at.tzinfo is not None

    store.set_sort("updatedAt", "asc")
    assert [t.id for t in store.filtered_tasks] == [task.id]


def test_naive_clock_mixed_with_aware_tasks_sorts() -> None:
    times = iter([T0, datetime(2024, 1, 1, 11)])
    store = TaskStore(clock=lambda: next(times))
    aware = store.add_task("aware")
    naive = store.add_task("naive")

    store.set_sort("createdAt", "asc")
    assert [t.id for t in store.filtered_tasks] == [naive.id, aware.id]


@pytest.mark.parametrize("description", [5, ["list"], {"k": "v"}])
def test_add_task_rejects_non_text_description(description) -> None:
    ids = iter(["first", "second"])
    store = TaskStore(id_factory=lambda: next(ids))

    with pytest.raises(InvalidDomainValue):
        store.add_task("x", description=description)

    assert store.all_tasks == []
    assert store.version == 0
    # no id was burned by the rejected call
    assert store.add_task("ok").id == "first"


def test_deleted_task_is_a_copy(store: TaskStore) -> None:
    task = store.add_task("gone")
    held = store._find(task.id)

    removed = store.delete_task(task.id)

    assert removed == held
    assert removed is not held
    assert store.snapshot().tasks == []


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_stats_total_matches_status_buckets_for_any_sequence(clock: StepClock, seed: int) -> None:
    rng = random.Random(seed)
    store = TaskStore(clock=clock)
    statuses = [s.value for s in TaskStatus]
    priorities = [p.value for p in TaskPriority]

    for step in range(200):
        ids = [t.id for t in store.all_tasks]
        op = rng.choice(["add", "add", "toggle", "update", "delete", "clear"])
        if op == "add" or not ids:
            store.add_task(f"t{step}", status=rng.choice(statuses), priority=rng.choice(priorities))
        elif op == "toggle":
            store.toggle_status(rng.choice(ids))
        elif op == "update":
            store.update_task(rng.choice(ids), status=rng.choice(statuses), priority=rng.choice(priorities))
        elif op == "delete":
            store.delete_task(rng.choice(ids))
        else:
            store.clear_completed()

        stats = store.stats
        assert stats.total == stats.todo + stats.in_progress + stats.completed, (seed, step, op)
        assert stats.total == len(store.all_tasks)
        assert stats.high_priority == sum(1 for t in store.all_tasks if t.priority == TaskPriority.high)
