from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from taskflow.domain.clock import Clock, utc_now
from taskflow.domain.errors import InvalidDomainValue, NotFound, ValidationError
from taskflow.domain.task_models import (
    FilterCriteria,
    PriorityFilter,
    SortDirection,
    SortField,
    SortSpec,
    StatusFilter,
    StoreSnapshot,
    Task,
    TaskPriority,
    TaskStats,
    TaskStatus,
    new_task_id,
)
from taskflow.services.stats_engine import compute_stats
from taskflow.services.view import TaskView

logger = logging.getLogger("taskflow.tasks")

Observer = Callable[[StoreSnapshot], None]

NEXT_STATUS: Dict[TaskStatus, TaskStatus] = {
    TaskStatus.todo: TaskStatus.in_progress,
    TaskStatus.in_progress: TaskStatus.completed,
    TaskStatus.completed: TaskStatus.todo,
}

UPDATABLE_FIELDS = ("title", "description", "status", "priority")
FILTER_FIELDS = ("status", "priority", "search")

_MAX_ID_ATTEMPTS = 16


def _clean_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Task title must not be empty")
    return title.strip()


def _to_enum(enum_cls, field: str, value: Any):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidDomainValue(field, value) from None


class TaskStore:
    """Canonical task collection plus the current filter and sort.

    All operations are synchronous and validate before touching state, so a
    raised error always leaves the store as it was. After every successful
    mutation the store bumps ``version``, marks itself ``dirty`` and hands the
    resulting snapshot to each subscriber.
    """

    def __init__(
        self,
        snapshot: Optional[StoreSnapshot] = None,
        *,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        snapshot = snapshot or StoreSnapshot()
        self._clock: Clock = clock or utc_now
        self._new_id = id_factory or new_task_id
        self._tasks: List[Task] = [t.model_copy() for t in snapshot.tasks]
        self._filter: FilterCriteria = snapshot.filter
        self._sort: SortSpec = snapshot.sort
        # every id this store has ever held, so deleted ids are never reissued
        self._issued_ids: Set[str] = {t.id for t in self._tasks}
        self._observers: List[Observer] = []
        self._view = TaskView()
        self.version = 0
        self.dirty = False

    # -------------------- observers --------------------
    def subscribe(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def mark_saved(self, version: int) -> None:
        """Clear the dirty flag if nothing changed since ``version`` was saved."""
        if version == self.version:
            self.dirty = False

    def _commit(self, event: str, **fields: Any) -> None:
        self.version += 1
        self.dirty = True
        self._view.invalidate()
        logger.info(event, extra={"category": "tasks", "event": event, "version": self.version, **fields})
        if not self._observers:
            return
        snap = self.snapshot()
        for observer in list(self._observers):
            try:
                observer(snap)
            except Exception:
                # the mutation is already applied; one bad observer must not hide it from the rest
                logger.exception(
                    "store.observer_error",
                    extra={"category": "tasks", "event": "store.observer_error", "version": self.version},
                )

    # -------------------- read accessors --------------------
    @property
    def all_tasks(self) -> List[Task]:
        return [t.model_copy() for t in self._tasks]

    @property
    def filtered_tasks(self) -> List[Task]:
        items = self._view.get(self.version, self._tasks, self._filter, self._sort)
        return [t.model_copy() for t in items]

    @property
    def filter(self) -> FilterCriteria:
        return self._filter

    @property
    def sort(self) -> SortSpec:
        return self._sort

    @property
    def stats(self) -> TaskStats:
        return compute_stats(self._tasks)

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            tasks=[t.model_copy() for t in self._tasks],
            filter=self._filter,
            sort=self._sort,
        )

    def get_task(self, task_id: str) -> Task:
        return self._find(task_id).model_copy()

    # -------------------- helpers --------------------
    def _find(self, task_id: str) -> Task:
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise NotFound(task_id)

    def _now(self, created_at: Optional[datetime] = None) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            # naive clock readings are taken as UTC, same as loaded tasks
            now = now.replace(tzinfo=timezone.utc)
        if created_at is not None and now < created_at:
            return created_at
        return now

    def _allocate_id(self) -> str:
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = self._new_id()
            if candidate not in self._issued_ids:
                self._issued_ids.add(candidate)
                return candidate
        raise RuntimeError("id factory keeps returning ids already used by this store")

    # -------------------- task operations --------------------
    def add_task(
        self,
        title: str,
        description: Optional[str] = None,
        status: Optional[Any] = None,
        priority: Optional[Any] = None,
    ) -> Task:
        clean = _clean_title(title)
        task_status = TaskStatus.todo if status is None else _to_enum(TaskStatus, "status", status)
        task_priority = TaskPriority.medium if priority is None else _to_enum(TaskPriority, "priority", priority)
        if description is None:
            description = ""
        elif not isinstance(description, str):
            raise InvalidDomainValue("description", description)
        now = self._now()
        task = Task(
            id=self._allocate_id(),
            title=clean,
            description=description,
            status=task_status,
            priority=task_priority,
            created_at=now,
            updated_at=now,
        )
        self._tasks.append(task)
        self._commit("task.create", task_id=task.id, title=task.title)
        return task.model_copy()

    def update_task(self, task_id: str, **fields: Any) -> Task:
        """Merge ``fields`` over the task; ``None`` values count as omitted.

        ``updated_at`` is refreshed even when the merge changes nothing.
        """
        task = self._find(task_id)
        changes: Dict[str, Any] = {}
        for name, value in fields.items():
            if name not in UPDATABLE_FIELDS:
                raise InvalidDomainValue("field", name)
            if value is None:
                continue
            if name == "title":
                changes[name] = _clean_title(value)
            elif name == "status":
                changes[name] = _to_enum(TaskStatus, "status", value)
            elif name == "priority":
                changes[name] = _to_enum(TaskPriority, "priority", value)
            else:
                if not isinstance(value, str):
                    raise InvalidDomainValue("description", value)
                changes[name] = value

        for name, value in changes.items():
            setattr(task, name, value)
        task.updated_at = self._now(task.created_at)
        self._commit("task.update", task_id=task_id, fields=sorted(changes))
        return task.model_copy()

    def delete_task(self, task_id: str) -> Task:
        task = self._find(task_id)
        self._tasks.remove(task)
        self._commit("task.delete", task_id=task_id)
        return task.model_copy()

    def toggle_status(self, task_id: str) -> Task:
        task = self._find(task_id)
        try:
            current = TaskStatus(task.status)
        except ValueError:
            current = None
        task.status = NEXT_STATUS.get(current, TaskStatus.todo)
        task.updated_at = self._now(task.created_at)
        self._commit("task.toggle", task_id=task_id, status=task.status.value)
        return task.model_copy()

    def clear_completed(self) -> int:
        kept = [t for t in self._tasks if t.status != TaskStatus.completed]
        removed = len(self._tasks) - len(kept)
        if removed:
            self._tasks = kept
            self._commit("task.clear_completed", removed=removed)
        return removed

    # -------------------- view configuration --------------------
    def set_filter(self, **partial: Any) -> FilterCriteria:
        update: Dict[str, Any] = {}
        for name, value in partial.items():
            if name not in FILTER_FIELDS:
                raise InvalidDomainValue("filter", name)
            if value is None:
                continue
            if name == "status":
                update[name] = _to_enum(StatusFilter, "status", value)
            elif name == "priority":
                update[name] = _to_enum(PriorityFilter, "priority", value)
            else:
                if not isinstance(value, str):
                    raise InvalidDomainValue("search", value)
                update[name] = value
        self._filter = self._filter.model_copy(update=update)
        self._commit(
            "view.filter",
            status=self._filter.status.value,
            priority=self._filter.priority.value,
            search=self._filter.search,
        )
        return self._filter

    def reset_filter(self) -> FilterCriteria:
        self._filter = FilterCriteria()
        self._commit("view.filter_reset")
        return self._filter

    def set_sort(self, field: Optional[Any] = None, direction: Optional[Any] = None) -> SortSpec:
        update: Dict[str, Any] = {}
        if field is not None:
            update["field"] = _to_enum(SortField, "sort.field", field)
        if direction is not None:
            update["direction"] = _to_enum(SortDirection, "sort.direction", direction)
        self._sort = self._sort.model_copy(update=update)
        self._commit("view.sort", field=self._sort.field.value, direction=self._sort.direction.value)
        return self._sort
