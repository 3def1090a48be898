from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, List

from taskflow.domain.task_models import SortDirection, SortField, SortSpec, Task, TaskPriority

PRIORITY_ORDER: Dict[TaskPriority, int] = {
    TaskPriority.low: 1,
    TaskPriority.medium: 2,
    TaskPriority.high: 3,
}

_KEYS: Dict[SortField, Callable[[Task], Any]] = {
    SortField.created_at: lambda t: t.created_at,
    SortField.updated_at: lambda t: t.updated_at,
    SortField.title: lambda t: t.title,
    SortField.priority: lambda t: PRIORITY_ORDER[t.priority],
}


def sort_tasks(tasks: Iterable[Task], spec: SortSpec) -> List[Task]:
    """Order tasks by ``spec``; equal keys keep their incoming order.

    ``sorted(reverse=True)`` is stable too, so ties are never flipped by the
    descending direction.
    """
    return sorted(tasks, key=_KEYS[spec.field], reverse=spec.direction == SortDirection.desc)
