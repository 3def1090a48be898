from __future__ import annotations
from typing import Iterable, List

from taskflow.domain.task_models import ALL, FilterCriteria, Task


def _value(v) -> str:
    return getattr(v, "value", v)


def matches(task: Task, criteria: FilterCriteria) -> bool:
    """True when the task passes status, priority AND search."""
    if criteria.status.value != ALL and _value(task.status) != criteria.status.value:
        return False
    if criteria.priority.value != ALL and _value(task.priority) != criteria.priority.value:
        return False
    if criteria.search:
        needle = criteria.search.lower()
        if needle not in task.title.lower() and needle not in task.description.lower():
            return False
    return True


def filter_tasks(tasks: Iterable[Task], criteria: FilterCriteria) -> List[Task]:
    return [t for t in tasks if matches(t, criteria)]
