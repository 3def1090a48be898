from __future__ import annotations
from typing import Iterable, List, Optional

from taskflow.domain.task_models import FilterCriteria, SortSpec, Task
from taskflow.services.filter_engine import filter_tasks
from taskflow.services.sort_engine import sort_tasks


def compose_view(tasks: Iterable[Task], criteria: FilterCriteria, spec: SortSpec) -> List[Task]:
    return sort_tasks(filter_tasks(tasks, criteria), spec)


class TaskView:
    """Memoizes the composed view per store version.

    Purely an optimization: ``get`` with a version it has not seen simply
    recomputes.
    """

    def __init__(self):
        self._version: Optional[int] = None
        self._items: List[Task] = []

    def get(self, version: int, tasks: Iterable[Task], criteria: FilterCriteria, spec: SortSpec) -> List[Task]:
        if self._version != version:
            self._items = compose_view(tasks, criteria, spec)
            self._version = version
        return list(self._items)

    def invalidate(self) -> None:
        self._version = None
        self._items = []
