from __future__ import annotations
from typing import Iterable

from taskflow.domain.task_models import Task, TaskPriority, TaskStats, TaskStatus


def compute_stats(tasks: Iterable[Task]) -> TaskStats:
    """Counts over the whole collection, never over a filtered subset."""
    stats = TaskStats()
    for t in tasks:
        stats.total += 1
        if t.status == TaskStatus.todo:
            stats.todo += 1
        elif t.status == TaskStatus.in_progress:
            stats.in_progress += 1
        elif t.status == TaskStatus.completed:
            stats.completed += 1
        if t.priority == TaskPriority.high:
            stats.high_priority += 1
    return stats


def completion_rate(stats: TaskStats) -> int:
    """Percentage of completed tasks for display; 0 for an empty store."""
    if stats.total <= 0:
        return 0
    # round-half-up, as shown by the UI badge
    return int(stats.completed * 100 / stats.total + 0.5)
