from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum
from datetime import datetime, timezone
from typing import List, Optional, Union
import uuid

ALL = "all"


class TaskStatus(str, Enum):
    todo = "todo"
    in_progress = "in-progress"
    completed = "completed"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class StatusFilter(str, Enum):
    all = ALL
    todo = TaskStatus.todo.value
    in_progress = TaskStatus.in_progress.value
    completed = TaskStatus.completed.value


class PriorityFilter(str, Enum):
    all = ALL
    low = TaskPriority.low.value
    medium = TaskPriority.medium.value
    high = TaskPriority.high.value


class SortField(str, Enum):
    # wire values are the camelCase names the UI has always sent
    created_at = "createdAt"
    updated_at = "updatedAt"
    title = "title"
    priority = "priority"


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


class Task(BaseModel):
    """A single trackable work item.

    ``status`` tolerates values outside :class:`TaskStatus` so that a
    corrupted snapshot still loads; such tasks fall back to ``todo`` on the
    next toggle.
    """

    id: str
    title: str
    description: str = ""
    status: Union[TaskStatus, str] = Field(default=TaskStatus.todo, union_mode="left_to_right")
    priority: TaskPriority = TaskPriority.medium
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class TaskCreate(BaseModel):
    title: str = Field(max_length=140)
    description: str = Field(default="", max_length=4000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=140)
    description: Optional[str] = Field(default=None, max_length=4000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None


class FilterCriteria(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: StatusFilter = StatusFilter.all
    priority: PriorityFilter = PriorityFilter.all
    search: str = ""


class FilterUpdate(BaseModel):
    status: Optional[str] = None
    priority: Optional[str] = None
    search: Optional[str] = None


class SortSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: SortField = SortField.created_at
    direction: SortDirection = SortDirection.desc


class SortUpdate(BaseModel):
    field: Optional[str] = None
    direction: Optional[str] = None


class TaskStats(BaseModel):
    total: int = 0
    todo: int = 0
    in_progress: int = 0
    completed: int = 0
    high_priority: int = 0


class StoreSnapshot(BaseModel):
    """Everything the persistence adapter stores and restores verbatim."""

    tasks: List[Task] = Field(default_factory=list)
    filter: FilterCriteria = Field(default_factory=FilterCriteria)
    sort: SortSpec = Field(default_factory=SortSpec)


def new_task_id() -> str:
    return str(uuid.uuid4())
