from __future__ import annotations
from typing import Any


class TaskflowError(Exception):
    """Base for recoverable task-engine errors. State is unchanged when raised."""

    kind = "error"


class ValidationError(TaskflowError):
    kind = "validation_error"


class NotFound(TaskflowError):
    kind = "not_found"

    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class InvalidDomainValue(TaskflowError):
    kind = "invalid_domain_value"

    def __init__(self, field: str, value: Any):
        super().__init__(f"Invalid value for {field}: {value!r}")
        self.field = field
        self.value = value
