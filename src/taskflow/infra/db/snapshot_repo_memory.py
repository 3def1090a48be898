from __future__ import annotations
from typing import Optional

from taskflow.domain.task_models import StoreSnapshot


class InMemorySnapshotRepo:
    """
    Keeps the last saved snapshot in process memory.
    Used by tests and by TASKFLOW_STORAGE=memory; nothing survives a restart.
    """

    def __init__(self, initial: Optional[StoreSnapshot] = None):
        self._snapshot: Optional[StoreSnapshot] = initial.model_copy(deep=True) if initial else None
        self.saves = 0

    async def load(self) -> Optional[StoreSnapshot]:
        if self._snapshot is None:
            return None
        return self._snapshot.model_copy(deep=True)

    async def save(self, snapshot: StoreSnapshot) -> None:
        self._snapshot = snapshot.model_copy(deep=True)
        self.saves += 1
