from __future__ import annotations
import asyncio
import logging
from typing import Optional, Protocol, Tuple

from taskflow.domain.task_models import StoreSnapshot
from taskflow.services.task_store import TaskStore

logger = logging.getLogger("taskflow.persistence")


class SnapshotRepo(Protocol):
    async def load(self) -> Optional[StoreSnapshot]: ...

    async def save(self, snapshot: StoreSnapshot) -> None: ...


async def open_store(repo: SnapshotRepo, **store_kwargs) -> TaskStore:
    """Rehydrate a store from ``repo``, or start empty when it has no prior state."""
    snapshot = await repo.load()
    store = TaskStore(snapshot, **store_kwargs)
    logger.info(
        "store.loaded",
        extra={
            "category": "persistence",
            "event": "store.loaded",
            "restored": snapshot is not None,
            "tasks": len(snapshot.tasks) if snapshot else 0,
        },
    )
    return store


class StoreSyncer:
    """Writes store snapshots to a repo without ever blocking the store.

    Each change replaces the pending snapshot and, when an event loop is
    running, starts a background drain if none is active. Saves go through a
    lock one at a time and always write the newest pending snapshot, so an
    older state can never overwrite a newer one.
    """

    def __init__(self, store: TaskStore, repo: SnapshotRepo):
        self.store = store
        self.repo = repo
        self._pending: Optional[Tuple[int, StoreSnapshot]] = None
        self._lock = asyncio.Lock()
        self._drain_task: Optional[asyncio.Task] = None
        self._unsubscribe = store.subscribe(self._on_change)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def _on_change(self, snapshot: StoreSnapshot) -> None:
        self._pending = (self.store.version, snapshot)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # no loop: picked up by the next flush()
            return
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while self._pending is not None:
            try:
                await self._save_pending()
            except Exception:
                logger.exception(
                    "store.save_failed",
                    extra={"category": "persistence", "event": "store.save_failed", "version": self.store.version},
                )
                return

    async def _save_pending(self) -> None:
        async with self._lock:
            if self._pending is None:
                return
            version, snapshot = self._pending
            self._pending = None
            try:
                await self.repo.save(snapshot)
            except Exception:
                # keep it for the next attempt unless a newer change already replaced it
                if self._pending is None:
                    self._pending = (version, snapshot)
                raise
            self.store.mark_saved(version)
            logger.debug(
                "store.saved",
                extra={"category": "persistence", "event": "store.saved", "version": version},
            )

    async def flush(self) -> None:
        """Wait for in-flight saves, then write whatever is still pending.

        Raises if the final save fails.
        """
        if self._drain_task is not None and not self._drain_task.done():
            await self._drain_task
        await self._save_pending()

    def close(self) -> None:
        self._unsubscribe()
