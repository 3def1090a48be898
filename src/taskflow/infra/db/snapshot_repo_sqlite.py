from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Integer, String, Text, DateTime, delete, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.ext.asyncio import AsyncEngine

from taskflow.domain.task_models import FilterCriteria, SortSpec, StoreSnapshot, Task

VIEW_STATE_ID = 1


class Base(DeclarativeBase):
    pass


class TaskRow(Base):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(140), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_domain(cls, task: Task, position: int) -> "TaskRow":
        return cls(
            id=task.id,
            position=position,
            title=task.title,
            description=task.description,
            status=getattr(task.status, "value", task.status),
            priority=task.priority.value,
            # SQLite keeps no offset, so everything is stored as UTC
            created_at=task.created_at.astimezone(timezone.utc),
            updated_at=task.updated_at.astimezone(timezone.utc),
        )

    def to_domain(self) -> Task:
        return Task.model_validate(
            {
                "id": self.id,
                "title": self.title,
                "description": self.description or "",
                "status": self.status,
                "priority": self.priority,
                "created_at": self.created_at,
                "updated_at": self.updated_at,
            }
        )


class ViewStateRow(Base):
    __tablename__ = "view_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    filter_status: Mapped[str] = mapped_column(String(20), nullable=False)
    filter_priority: Mapped[str] = mapped_column(String(10), nullable=False)
    filter_search: Mapped[str] = mapped_column(Text, nullable=False, default="")
    sort_field: Mapped[str] = mapped_column(String(20), nullable=False)
    sort_direction: Mapped[str] = mapped_column(String(4), nullable=False)


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


class SQLiteSnapshotRepo:
    def __init__(self, sessionmaker):
        self.sessionmaker = sessionmaker

    async def load(self) -> Optional[StoreSnapshot]:
        async with self.sessionmaker() as session:
            view = await session.get(ViewStateRow, VIEW_STATE_ID)
            res = await session.execute(select(TaskRow).order_by(TaskRow.position))
            rows = res.scalars().all()

        if view is None and not rows:
            return None

        snapshot = StoreSnapshot(tasks=[r.to_domain() for r in rows])
        if view is not None:
            snapshot.filter = FilterCriteria.model_validate(
                {"status": view.filter_status, "priority": view.filter_priority, "search": view.filter_search}
            )
            snapshot.sort = SortSpec.model_validate({"field": view.sort_field, "direction": view.sort_direction})
        return snapshot

    async def save(self, snapshot: StoreSnapshot) -> None:
        async with self.sessionmaker() as session:
            async with session.begin():
                await session.execute(delete(TaskRow))
                session.add_all([TaskRow.from_domain(t, pos) for pos, t in enumerate(snapshot.tasks)])
                await session.merge(
                    ViewStateRow(
                        id=VIEW_STATE_ID,
                        filter_status=snapshot.filter.status.value,
                        filter_priority=snapshot.filter.priority.value,
                        filter_search=snapshot.filter.search,
                        sort_field=snapshot.sort.field.value,
                        sort_direction=snapshot.sort.direction.value,
                    )
                )
