from fastapi import APIRouter, Depends
from pydantic import BaseModel

from taskflow.app.routes.tasks import get_store
from taskflow.domain.task_models import FilterCriteria, FilterUpdate, SortSpec, SortUpdate, TaskStats
from taskflow.services.stats_engine import completion_rate
from taskflow.services.task_store import TaskStore

router = APIRouter(prefix="/api", tags=["view"])


class ViewState(BaseModel):
    filter: FilterCriteria
    sort: SortSpec


class StatsResponse(TaskStats):
    completion_rate: int


@router.get("/view", response_model=ViewState)
async def get_view(store: TaskStore = Depends(get_store)):
    return ViewState(filter=store.filter, sort=store.sort)


@router.patch("/view/filter", response_model=FilterCriteria)
async def set_filter(payload: FilterUpdate, store: TaskStore = Depends(get_store)):
    return store.set_filter(**payload.model_dump(exclude_unset=True))


@router.post("/view/filter/reset", response_model=FilterCriteria)
async def reset_filter(store: TaskStore = Depends(get_store)):
    return store.reset_filter()


@router.patch("/view/sort", response_model=SortSpec)
async def set_sort(payload: SortUpdate, store: TaskStore = Depends(get_store)):
    return store.set_sort(payload.field, payload.direction)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(store: TaskStore = Depends(get_store)):
    stats = store.stats
    return StatsResponse(**stats.model_dump(), completion_rate=completion_rate(stats))
