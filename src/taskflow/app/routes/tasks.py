from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from taskflow.domain.task_models import Task, TaskCreate, TaskUpdate
from taskflow.services.task_store import TaskStore

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class ClearCompletedResult(BaseModel):
    removed: int


def get_store(request: Request) -> TaskStore:
    # set by the app lifespan in main.py
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise RuntimeError("TaskStore not wired")
    return store


@router.get("", response_model=list[Task])
async def list_visible_tasks(store: TaskStore = Depends(get_store)):
    return store.filtered_tasks


@router.get("/all", response_model=list[Task])
async def list_all_tasks(store: TaskStore = Depends(get_store)):
    return store.all_tasks


@router.post("", response_model=Task, status_code=201)
async def create_task(payload: TaskCreate, store: TaskStore = Depends(get_store)):
    return store.add_task(payload.title, payload.description, payload.status, payload.priority)


@router.post("/clear-completed", response_model=ClearCompletedResult)
async def clear_completed(store: TaskStore = Depends(get_store)):
    return ClearCompletedResult(removed=store.clear_completed())


@router.get("/{task_id}", response_model=Task)
async def get_task(task_id: str, store: TaskStore = Depends(get_store)):
    return store.get_task(task_id)


@router.patch("/{task_id}", response_model=Task)
async def update_task(task_id: str, payload: TaskUpdate, store: TaskStore = Depends(get_store)):
    return store.update_task(task_id, **payload.model_dump(exclude_unset=True))


@router.delete("/{task_id}", status_code=204)
async def delete_task(task_id: str, store: TaskStore = Depends(get_store)):
    store.delete_task(task_id)
    return Response(status_code=204)


@router.post("/{task_id}/toggle", response_model=Task)
async def toggle_task(task_id: str, store: TaskStore = Depends(get_store)):
    return store.toggle_status(task_id)
