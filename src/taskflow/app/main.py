from contextlib import asynccontextmanager
from typing import Optional
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taskflow.app.middleware.access_log import AccessLogMiddleware
from taskflow.app.routes import tasks, view
from taskflow.config import Settings
from taskflow.domain.clock import Clock
from taskflow.domain.errors import InvalidDomainValue, NotFound, TaskflowError, ValidationError
from taskflow.infra.db.snapshot_repo_memory import InMemorySnapshotRepo
from taskflow.infra.db.snapshot_repo_sqlite import SQLiteSnapshotRepo, create_tables
from taskflow.infra.db.sqlite import make_engine, make_sessionmaker, make_sqlite_url
from taskflow.observability.logging import setup_logging
from taskflow.services.store_syncer import SnapshotRepo, StoreSyncer, open_store

logger = logging.getLogger("taskflow.system")

ERROR_STATUS = {
    ValidationError: 422,
    NotFound: 404,
    InvalidDomainValue: 400,
}


async def _taskflow_error_handler(request: Request, exc: TaskflowError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.warning(
        "request.rejected",
        extra={
            "category": "tasks",
            "event": "request.rejected",
            "error": exc.kind,
            "detail": str(exc),
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "error": exc.kind})


def create_app(
    settings: Optional[Settings] = None,
    repo: Optional[SnapshotRepo] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Build the HTTP surface over one TaskStore.

    ``repo`` overrides the storage chosen by ``settings``; tests pass an
    ``InMemorySnapshotRepo``.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level, settings.log_dir)
        logger.info("system.start", extra={"category": "system", "event": "system.start"})

        engine = None
        snapshot_repo = repo
        if snapshot_repo is None and settings.storage == "sqlite":
            engine = make_engine(make_sqlite_url(settings.db_path))
        elif snapshot_repo is None:
            snapshot_repo = InMemorySnapshotRepo()

        try:
            if engine is not None:
                await create_tables(engine)
                snapshot_repo = SQLiteSnapshotRepo(make_sessionmaker(engine))
                logger.info(
                    "db.ready",
                    extra={"category": "system", "event": "db.ready", "db_path": str(settings.db_path)},
                )

            store = await open_store(snapshot_repo, clock=clock)
            syncer = StoreSyncer(store, snapshot_repo)
            app.state.store = store
            app.state.syncer = syncer
            try:
                yield
            finally:
                try:
                    await syncer.flush()
                finally:
                    syncer.close()
        finally:
            if engine is not None:
                await engine.dispose()
            logger.info("system.stop", extra={"category": "system", "event": "system.stop"})

    app = FastAPI(title="TaskFlow", lifespan=lifespan)
    app.add_middleware(AccessLogMiddleware)
    app.add_exception_handler(TaskflowError, _taskflow_error_handler)

    app.include_router(tasks.router)
    app.include_router(view.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def run() -> None:
    settings = Settings.from_env()
    uvicorn.run("taskflow.app.main:create_app", factory=True, host=settings.host, port=settings.port)
