"""Main module of the SyncSearch API.

Run with ``uvicorn syncsearch.main:app``.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from syncsearch.api.middleware import log_requests, syncsearch_exception_handler, value_error_handler
from syncsearch.api.v1.api import api_router
from syncsearch.core.client_service import ClientService
from syncsearch.core.config import settings
from syncsearch.core.data_editor_service import DataEditorService
from syncsearch.core.exceptions import SyncSearchException
from syncsearch.core.logging import logger
from syncsearch.core.sync_service import SyncService
from syncsearch.db.init_db import init_db
from syncsearch.db.session import async_engine, build_sessionmaker
from syncsearch.db.sql_store import SqlAlchemyStore
from syncsearch.platform.scheduler import AutoSyncScheduler
from syncsearch.search.index import SearchIndex


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for the FastAPI application.

    Builds the store and services once per process and runs the auto-sync
    scheduler while the app is up.
    """
    await init_db(async_engine)

    store = SqlAlchemyStore(build_sessionmaker(async_engine))
    index = SearchIndex()
    sync_service = SyncService(store, index)
    scheduler = AutoSyncScheduler(store, sync_service)

    app.state.store = store
    app.state.index = index
    app.state.sync_service = sync_service
    app.state.client_service = ClientService(store, index)
    app.state.data_editor_service = DataEditorService(store, sync_service)
    app.state.scheduler = scheduler

    if settings.SCHEDULER_ENABLED:
        await scheduler.start()
    logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")

    yield

    await scheduler.stop()
    await async_engine.dispose()


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

    app.middleware("http")(log_requests)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.LOCAL_DEVELOPMENT else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.exception_handler(SyncSearchException)(syncsearch_exception_handler)
    app.exception_handler(ValueError)(value_error_handler)

    app.include_router(api_router)
    return app


app = create_app()
