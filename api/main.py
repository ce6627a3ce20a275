from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from core.config import Settings, load_settings
from core.context import AppContext, get_context
from core.db import Database
from core.errors import InternalError, ServiceError, StoreError
from core.logging_config import setup_logging
from resources.addressing import RouteTable
from resources.repository import DocumentStore, PostgresDocumentStore
from resources.router import router as resources_router

logger = logging.getLogger(__name__)


def _build_database(settings: Settings) -> Database:
    dsn, ssl = settings.dsn()
    return Database(
        dsn,
        ssl=ssl,
        min_size=settings.db_pool_min,
        max_size=settings.db_pool_max,
        command_timeout=settings.db_command_timeout,
    )


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError("Internal server error.")
    return JSONResponse(status_code=error.status_code, content={"detail": error.message})


def create_app(settings: Settings | None = None, store: DocumentStore | None = None) -> FastAPI:
    """
    Build the application and its context.

    With no `store`, a Postgres-backed store is created and its pool is opened
    and closed by the lifespan. Passing a `store` skips the pool entirely.
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level, settings.log_path)

    database: Database | None = None
    if store is None:
        database = _build_database(settings)
        store = PostgresDocumentStore(database, schema=settings.db_schema)

    context = AppContext(
        settings=settings,
        store=store,
        routes=RouteTable.from_settings(settings),
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        # Initialize the DB pool once per process.
        if database is not None:
            await database.connect()
            logger.info("Connected to store (schema=%s)", settings.db_schema)
        try:
            yield
        finally:
            if database is not None:
                await database.close()

    app = FastAPI(title="Resource API", lifespan=lifespan)
    app.state.context = context

    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/ready")
    async def ready(app_context: AppContext = Depends(get_context)) -> JSONResponse:
        try:
            ok = await app_context.store.ping()
        except StoreError as exc:
            logger.warning("Readiness check failed: %s", exc)
            ok = False
        if not ok:
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return JSONResponse(content={"status": "ok"})

    app.include_router(resources_router, prefix=settings.api_version, tags=["resources"])
    return app
