"""
Persons API: FastAPI application entry point.

`create_app()` wires settings, logging, tracing, the store and the persons
feature. `app` is the module-level instance served by uvicorn (`main:app`).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from opentelemetry.sdk.trace import TracerProvider

from core import db
from core.observability import (
    HANDLER_TRACER,
    REPOSITORY_TRACER,
    build_tracer_provider,
    setup_logging,
)
from core.settings import Settings
from persons import router as persons_router
from persons.handler import PersonHandler
from persons.memory import InMemoryPersonRepository
from persons.repository import PersonRepository, PostgresPersonRepository

logger = logging.getLogger(__name__)


async def _build_repository(settings: Settings, tracer_provider: TracerProvider) -> PersonRepository:
    tracer = tracer_provider.get_tracer(REPOSITORY_TRACER)
    if settings.persons_backend == "memory":
        return InMemoryPersonRepository(tracer, table_name=settings.persons_table)

    pool = await db.init_pool(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        command_timeout=settings.db_command_timeout_s,
    )
    return PostgresPersonRepository(pool, tracer, table_name=settings.persons_table)


def _install_handler(app: FastAPI, repository: PersonRepository, tracer_provider: TracerProvider) -> None:
    app.state.person_handler = PersonHandler(repository, tracer_provider.get_tracer(HANDLER_TRACER))


def create_app(
    settings: Settings | None = None,
    *,
    repository: PersonRepository | None = None,
    tracer_provider: TracerProvider | None = None,
) -> FastAPI:
    """
    Build the application.

    With `repository` given the app is ready immediately (no store is opened
    on startup); otherwise the lifespan builds the configured backend and
    creates its table before serving.
    """
    settings = settings or Settings.from_env()
    owns_tracing = tracer_provider is None
    tracer_provider = tracer_provider or build_tracer_provider(
        settings.service_name, settings.trace_exporter
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level, settings.log_format)
        owns_store = repository is None
        if owns_store:
            try:
                repo = await _build_repository(settings, tracer_provider)
                await repo.ensure_table()
            except Exception:
                logger.critical(
                    "Unable to prepare table %s",
                    settings.persons_table,
                    exc_info=True,
                    extra={"table": settings.persons_table},
                )
                await db.close_pool()
                raise
            _install_handler(app, repo, tracer_provider)
        logger.info("Persons API started", extra={"table": settings.persons_table})
        try:
            yield
        finally:
            if owns_store:
                await db.close_pool()
            if owns_tracing:
                tracer_provider.shutdown()
            logger.info("Persons API shutting down")

    app = FastAPI(title="Persons API", lifespan=lifespan)
    app.state.settings = settings
    if repository is not None:
        _install_handler(app, repository, tracer_provider)

    app.include_router(persons_router.router, prefix="/persons", tags=["persons"])

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception: %s",
            exc,
            exc_info=exc,
            extra={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
