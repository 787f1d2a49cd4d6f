"""FastAPI application factory for crudapp.

Creates the application with:
- Post CRUD endpoints under /v1
- Health probes and Prometheus metrics
- Lifecycle management for the storage backend and its cache
- OpenTelemetry tracing and request correlation
- Uniform error bodies for storage failures
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from crudapp import __version__
from crudapp.api.errors import (
    ApiError,
    api_exception_handler,
    generic_exception_handler,
    storage_exception_handler,
)
from crudapp.api.middleware import CorrelationMiddleware
from crudapp.api.routers import health, posts
from crudapp.api.routers import metrics as metrics_router
from crudapp.config import Settings, settings
from crudapp.observability import configure_logging
from crudapp.observability.metrics import StorageMetrics
from crudapp.observability.tracing import (
    TracingMiddleware,
    get_tracer,
    setup_tracing,
    shutdown_tracing,
)
from crudapp.storage.base import Storage
from crudapp.storage.errors import StorageError

logger = logging.getLogger(__name__)


def create_app(
    storage: Storage | None = None,
    config: Settings | None = None,
    metrics: StorageMetrics | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    With no arguments the storage is built from settings on startup (the
    configured backend behind the configured cache). Passing ``storage``
    serves that instance instead, which is how tests run the API.
    """
    config = config or settings
    metrics = metrics or StorageMetrics()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Configure logging and tracing, then open and later close storage."""
        configure_logging(json_format=config.env != "dev", level=config.log_level)
        setup_tracing(config)

        logger.info(f"Starting {config.app_name} ({config.env}, storage={config.storage_type})")
        if app.state.storage is None:
            from crudapp.storage.factory import create_caching_storage

            app.state.storage = create_caching_storage(
                config,
                tracer=get_tracer("crudapp.storage", enabled=config.enable_tracing),
                metrics=metrics,
            )
        await app.state.storage.setup()
        logger.info(f"{config.app_name} startup complete")

        yield

        logger.info(f"Shutting down {config.app_name}")
        try:
            await app.state.storage.close()
        finally:
            shutdown_tracing()
        logger.info(f"{config.app_name} shutdown complete")

    app = FastAPI(
        title=config.app_name,
        description="Posts CRUD service with pluggable storage and caching",
        version=__version__,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    app.state.storage = storage
    app.state.metrics = metrics

    # CorrelationMiddleware is innermost so the request ID is set for handlers
    app.add_middleware(CorrelationMiddleware)
    if config.enable_tracing:
        app.add_middleware(TracingMiddleware, tracer=get_tracer("crudapp.api", enabled=True))

    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_exception_handler))
    app.add_exception_handler(StorageError, cast(ExceptionHandler, storage_exception_handler))
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    app.include_router(health.router)
    if config.enable_metrics:
        app.include_router(metrics_router.router)
    app.include_router(posts.router, prefix="/v1")

    return app
