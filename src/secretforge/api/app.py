"""FastAPI application factory for secretforge.

Creates the application with:
- Secrets API (/api/secrets) with cache-aside read views
- Cache administration endpoints
- Health probes and Prometheus metrics
- Lifecycle management for the record store and Redis connections
- Consistent error bodies
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ExceptionHandler

from secretforge.api.deps import AppComponents, build_components
from secretforge.api.errors import (
    ApiError,
    api_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    persistence_exception_handler,
    request_validation_handler,
)
from secretforge.api.middleware import CacheAsideMiddleware, CorrelationMiddleware
from secretforge.api.routers import cache as cache_router
from secretforge.api.routers import health, secrets
from secretforge.api.routers import metrics as metrics_router
from secretforge.cache import CacheRule, close_redis, get_redis
from secretforge.config import settings
from secretforge.observability import configure_logging
from secretforge.observability.metrics import MetricsMiddleware, get_metrics
from secretforge.persistence import PersistenceError, SqlRecordStore
from secretforge.persistence.db import create_engine, create_tables, session_factory

logger = logging.getLogger(__name__)

STRENGTHS_ROUTE = "/api/secrets/strengths"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup:
    - Configure structured logging
    - Initialize Prometheus metrics
    - Create tables and connect to Redis (unless components were injected)
    - Start the Redis readiness monitor

    On shutdown:
    - Wait for in-flight cache writes
    - Stop the readiness monitor
    - Close Redis and database connections
    """
    configure_logging(
        json_format=settings.env != "dev",
        level=settings.log_level,
    )
    get_metrics()

    logger.info(f"Starting secretforge ({settings.env})")
    engine = None
    if getattr(app.state, "components", None) is None:
        engine = create_engine()
        await create_tables(engine)
        app.state.components = build_components(
            await get_redis(),
            SqlRecordStore(session_factory(engine)),
        )

    components: AppComponents = app.state.components
    await components.store.start_monitor(settings.cache_monitor_interval)
    if not components.store.ready:
        logger.warning("Redis not reachable at startup, serving without cache")
    logger.info("secretforge startup complete")

    yield

    logger.info("Shutting down secretforge")
    await components.cache_aside.drain()
    await components.store.stop_monitor()
    if engine is not None:
        await close_redis()
        await engine.dispose()
    logger.info("secretforge shutdown complete")


def create_app(components: AppComponents | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        components: Pre-built collaborators. When omitted, the lifespan
            connects to the configured database and Redis.
    """
    app = FastAPI(
        title="secretforge",
        description="Secret generation service with a Redis cache-aside layer",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    if components is not None:
        app.state.components = components

    # Order: Metrics (outer) -> Correlation -> route cache (inner)
    app.add_middleware(
        CacheAsideMiddleware,
        rules={
            STRENGTHS_ROUTE: CacheRule(
                ttl=settings.route_cache_ttl,
                key_prefix=settings.route_cache_prefix,
            ),
        },
    )
    app.add_middleware(CorrelationMiddleware)
    if settings.enable_metrics:
        app.add_middleware(MetricsMiddleware)

    # Register exception handlers
    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_exception_handler))
    app.add_exception_handler(
        RequestValidationError, cast(ExceptionHandler, request_validation_handler)
    )
    app.add_exception_handler(
        StarletteHTTPException, cast(ExceptionHandler, http_exception_handler)
    )
    app.add_exception_handler(
        PersistenceError, cast(ExceptionHandler, persistence_exception_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    # Include routers
    app.include_router(health.router)
    if settings.enable_metrics:
        app.include_router(metrics_router.router)

    # Cache administration first: its fixed paths must not match /{secret_id}
    app.include_router(cache_router.router)
    app.include_router(secrets.router)

    return app
