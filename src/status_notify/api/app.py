"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest
from starlette.responses import Response

from status_notify import __version__
from status_notify.api.middleware.cors import setup_cors
from status_notify.api.v1 import v1_router
from status_notify.config.settings import AppConfig
from status_notify.engine.client import NotificationEngine
from status_notify.errors.notify_errors import NotifyError
from status_notify.metrics.collector import NotifyMetrics
from status_notify.metrics.middleware import PrometheusMiddleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle hooks.

    Builds the notification engine on startup (or uses one placed on
    ``app.state.engine`` beforehand) and closes it on exit.
    """
    engine: NotificationEngine | None = getattr(app.state, "engine", None)
    if engine is None:
        engine = NotificationEngine(app.state.config, metrics=app.state.metrics)
    try:
        await engine.initialize()
        app.state.engine = engine
        logger.info("Notification engine started")
        yield
    finally:
        await engine.close()
        logger.info("Notification engine shut down")


def create_app(
    *,
    config: AppConfig | None = None,
    engine: NotificationEngine | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        config: Optional AppConfig. If *None*, a default config is created
            from environment variables.
        engine: Optional pre-built engine, not yet initialized; the lifespan
            initializes and closes it.
    """
    if config is None:
        config = engine.config if engine is not None else AppConfig()

    app = FastAPI(
        title="status-notify",
        version=__version__,
        description="Status-driven notification pipeline",
        lifespan=_lifespan,
    )

    app.state.config = config
    app.state.metrics = None
    if engine is not None:
        app.state.engine = engine
        app.state.metrics = engine.metrics
    elif config.metrics.enabled:
        app.state.metrics = NotifyMetrics()

    # -- Middleware --
    setup_cors(app, config.server.cors_origins)
    if app.state.metrics is not None:
        app.add_middleware(PrometheusMiddleware, registry=app.state.metrics.registry)

    # -- Error handler --
    @app.exception_handler(NotifyError)
    async def _notify_error_handler(request: Request, exc: NotifyError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "message": exc.message},
        )

    # -- Base routes --
    @app.get("/health", tags=["base"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics", tags=["base"], include_in_schema=False)
    async def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        metrics: NotifyMetrics | None = app.state.metrics
        body = generate_latest(metrics.registry) if metrics is not None else b""
        return Response(
            content=body,
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    # -- Mount v1 API --
    app.include_router(v1_router)

    return app
