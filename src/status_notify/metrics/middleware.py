"""Prometheus HTTP request metrics middleware for FastAPI.

Tracks ``http_request_total`` and ``http_request_duration_seconds``, labelled
by the matched route template (``/api/v1/statuses/{status_code}``) rather
than the raw path so per-status requests share one series.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

if TYPE_CHECKING:
    from collections.abc import Callable

    from prometheus_client import CollectorRegistry
    from starlette.requests import Request
    from starlette.responses import Response

_SKIP_PATHS = frozenset({"/metrics"})
_UNMATCHED = "<unmatched>"


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or _UNMATCHED


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that records request count and duration."""

    def __init__(self, app: object, *, registry: CollectorRegistry) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._requests = Counter(
            "http_request_total",
            "Total HTTP requests",
            ("method", "route", "status_code"),
            registry=registry,
        )
        self._latency = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ("method", "route"),
            registry=registry,
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:  # type: ignore[type-arg]
        """Time the request and count it under its route template."""
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start = time.monotonic()
        response: Response = await call_next(request)
        elapsed = time.monotonic() - start

        route = _route_template(request)
        self._requests.labels(
            method=request.method,
            route=route,
            status_code=str(response.status_code),
        ).inc()
        self._latency.labels(method=request.method, route=route).observe(elapsed)
        return response
