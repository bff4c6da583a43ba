"""Prometheus metrics for monitoring and observability."""

from __future__ import annotations

import time
from collections.abc import Callable

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match

# ==============================================================================
# APPLICATION INFO
# ==============================================================================

app_info = Info("restorany", "RestorAny API information")
app_info.info({"version": "0.3.0", "service": "restorany-api"})

# ==============================================================================
# HTTP METRICS
# ==============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently in progress",
    ["method", "endpoint"],
)

# ==============================================================================
# DISCOVERY METRICS
# ==============================================================================

discovery_requests_total = Counter(
    "discovery_requests_total",
    "Total discovery requests",
    ["mode", "result"],
)

discovery_results = Histogram(
    "discovery_results",
    "Number of venues returned per discovery request",
    ["mode"],
    buckets=(0, 1, 5, 10, 25, 50, 100, 200),
)

# ==============================================================================
# REVIEW LEDGER METRICS
# ==============================================================================

review_mutations_total = Counter(
    "review_mutations_total",
    "Total review ledger mutations",
    ["operation", "outcome"],
)

aggregate_recompute_seconds = Histogram(
    "aggregate_recompute_seconds",
    "Rating aggregate recompute duration in seconds",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)


UNMATCHED_ENDPOINT = "unmatched"


def route_template(request: Request) -> str:
    """
    Label a request by the path template of the route that serves it.

    Examples:
        /v1/venues/vz-kavana-korzo -> /v1/venues/{venue_id}
        /no-such-page -> unmatched
    """
    partial: str | None = None
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match is Match.FULL:
            return route.path
        if match is Match.PARTIAL and partial is None:
            partial = route.path
    return partial or UNMATCHED_ENDPOINT


# ==============================================================================
# PROMETHEUS MIDDLEWARE
# ==============================================================================


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP request metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = route_template(request)
        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - start_time
            )
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()


def get_metrics() -> Response:
    """Generate Prometheus metrics response."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "PrometheusMiddleware",
    "aggregate_recompute_seconds",
    "discovery_requests_total",
    "discovery_results",
    "get_metrics",
    "http_request_duration_seconds",
    "http_requests_total",
    "review_mutations_total",
    "route_template",
]
