"""
Prometheus metrics for the Team Tracker backend.

Each pod exposes its own registry on /metrics. Besides request and
database timings, the team counters show how often a two-collection
cascade breaks and how much drift reconciliation repairs.
"""

import logging
import re
import time
from contextlib import contextmanager
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from typing import Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

try:
    APP_VERSION = get_version("team-tracker-backend")
except PackageNotFoundError:
    APP_VERSION = "unknown"

app_info = Info("team_tracker_app", "Build information")
app_info.info({"version": APP_VERSION})

_STARTED_AT = time.time()

# HTTP
http_requests_total = Counter(
    "team_tracker_http_requests_total",
    "HTTP requests by method, route and status code",
    ["method", "endpoint", "status"],
)
http_request_duration_seconds = Histogram(
    "team_tracker_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
http_requests_in_progress = Gauge(
    "team_tracker_http_requests_in_progress",
    "HTTP requests being served",
    ["method"],
)

# MongoDB
db_operations_total = Counter(
    "team_tracker_db_operations_total",
    "MongoDB calls by collection and operation",
    ["collection", "operation"],
)
db_operation_duration_seconds = Histogram(
    "team_tracker_db_operation_duration_seconds",
    "MongoDB call latency",
    ["collection", "operation"],
    buckets=(0.002, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 1.0),
)
db_errors_total = Counter(
    "team_tracker_db_errors_total",
    "Failed MongoDB calls by collection and exception class",
    ["collection", "error_type"],
)

# Profile cache
cache_hits_total = Counter("team_tracker_cache_hits_total", "Profile cache hits")
cache_misses_total = Counter("team_tracker_cache_misses_total", "Profile cache misses")
cache_invalidations_total = Counter(
    "team_tracker_cache_invalidations_total",
    "Cached profiles dropped after a membership change",
)

# Teams
team_cascade_runs_total = Counter(
    "team_cascade_runs_total",
    "Two-collection cascades started, by cascade name",
    ["cascade"],
)
team_cascade_failures_total = Counter(
    "team_cascade_failures_total",
    "Cascade steps that failed and left teams/userProfiles out of sync",
    ["cascade", "step"],
)
team_reconciliation_runs_total = Counter(
    "team_reconciliation_runs_total",
    "Completed reconciliation passes",
)
team_reconciliation_fixes_total = Counter(
    "team_reconciliation_fixes_total",
    "Profiles changed by reconciliation, by kind of fix",
    ["kind"],
)

uptime_seconds = Gauge("team_tracker_uptime_seconds", "Seconds since process start")

_OBJECT_ID = re.compile(r"/[0-9a-fA-F]{24}(?=/|$)")
_NUMBER = re.compile(r"/\d+(?=/|$)")


def normalize_path(path: str) -> str:
    """
    Collapse ids in a request path so route labels stay bounded.

    /api/team/5f8d0d55b54764421b7156c3/members -> /api/team/{id}/members
    """
    return _NUMBER.sub("/{id}", _OBJECT_ID.sub("/{id}", path))


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus scrape target. Meant for in-cluster scraping only."""
    uptime_seconds.set(time.time() - _STARTED_AT)
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Counts and times every request except the scrape itself."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = normalize_path(request.url.path)
        status = 500
        started = time.perf_counter()
        http_requests_in_progress.labels(method=method).inc()
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            http_requests_in_progress.labels(method=method).dec()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - started
            )
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()


@contextmanager
def track_db_operation(collection: str, operation: str):
    """Time one MongoDB call; failures are counted and re-raised."""
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        db_errors_total.labels(collection=collection, error_type=type(e).__name__).inc()
        raise
    db_operations_total.labels(collection=collection, operation=operation).inc()
    db_operation_duration_seconds.labels(collection=collection, operation=operation).observe(
        time.perf_counter() - started
    )
