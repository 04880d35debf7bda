"""Prometheus metrics for secretforge.

Provides metrics collection and exposure:
- HTTP request metrics (latency, count, in progress)
- Cache metrics (hits, misses, invalidations)
- Generation metrics (secrets per strength, sampling latency)

These are process-local. The Redis counters in
``secretforge.observability.telemetry`` are the shared, cross-process view.

Usage:
    from secretforge.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.http_requests_total.labels(method="GET", path="/api/secrets/history", status=200).inc()
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from secretforge.config import settings

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

_ID_SEGMENT = re.compile(r"^[0-9a-fA-F-]{32,36}$")


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # HTTP metrics
    http_requests_total: Any = None
    http_request_duration_seconds: Any = None
    http_requests_in_progress: Any = None

    # Cache metrics
    cache_hits_total: Any = None
    cache_misses_total: Any = None
    cache_invalidations_total: Any = None

    # Generation metrics
    secrets_generated_total: Any = None
    generation_latency_seconds: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = REGISTRY

        # HTTP metrics
        self.http_requests_total = Counter(
            "secretforge_http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
        )

        self.http_request_duration_seconds = Histogram(
            "secretforge_http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "path"],
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
        )

        self.http_requests_in_progress = Gauge(
            "secretforge_http_requests_in_progress",
            "HTTP requests currently in progress",
            ["method"],
        )

        # Cache metrics
        self.cache_hits_total = Counter(
            "secretforge_cache_hits_total",
            "Cache hits",
            ["view"],
        )

        self.cache_misses_total = Counter(
            "secretforge_cache_misses_total",
            "Cache misses",
            ["view"],
        )

        self.cache_invalidations_total = Counter(
            "secretforge_cache_invalidations_total",
            "Cache invalidations triggered by mutations",
            ["mutation"],
        )

        # Generation metrics
        self.secrets_generated_total = Counter(
            "secretforge_secrets_generated_total",
            "Secrets generated",
            ["strength"],
        )

        self.generation_latency_seconds = Histogram(
            "secretforge_generation_latency_seconds",
            "Secret sampling latency in seconds",
            buckets=(0.00001, 0.00005, 0.0001, 0.0005, 0.001, 0.005),
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if not settings.enable_metrics or self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for HTTP request metrics.

    Records:
    - Request count by method, path, status
    - Request duration histogram
    - Requests in progress gauge
    """

    def __init__(self, app: "ASGIApp") -> None:
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """Record metrics for HTTP requests."""
        # Skip metrics for health and metrics endpoints
        if request.url.path.startswith("/health") or request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = normalize_path(request.url.path)

        if self.metrics.http_requests_in_progress:
            self.metrics.http_requests_in_progress.labels(method=method).inc()

        start_time = time.perf_counter()
        status_code = 500  # Default in case of exception

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time

            if self.metrics.http_requests_total:
                self.metrics.http_requests_total.labels(
                    method=method,
                    path=path,
                    status=status_code,
                ).inc()

            if self.metrics.http_request_duration_seconds:
                self.metrics.http_request_duration_seconds.labels(
                    method=method,
                    path=path,
                ).observe(duration)

            if self.metrics.http_requests_in_progress:
                self.metrics.http_requests_in_progress.labels(method=method).dec()


def normalize_path(path: str) -> str:
    """Replace record identifiers with a placeholder to bound cardinality.

    Examples:
        /api/secrets/3f1c...-...  -> /api/secrets/{id}
        /api/secrets/history      -> /api/secrets/history
    """
    parts = path.strip("/").split("/")
    normalized = [
        "{id}" if _ID_SEGMENT.match(part) else part
        for part in parts
    ]
    return "/" + "/".join(normalized)


def record_cache_hit(view: str) -> None:
    """Record cache hit."""
    metrics = get_metrics()
    if metrics.cache_hits_total:
        metrics.cache_hits_total.labels(view=view).inc()


def record_cache_miss(view: str) -> None:
    """Record cache miss."""
    metrics = get_metrics()
    if metrics.cache_misses_total:
        metrics.cache_misses_total.labels(view=view).inc()


def record_invalidation(mutation: str) -> None:
    metrics = get_metrics()
    if metrics.cache_invalidations_total:
        metrics.cache_invalidations_total.labels(mutation=mutation).inc()


def record_secret_generated(strength: str, latency_ms: float) -> None:
    """Record a generated secret.

    Args:
        strength: Strength classification value (Weak, Medium, Strong)
        latency_ms: Sampling latency in milliseconds
    """
    metrics = get_metrics()
    if metrics.secrets_generated_total:
        metrics.secrets_generated_total.labels(strength=strength).inc()
    if metrics.generation_latency_seconds:
        metrics.generation_latency_seconds.observe(latency_ms / 1000)
