"""Observability module for secretforge.

Provides metrics, structured logging and cache telemetry:
- Prometheus metrics
- Request/response instrumentation
- JSON structured logging with correlation IDs
- Redis-backed generation and cache counters
"""

from secretforge.observability.logging import (
    configure_logging,
    correlation_id_var,
    request_context,
    request_id_var,
)
from secretforge.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    metrics_registry,
)

# Telemetry imports the cache key schema, so it loads after metrics
from secretforge.observability.telemetry import (  # noqa: E402
    CacheStatistics,
    PerformanceReport,
    Telemetry,
    format_hit_rate,
    seconds_until_midnight,
)

__all__ = [
    # Logging
    "configure_logging",
    "request_context",
    "request_id_var",
    "correlation_id_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
    "MetricsMiddleware",
    # Telemetry
    "CacheStatistics",
    "PerformanceReport",
    "Telemetry",
    "format_hit_rate",
    "seconds_until_midnight",
]
