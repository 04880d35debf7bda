"""Middleware for the secretforge API.

- Route-level cache-aside for idempotent reads
- Correlation context for request tracing
"""

from secretforge.api.middleware.caching import CacheAsideMiddleware
from secretforge.api.middleware.correlation import CorrelationMiddleware

__all__ = [
    "CacheAsideMiddleware",
    "CorrelationMiddleware",
]
