"""Cache administration router.

Endpoints:
- GET    /api/secrets/cache-stats        - Counters, hit rate and cached key counts
- DELETE /api/secrets/cache              - Invalidate every cached read view
- GET    /api/secrets/performance        - Cache round-trip versus record store read
- POST   /api/secrets/reset-cache-stats  - Reset request/hit/miss counters

Read endpoints report ``cacheEnabled: false`` while the cache store is not
ready; write endpoints answer 503.
"""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Depends

from secretforge.api.deps import AppComponents, get_components
from secretforge.api.errors import ServiceUnavailableError
from secretforge.cache import CacheKeys

router = APIRouter(prefix="/api/secrets", tags=["cache"])

CACHE_DISABLED = {
    "success": True,
    "data": {"cacheEnabled": False, "message": "Redis is not connected"},
}


def _require_ready(components: AppComponents) -> None:
    if not components.store.ready:
        raise ServiceUnavailableError("Redis is not connected")


@router.get("/cache-stats")
async def get_cache_stats(
    components: AppComponents = Depends(get_components),
) -> dict[str, Any]:
    """Generation counters, cache counters and cached key counts."""
    store = components.store
    if not store.ready:
        return CACHE_DISABLED

    generations = await components.telemetry.generation_counts()
    cache_stats = await components.telemetry.cache_statistics()

    return {
        "success": True,
        "data": {
            "cacheEnabled": True,
            "statistics": {
                "totalGenerations": generations.total,
                "todayGenerations": generations.today,
                **cache_stats.to_dict(),
            },
            "cachedItems": {
                "total": await store.count_matching("*"),
                "cacheKeys": await store.count_matching(
                    CacheKeys.route_pattern(components.invalidation.route_prefix)
                ),
                "historyKeys": await store.count_matching(CacheKeys.history_pattern()),
                "statsKeys": await store.count_matching(f"{CacheKeys.STATS_VIEW}:*"),
            },
        },
    }


@router.delete("/cache")
async def clear_cache(
    components: AppComponents = Depends(get_components),
) -> dict[str, Any]:
    """Invalidate every cached read view. Counters are kept."""
    _require_ready(components)
    deleted = await components.invalidation.invalidate_views()
    return {
        "success": True,
        "message": "Cache cleared successfully",
        "deletedCount": deleted,
    }


@router.get("/performance")
async def get_performance(
    components: AppComponents = Depends(get_components),
) -> dict[str, Any]:
    """Measure a cache round-trip against a representative record store read."""
    start = time.perf_counter()
    if not components.store.ready:
        return CACHE_DISABLED

    report = await components.telemetry.probe(components.records)
    cache_stats = await components.telemetry.cache_statistics()

    performance = report.to_dict()
    memory_usage = performance.pop("memoryUsage")
    measurement_ms = (time.perf_counter() - start) * 1000

    return {
        "success": True,
        "data": {
            "performance": performance,
            "cacheStatistics": cache_stats.to_dict(),
            "redis": {"status": "Connected", "memoryUsage": memory_usage},
            "measurementTime": f"{measurement_ms:.2f}ms",
        },
    }


@router.post("/reset-cache-stats")
async def reset_cache_stats(
    components: AppComponents = Depends(get_components),
) -> dict[str, Any]:
    """Reset the request, hit and miss counters."""
    _require_ready(components)
    await components.telemetry.reset_cache_statistics()
    return {"success": True, "message": "Cache statistics reset successfully"}
