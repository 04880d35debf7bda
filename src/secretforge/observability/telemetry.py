"""Generation and cache telemetry kept in the cache store.

Counters are shared by every process talking to the same Redis:
- total generations, and a daily count that expires at the next local
  midnight (its expiry is recomputed on every increment, so no scheduled
  reset is needed)
- total wrapped read requests, cache hits and cache misses

Telemetry never fails the caller: the cache store degrades every
operation to a default when Redis is unreachable.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from secretforge.cache.keys import CacheKeys
from secretforge.observability.metrics import record_cache_hit, record_cache_miss

if TYPE_CHECKING:
    from secretforge.cache.redis import CacheStore
    from secretforge.persistence.base import RecordStore

logger = logging.getLogger(__name__)

PROBE_TTL = 10


def local_now() -> datetime:
    return datetime.now().astimezone()


def seconds_until_midnight(now: datetime) -> int:
    """Whole seconds from ``now`` until the next local midnight (at least 1)."""
    midnight = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return max(1, math.ceil((midnight - now).total_seconds()))


def format_hit_rate(hits: int, misses: int) -> str:
    """Hit rate as a percentage with two decimals, "0.00%" with no requests."""
    lookups = hits + misses
    if lookups == 0:
        return "0.00%"
    return f"{hits / lookups * 100:.2f}%"


@dataclass(frozen=True)
class CacheStatistics:
    total_requests: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> str:
        return format_hit_rate(self.hits, self.misses)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRequests": self.total_requests,
            "cacheHits": self.hits,
            "cacheMisses": self.misses,
            "hitRate": self.hit_rate,
        }


@dataclass(frozen=True)
class GenerationCounts:
    total: int
    today: int


@dataclass(frozen=True)
class PerformanceReport:
    """Cache round-trip versus a representative record store read."""

    cache_latency_ms: float
    record_store_latency_ms: float
    memory_usage: str

    @property
    def speedup(self) -> float | None:
        """How many times faster the cache is, None when not measurable."""
        if self.cache_latency_ms <= 0 or not math.isfinite(self.cache_latency_ms):
            return None
        return self.record_store_latency_ms / self.cache_latency_ms

    def to_dict(self) -> dict[str, Any]:
        speedup = self.speedup
        return {
            "cacheLatency": f"{self.cache_latency_ms:.2f}ms",
            "recordStoreLatency": f"{self.record_store_latency_ms:.2f}ms",
            "speedup": f"{speedup:.2f}x faster" if speedup is not None else "N/A",
            "timeSaved": (
                f"{self.record_store_latency_ms - self.cache_latency_ms:.2f}ms per cached request"
            ),
            "memoryUsage": self.memory_usage,
        }


class Telemetry:
    """Counters for generations and cache effectiveness.

    The clock is injectable so the daily counter expiry can be exercised
    across a simulated midnight.
    """

    def __init__(self, store: CacheStore, clock: Callable[[], datetime] = local_now):
        self.store = store
        self.clock = clock

    # -------------------------------------------------------------------------
    # Generation counters
    # -------------------------------------------------------------------------

    async def record_generation(self) -> None:
        await self.store.increment(CacheKeys.TOTAL_GENERATIONS)
        await self.store.increment(CacheKeys.DAILY_GENERATIONS)
        await self.store.expire(
            CacheKeys.DAILY_GENERATIONS,
            seconds_until_midnight(self.clock()),
        )

    async def generation_counts(self) -> GenerationCounts:
        return GenerationCounts(
            total=await self.store.get_counter(CacheKeys.TOTAL_GENERATIONS),
            today=await self.store.get_counter(CacheKeys.DAILY_GENERATIONS),
        )

    async def reset_generation_counters(self) -> None:
        await self.store.delete(*CacheKeys.generation_counters())

    # -------------------------------------------------------------------------
    # Cache counters
    # -------------------------------------------------------------------------

    async def record_hit(self, view: str) -> None:
        await self.store.increment(CacheKeys.TOTAL_REQUESTS)
        await self.store.increment(CacheKeys.CACHE_HITS)
        record_cache_hit(view)

    async def record_miss(self, view: str) -> None:
        await self.store.increment(CacheKeys.TOTAL_REQUESTS)
        await self.store.increment(CacheKeys.CACHE_MISSES)
        record_cache_miss(view)

    async def cache_statistics(self) -> CacheStatistics:
        return CacheStatistics(
            total_requests=await self.store.get_counter(CacheKeys.TOTAL_REQUESTS),
            hits=await self.store.get_counter(CacheKeys.CACHE_HITS),
            misses=await self.store.get_counter(CacheKeys.CACHE_MISSES),
        )

    async def reset_cache_statistics(self) -> None:
        await self.store.delete(*CacheKeys.cache_counters())
        logger.info("Cache statistics reset")

    # -------------------------------------------------------------------------
    # Performance probe
    # -------------------------------------------------------------------------

    async def probe(self, records: RecordStore) -> PerformanceReport:
        """Time a write/read/delete round-trip against one record store read."""
        start = time.perf_counter()
        await self.store.set(CacheKeys.PERFORMANCE_PROBE, {"test": "data"}, PROBE_TTL)
        await self.store.get(CacheKeys.PERFORMANCE_PROBE)
        await self.store.delete(CacheKeys.PERFORMANCE_PROBE)
        cache_latency_ms = (time.perf_counter() - start) * 1000

        start = time.perf_counter()
        await records.find(limit=1)
        record_store_latency_ms = (time.perf_counter() - start) * 1000

        return PerformanceReport(
            cache_latency_ms=cache_latency_ms,
            record_store_latency_ms=record_store_latency_ms,
            memory_usage=await self.store.memory_usage(),
        )
