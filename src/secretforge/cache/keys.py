"""Cache key schema for secretforge.

Read-view entries:
- route-level:  {prefix}:{route_path}[?{sorted query}]   e.g. cache:/api/secrets/strengths
- list views:   history:{limit}:{page}                   e.g. history:20:1
- aggregates:   stats:all

Counters (durable unless noted):
- password:generation:count
- password:generation:today   (expires at next local midnight)
- stats:total:requests, stats:cache:hits, stats:cache:misses

Counters live outside the invalidation patterns so that view
invalidation never resets telemetry.
"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlencode


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    ROUTE_PREFIX = "cache"
    HISTORY_VIEW = "history"
    STATS_VIEW = "stats"

    # Counters
    TOTAL_GENERATIONS = "password:generation:count"
    DAILY_GENERATIONS = "password:generation:today"
    TOTAL_REQUESTS = "stats:total:requests"
    CACHE_HITS = "stats:cache:hits"
    CACHE_MISSES = "stats:cache:misses"

    PERFORMANCE_PROBE = "performance:test"

    @classmethod
    def route(
        cls,
        route_path: str,
        params: Iterable[tuple[str, str]] = (),
        prefix: str | None = None,
    ) -> str:
        """Key for a route-level cached response.

        Query parameters are sorted so that arrival order does not matter.
        """
        key = f"{prefix or cls.ROUTE_PREFIX}:{route_path}"
        ordered = sorted(params)
        if ordered:
            key = f"{key}?{urlencode(ordered)}"
        return key

    @classmethod
    def view(cls, view_name: str, *params: object) -> str:
        """Key for a parameterized read view: {view}:{param1}:{param2}..."""
        return ":".join([view_name, *(str(param) for param in params)])

    @classmethod
    def history(cls, limit: int, page: int) -> str:
        """Key for one page of generation history."""
        return cls.view(cls.HISTORY_VIEW, limit, page)

    @classmethod
    def stats(cls) -> str:
        """Key for aggregate statistics."""
        return cls.view(cls.STATS_VIEW, "all")

    # -------------------------------------------------------------------------
    # Invalidation patterns
    # -------------------------------------------------------------------------

    @classmethod
    def route_pattern(cls, prefix: str | None = None) -> str:
        return f"{prefix or cls.ROUTE_PREFIX}:*"

    @classmethod
    def history_pattern(cls) -> str:
        return f"{cls.HISTORY_VIEW}:*"

    @classmethod
    def stats_pattern(cls) -> str:
        # Narrower than stats:* so the stats:total/stats:cache counters survive
        return f"{cls.stats()}*"

    @classmethod
    def read_view_patterns(cls, route_prefix: str | None = None) -> tuple[str, ...]:
        """Patterns covering every cached read view."""
        return (cls.route_pattern(route_prefix), cls.history_pattern(), cls.stats_pattern())

    @classmethod
    def generation_counters(cls) -> tuple[str, ...]:
        return (cls.TOTAL_GENERATIONS, cls.DAILY_GENERATIONS)

    @classmethod
    def cache_counters(cls) -> tuple[str, ...]:
        return (cls.TOTAL_REQUESTS, cls.CACHE_HITS, cls.CACHE_MISSES)
