"""Cache-aside read path for idempotent read views.

On a hit the cached payload is returned and the loader never runs. On a
miss the loader runs to completion and, only if it succeeds, its payload
is written back in a detached task: the response never waits on the
write and a failed write is only logged.

Concurrent misses on the same key may both load and both write. Loaders
are side-effect free, so no single-flight suppression is attempted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from secretforge.cache.redis import CacheStore
    from secretforge.observability.telemetry import Telemetry

logger = logging.getLogger(__name__)

Payload = dict[str, Any]
Loader = Callable[[], Awaitable[Payload]]


@dataclass(frozen=True)
class CacheRule:
    """Cache configuration for one wrapped read endpoint."""

    ttl: int
    key_prefix: str


@dataclass(frozen=True)
class CachedPayload:
    """A read-view payload and whether it was served from cache."""

    payload: Payload
    cached: bool

    def body(self) -> Payload:
        """Response body: the payload, marked ``cached`` when served from cache."""
        if self.cached:
            return {**self.payload, "cached": True}
        return self.payload


def view_name(key: str) -> str:
    """Metrics label for a cache key: its leading segment."""
    return key.split(":", 1)[0]


class CacheAside:
    """Coordinates cache lookups, loader fallback and background population."""

    def __init__(self, store: CacheStore, telemetry: Telemetry):
        self.store = store
        self.telemetry = telemetry
        self._pending: set[asyncio.Task[None]] = set()

    async def lookup(self, key: str) -> Payload | None:
        """Return the cached payload for ``key`` and count the hit or miss."""
        cached = await self.store.get(key) if self.store.ready else None
        view = view_name(key)
        context = {"cache_key": key, "cache_view": view}

        if isinstance(cached, dict):
            logger.debug("Cache HIT", extra=context)
            await self.telemetry.record_hit(view)
            return cached

        logger.debug("Cache MISS", extra=context)
        await self.telemetry.record_miss(view)
        return None

    async def fetch(self, key: str, ttl: int, loader: Loader) -> CachedPayload:
        """Serve ``key`` from cache, or load it and populate the cache.

        Exceptions from ``loader`` propagate and nothing is cached.
        """
        cached = await self.lookup(key)
        if cached is not None:
            return CachedPayload(payload=cached, cached=True)

        payload = await loader()
        self.populate(key, payload, ttl)
        return CachedPayload(payload=payload, cached=False)

    def populate(self, key: str, payload: Payload, ttl: int) -> None:
        """Write ``payload`` in the background; skipped while the store is down."""
        if not self.store.ready:
            return
        task = asyncio.create_task(self._write(key, payload, ttl), name=f"cache-write:{key}")
        self._pending.add(task)
        task.add_done_callback(self._on_write_done)

    async def _write(self, key: str, payload: Payload, ttl: int) -> None:
        await self.store.set(key, payload, ttl)
        logger.debug("Cached", extra={"cache_key": key, "cache_view": view_name(key), "ttl": ttl})

    def _on_write_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                f"Failed to cache response: {exc}",
                extra={"cache_key": task.get_name().removeprefix("cache-write:")},
            )

    async def drain(self) -> None:
        """Wait for in-flight cache writes (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
