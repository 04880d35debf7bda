"""Cache invalidation after mutations.

Every mutation (generate, delete one, clear all) removes all cached read
views in one pattern delete: a new or removed record can change list
pagination, ordering and every aggregate. Clearing all history also resets
the generation counters.

Invalidation is best-effort. If Redis cannot be reached it is deferred
until the store recovers. The mutation itself has already succeeded
against the record store and is never failed here.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from secretforge.cache.keys import CacheKeys
from secretforge.observability.metrics import record_invalidation

if TYPE_CHECKING:
    from secretforge.cache.redis import CacheStore
    from secretforge.observability.telemetry import Telemetry

logger = logging.getLogger(__name__)


class Mutation(str, Enum):
    """Kind of write that triggers invalidation."""

    GENERATE = "generate"
    DELETE = "delete"
    CLEAR = "clear"


class InvalidationCoordinator:
    """Removes cached read views affected by a mutation.

    A mutation that finds the store marked down first re-pings it: the
    flag may be stale after a single timeout. If Redis really is down the
    mutation is remembered and replayed when the store recovers, since the
    views cached before the outage are still there when it comes back.
    """

    def __init__(
        self,
        store: CacheStore,
        telemetry: Telemetry,
        route_prefix: str = CacheKeys.ROUTE_PREFIX,
    ):
        self.store = store
        self.telemetry = telemetry
        self.route_prefix = route_prefix
        self.patterns = CacheKeys.read_view_patterns(route_prefix)
        self._deferred: set[Mutation] = set()
        store.on_recover(self.replay_deferred)

    @property
    def deferred(self) -> frozenset[Mutation]:
        """Mutations whose invalidation is waiting for Redis to come back."""
        return frozenset(self._deferred)

    async def invalidate_views(self) -> int:
        """Delete every cached read view. Returns the number of keys removed."""
        deleted = await self.store.delete_matching(*self.patterns)
        logger.info(
            "Cache views invalidated",
            extra={"patterns": list(self.patterns), "deleted": deleted},
        )
        return deleted

    async def after_mutation(self, mutation: Mutation) -> int:
        """Invalidate after a confirmed mutation. Never raises."""
        if not self.store.connected and not await self.store.connect():
            logger.warning(
                "Redis not reachable, cache invalidation deferred",
                extra={"mutation": mutation.value},
            )
            self._deferred.add(mutation)
            return 0
        return await self._invalidate({mutation})

    async def replay_deferred(self) -> None:
        """Run invalidations that were deferred while Redis was down."""
        if not self._deferred:
            return
        mutations, self._deferred = self._deferred, set()
        logger.info(
            "Replaying deferred cache invalidation",
            extra={"mutation": ",".join(sorted(m.value for m in mutations))},
        )
        await self._invalidate(mutations)

    async def _invalidate(self, mutations: set[Mutation]) -> int:
        label = ",".join(sorted(m.value for m in mutations))
        try:
            deleted = await self.invalidate_views()
            if Mutation.CLEAR in mutations:
                await self.telemetry.reset_generation_counters()
        except Exception as e:
            logger.error(f"Cache invalidation failed: {e}", extra={"mutation": label})
            return 0

        if not self.store.connected:
            # The delete degraded on a connectivity error mid-way
            self._deferred.update(mutations)
            return deleted

        for mutation in mutations:
            record_invalidation(mutation.value)
        return deleted
