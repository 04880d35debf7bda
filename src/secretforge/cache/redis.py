"""Redis cache store for secretforge.

Provides async Redis operations that never raise on connectivity failure:
every operation degrades to a documented default and logs instead.
Uses redis-py async client for connection pooling.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar, cast

import orjson
import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from secretforge.config import settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Module-level connection pool
_redis_client: Redis | None = None

# Default TTL (1 hour)
DEFAULT_TTL = 3600

T = TypeVar("T")


async def get_redis() -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            decode_responses=False,  # Payloads are orjson bytes
            socket_timeout=settings.redis_socket_timeout,
            socket_connect_timeout=settings.redis_socket_timeout,
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


def degrades_to(default: T) -> Callable[
    [Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]
]:
    """Return ``default`` instead of raising when Redis is unusable.

    Skips the round-trip entirely while the store is not ready. A
    connectivity error flips readiness off until the monitor sees the
    store again.
    """

    def decorator(method: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(method)
        async def wrapper(self: CacheStore, *args: Any, **kwargs: Any) -> T:
            if not self._ready:
                return default
            try:
                return await method(self, *args, **kwargs)
            except (RedisConnectionError, RedisTimeoutError) as e:
                self._mark_unavailable(f"{method.__name__} failed: {e}")
                return default
            except RedisError as e:
                logger.error(f"Redis {method.__name__} error for {args[:1]}: {e}")
                return default

        return wrapper

    return decorator


class CacheStore:
    """Cache entries and counters backed by Redis.

    Values are stored as orjson bytes with an absolute TTL. ``connected``
    reflects the last known connectivity and ``ready`` additionally waits for
    recovery hooks. Every operation is safe to call regardless of either.
    """

    def __init__(self, client: Redis, default_ttl: int = DEFAULT_TTL):
        self.client = client
        self.default_ttl = default_ttl
        self._ready = False
        self._monitor_task: asyncio.Task[None] | None = None
        self._recovery_hooks: list[Callable[[], Awaitable[None]]] = []
        self._recovering = False

    @property
    def ready(self) -> bool:
        """Whether cached entries may be served and written."""
        return self._ready and not self._recovering

    @property
    def connected(self) -> bool:
        """Last known reachability, regardless of recovery in progress."""
        return self._ready

    def _mark_unavailable(self, reason: str) -> None:
        if self._ready:
            logger.warning(f"Redis unavailable, cache disabled: {reason}")
        self._ready = False

    # -------------------------------------------------------------------------
    # Connectivity
    # -------------------------------------------------------------------------

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except (RedisError, OSError):
            return False

    def on_recover(self, hook: Callable[[], Awaitable[None]]) -> None:
        """Register a coroutine run each time readiness goes from off to on.

        Hooks may use every store operation, but ``ready`` stays false until
        they finish so no request reads an entry a hook is about to remove.
        """
        self._recovery_hooks.append(hook)

    async def connect(self) -> bool:
        """Ping the store and update readiness accordingly."""
        healthy = await self.health_check()
        recovered = healthy and not self._ready
        if recovered:
            logger.info("Redis connected and ready")
        elif not healthy and self._ready:
            logger.warning("Redis connection lost")
        self._ready = healthy

        if recovered and self._recovery_hooks:
            self._recovering = True
            try:
                for hook in self._recovery_hooks:
                    try:
                        await hook()
                    except Exception as e:
                        logger.error(f"Redis recovery hook failed: {e}")
            finally:
                self._recovering = False
        return healthy

    async def start_monitor(self, interval: float) -> None:
        """Start pinging the store in the background to track readiness."""
        if self._monitor_task is not None:
            return
        await self.connect()
        self._monitor_task = asyncio.create_task(self._monitor_loop(interval))

    async def stop_monitor(self) -> None:
        if self._monitor_task:
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
            self._monitor_task = None

    async def _monitor_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.connect()
            except Exception as e:
                logger.error(f"Error in Redis readiness monitor: {e}")

    # -------------------------------------------------------------------------
    # Cache entries
    # -------------------------------------------------------------------------

    @degrades_to(None)
    async def get(self, key: str) -> Any | None:
        """Get a cached value, or None if absent or unreachable."""
        data = await self.client.get(key)
        if data is None:
            return None
        try:
            return orjson.loads(data)
        except orjson.JSONDecodeError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            return None

    @degrades_to(None)
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store a value, replacing any existing entry, expiring after ttl seconds.

        ``None`` uses the store default. A ttl of zero or less expires the
        entry at once, so any existing value is removed.
        """
        if ttl is not None and ttl <= 0:
            await self.client.delete(key)
            return
        await self.client.set(
            key,
            orjson.dumps(value),
            ex=self.default_ttl if ttl is None else ttl,
        )

    @degrades_to(0)
    async def delete(self, *keys: str) -> int:
        """Delete keys. Returns the number of keys removed."""
        if not keys:
            return 0
        return cast(int, await self.client.delete(*keys))

    @degrades_to(0)
    async def delete_matching(self, *patterns: str) -> int:
        """Delete every key matching any of the glob patterns.

        Keys are enumerated with SCAN to avoid blocking the server, then
        removed in a single DEL so the matched set disappears at once.
        """
        keys: set[bytes] = set()
        for pattern in patterns:
            async for key in self.client.scan_iter(match=pattern):
                keys.add(key)

        if not keys:
            return 0
        return cast(int, await self.client.delete(*keys))

    @degrades_to(0)
    async def count_matching(self, pattern: str) -> int:
        count = 0
        async for _ in self.client.scan_iter(match=pattern):
            count += 1
        return count

    @degrades_to(False)
    async def exists(self, key: str) -> bool:
        return cast(int, await self.client.exists(key)) == 1

    @degrades_to(-1)
    async def remaining_ttl(self, key: str) -> int:
        """Seconds until ``key`` expires, -1 if absent, persistent or unreachable."""
        ttl = cast(int, await self.client.ttl(key))
        return ttl if ttl >= 0 else -1

    # -------------------------------------------------------------------------
    # Counters
    # -------------------------------------------------------------------------

    @degrades_to(0)
    async def increment(self, key: str) -> int:
        """Atomically increment a counter."""
        return cast(int, await self.client.incr(key))

    @degrades_to(False)
    async def expire(self, key: str, seconds: int) -> bool:
        return bool(await self.client.expire(key, seconds))

    @degrades_to(0)
    async def get_counter(self, key: str) -> int:
        raw = await self.client.get(key)
        if raw is None:
            return 0
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Counter {key} holds a non-integer value")
            return 0

    # -------------------------------------------------------------------------
    # Server info
    # -------------------------------------------------------------------------

    @degrades_to("Unknown")
    async def memory_usage(self) -> str:
        """Human-readable memory usage reported by the server."""
        info = await self.client.info("memory")
        value = info.get("used_memory_human", "Unknown")
        return value.decode() if isinstance(value, bytes) else str(value)
