"""Cache layer for secretforge.

Provides Redis caching with the cache-aside pattern:
- Read views (history pages, statistics, wrapped routes) are cached with a TTL
- Mutations invalidate every read view by key pattern
- Every operation degrades to a no-op default when Redis is unreachable
"""

from secretforge.cache.aside import CacheAside, CachedPayload, CacheRule
from secretforge.cache.invalidation import InvalidationCoordinator, Mutation
from secretforge.cache.keys import CacheKeys
from secretforge.cache.redis import CacheStore, close_redis, get_redis

__all__ = [
    # Core cache
    "CacheKeys",
    "CacheStore",
    "get_redis",
    "close_redis",
    # Read path
    "CacheAside",
    "CachedPayload",
    "CacheRule",
    # Invalidation
    "InvalidationCoordinator",
    "Mutation",
]
