"""
Redis cache layer for public tenant lookups.

Provides:
- Generic get/set cache operations
- TTL management
- Cache key namespacing
- ``@cached`` decorator for async functions

Only public, non-user-specific data belongs here. Per-request access facts
live in ``tenantcms.access.context.RequestCache`` and never reach Redis.
"""

import json
import logging
from functools import wraps
from typing import Any, Callable

import redis.asyncio as aioredis

from tenantcms.config import settings
from tenantcms.core.metrics import cache_operations_total

logger = logging.getLogger(__name__)


class CacheManager:
    """
    Redis-based cache manager.

    All operations fail soft: a cache outage degrades to cache misses,
    never to failed requests.
    """

    def __init__(self) -> None:
        self._client: aioredis.Redis | None = None

    async def init(self) -> None:
        """Initialize Redis connection pool."""
        logger.info("Initializing Redis connection...")

        self._client = aioredis.from_url(
            str(settings.redis_url),
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
        )

        await self._client.ping()
        logger.info("Redis connection initialized")

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    @property
    def client(self) -> aioredis.Redis:
        """Get Redis client."""
        if not self._client:
            raise RuntimeError("Cache not initialized. Call init() first.")
        return self._client

    def _build_key(self, namespace: str, key: str) -> str:
        """
        Build namespaced cache key.

        Format: tenantcms:{namespace}:{key}
        Example: tenantcms:tenant_by_slug:acme
        """
        return f"tenantcms:{namespace}:{key}"

    async def get(self, namespace: str, key: str) -> Any | None:
        """
        Get value from cache.

        Returns:
            Deserialized value or None if not found
        """
        if self._client is None:
            return None
        cache_key = self._build_key(namespace, key)

        try:
            value = await self.client.get(cache_key)
            if value is None:
                return None
            return json.loads(value)

        except Exception as e:
            logger.warning(f"Cache get error: {cache_key} - {e}")
            return None

    async def set(
        self,
        namespace: str,
        key: str,
        value: Any,
        ttl: int | None = None,
    ) -> bool:
        """
        Set value in cache.

        Args:
            namespace: Cache namespace
            key: Cache key
            value: Value to cache (must be JSON-serializable)
            ttl: Time-to-live in seconds (None = use default)

        Returns:
            True if set successfully
        """
        if self._client is None:
            return False
        cache_key = self._build_key(namespace, key)
        ttl = ttl or settings.redis_cache_ttl

        try:
            serialized = json.dumps(value, default=str)
            await self.client.set(cache_key, serialized, ex=ttl)
            return True

        except Exception as e:
            logger.warning(f"Cache set error: {cache_key} - {e}")
            return False

    async def invalidate_namespace(self, namespace: str) -> int:
        """
        Invalidate all keys in a namespace.

        Used when a tenant changes and every cached lookup may be stale.

        Returns:
            Number of keys deleted
        """
        if self._client is None:
            return 0
        pattern = self._build_key(namespace, "*")

        try:
            keys = [key async for key in self.client.scan_iter(match=pattern)]
            if not keys:
                return 0

            deleted = await self.client.delete(*keys)
            logger.info(f"Invalidated {deleted} keys in namespace: {namespace}")
            return deleted

        except Exception as e:
            logger.warning(f"Cache invalidate error: {namespace} - {e}")
            return 0


# Global instance
cache_manager = CacheManager()


def cached(
    namespace: str,
    ttl: int | None = None,
    key_builder: Callable | None = None,
):
    """
    Decorator for caching async function results.

    None results are not cached, so a missing tenant is looked up again
    on the next request.

    Usage:
        @cached(namespace="tenant_by_slug", ttl=60, key_builder=lambda store, slug: slug)
        async def get_public_tenant(store, slug: str) -> dict | None:
            ...

    Args:
        namespace: Cache namespace
        ttl: Time-to-live in seconds
        key_builder: Custom function to build cache key from args
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            if key_builder:
                cache_key = key_builder(*args, **kwargs)
            else:
                key_parts = [func.__name__]
                key_parts.extend(str(a) for a in args)
                key_parts.extend(f"{k}={v}" for k, v in sorted(kwargs.items()))
                cache_key = ":".join(key_parts)

            cached_value = await cache_manager.get(namespace, cache_key)
            if cached_value is not None:
                cache_operations_total.labels(namespace=namespace, hit="true").inc()
                logger.debug(f"Cache hit: {namespace}:{cache_key}")
                return cached_value

            cache_operations_total.labels(namespace=namespace, hit="false").inc()
            logger.debug(f"Cache miss: {namespace}:{cache_key}")
            result = await func(*args, **kwargs)

            if result is not None:
                await cache_manager.set(namespace, cache_key, result, ttl=ttl)

            return result

        return wrapper
    return decorator
