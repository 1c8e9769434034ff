"""
Redis Cache Module

Response cache for composed pages and upstream listings:
- Connection pooling
- JSON serialization
- TTL per namespace
- Namespace invalidation after proxied writes

Caching is optional. Until ``init_redis`` succeeds, or when it is disabled
in settings, every operation is a miss and writes are dropped.
"""

import json
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import structlog
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from ops_dashboard.config import get_settings

logger = structlog.get_logger(__name__)

# Global Redis connection
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis() -> Optional[Redis]:
    """Initialize the Redis connection pool when caching is enabled"""
    global _redis_pool, _redis_client

    if _redis_client is not None:
        return _redis_client

    settings = get_settings()
    if not settings.redis.enabled:
        logger.info("Redis cache disabled")
        return None

    pool = ConnectionPool.from_url(
        settings.redis.get_url(),
        max_connections=settings.redis.max_connections,
        socket_timeout=settings.redis.socket_timeout,
        decode_responses=True,
    )
    client = Redis(connection_pool=pool)

    try:
        await client.ping()
    except RedisError as e:
        logger.error("Redis connection failed", error=str(e))
        await pool.disconnect()
        raise

    _redis_pool, _redis_client = pool, client
    logger.info("Redis connection established")
    return _redis_client


async def close_redis() -> None:
    """Close Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None

    logger.info("Redis connection closed")


def get_redis() -> Optional[Redis]:
    """Redis client, or None when caching is not active"""
    return _redis_client


async def cache_get(key: str) -> Optional[Any]:
    """
    Get value from cache.

    Args:
        key: Cache key

    Returns:
        Cached value or None if not found or the cache is unavailable
    """
    client = get_redis()
    if client is None:
        return None

    try:
        value = await client.get(key)
    except RedisError as e:
        logger.warning("Cache read failed", key=key, error=str(e))
        return None

    if value is None:
        return None

    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


async def cache_set(
    key: str,
    value: Any,
    ttl: Optional[Union[int, timedelta]] = None,
) -> bool:
    """
    Set value in cache.

    Args:
        key: Cache key
        value: Value to cache (will be JSON serialized)
        ttl: Time-to-live in seconds or timedelta

    Returns:
        True if stored
    """
    client = get_redis()
    if client is None:
        return False

    try:
        serialized = json.dumps(value, default=str)
    except (TypeError, ValueError) as e:
        logger.warning("Failed to serialize value for cache", key=key, error=str(e))
        return False

    if isinstance(ttl, timedelta):
        ttl = int(ttl.total_seconds())

    try:
        if ttl:
            await client.setex(key, ttl, serialized)
        else:
            await client.set(key, serialized)
    except RedisError as e:
        logger.warning("Cache write failed", key=key, error=str(e))
        return False

    return True


async def cache_delete_pattern(pattern: str) -> int:
    """Delete all keys matching pattern"""
    client = get_redis()
    if client is None:
        return 0

    try:
        keys = [key async for key in client.scan_iter(match=pattern)]
        if not keys:
            return 0
        return await client.delete(*keys)
    except RedisError as e:
        logger.warning("Cache invalidation failed", pattern=pattern, error=str(e))
        return 0


class CacheManager:
    """
    Cache manager with namespace support.

    Example:
        cache = CacheManager("dashboard")
        await cache.set("20240101:20240131", payload, ttl=120)
        payload = await cache.get("20240101:20240131")
    """

    def __init__(self, namespace: str, default_ttl: int = 300):
        self.namespace = namespace
        self.default_ttl = default_ttl

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        return await cache_get(self._key(key))

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return await cache_set(self._key(key), value, ttl or self.default_ttl)

    async def invalidate_all(self) -> int:
        """Invalidate all keys in namespace"""
        removed = await cache_delete_pattern(f"{self.namespace}:*")
        if removed:
            logger.info("Cache namespace invalidated", namespace=self.namespace, keys=removed)
        return removed

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Get from cache or compute and cache.

        Args:
            key: Cache key
            factory: Async function to compute value if not cached
            ttl: Time-to-live

        Returns:
            Cached or computed value
        """
        value = await self.get(key)
        if value is not None:
            return value

        value = await factory()
        await self.set(key, value, ttl)
        return value


# Pre-configured cache managers
dashboard_cache = CacheManager("dashboard", default_ttl=120)
customers_cache = CacheManager("customers", default_ttl=300)
analytics_cache = CacheManager("analytics", default_ttl=300)
products_cache = CacheManager("products", default_ttl=300)

proxy_caches: Dict[str, CacheManager] = {
    service: CacheManager(f"proxy:{service}", default_ttl=60)
    for service in ("picking", "resellers", "campaigns", "email")
}
