"""
Redis Cache Module

Optional caching layer with:
- Connection pooling
- Automatic serialization
- TTL management
- Namespaced keys

Redis is never required: callers treat an uninitialized client as a
cache miss.
"""

import json
from typing import Any, Optional, Union
from datetime import timedelta

import structlog
from redis.asyncio import Redis, ConnectionPool

from inventory_analytics.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

# Global Redis connection
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis(url: Optional[str] = None) -> Redis:
    """Initialize Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client is not None:
        return _redis_client

    _redis_pool = ConnectionPool.from_url(
        url or settings.redis.get_url(),
        max_connections=settings.redis.max_connections,
        socket_timeout=settings.redis.socket_timeout,
        decode_responses=settings.redis.decode_responses,
    )

    client = Redis(connection_pool=_redis_pool)

    # Test connection
    try:
        await client.ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.error("Redis connection failed", error=str(e))
        await _redis_pool.disconnect()
        _redis_pool = None
        raise

    _redis_client = client
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


def get_redis() -> Redis:
    """Get Redis client instance"""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


def redis_available() -> bool:
    return _redis_client is not None


async def cache_get(key: str, client: Optional[Redis] = None) -> Optional[Any]:
    """
    Get value from cache.

    Args:
        key: Cache key
        client: Explicit client, defaults to the global one

    Returns:
        Cached value or None if not found
    """
    client = client or get_redis()
    value = await client.get(key)

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
    client: Optional[Redis] = None,
) -> bool:
    """
    Set value in cache.

    Args:
        key: Cache key
        value: Value to cache (will be JSON serialized)
        ttl: Time-to-live in seconds or timedelta

    Returns:
        True if successful
    """
    client = client or get_redis()

    try:
        serialized = json.dumps(value, default=str)
    except (TypeError, ValueError) as e:
        logger.warning("Failed to serialize value for cache", key=key, error=str(e))
        return False

    if ttl:
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())
        await client.setex(key, ttl, serialized)
    else:
        await client.set(key, serialized)

    return True


async def cache_delete(key: str, client: Optional[Redis] = None) -> bool:
    """Delete key from cache"""
    client = client or get_redis()
    result = await client.delete(key)
    return result > 0


class CacheManager:
    """
    Cache manager with namespace support and automatic key generation.

    Example:
        cache = CacheManager("inventory_sales")
        await cache.set("org-1:4:2024-01-01:2024-02-01", breakdown, ttl=60)
        breakdown = await cache.get("org-1:4:2024-01-01:2024-02-01")
    """

    def __init__(self, namespace: str, default_ttl: int = 3600, client: Optional[Redis] = None):
        self.namespace = namespace
        self.default_ttl = default_ttl
        self._client = client

    @property
    def client(self) -> Redis:
        return self._client or get_redis()

    @property
    def available(self) -> bool:
        return self._client is not None or redis_available()

    def _key(self, key: str) -> str:
        """Generate namespaced key"""
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        return await cache_get(self._key(key), client=self.client)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
    ) -> bool:
        """Set value in cache"""
        return await cache_set(self._key(key), value, ttl or self.default_ttl, client=self.client)

    async def delete(self, key: str) -> bool:
        """Delete key from cache"""
        return await cache_delete(self._key(key), client=self.client)


# Pre-configured cache managers
sales_window_cache = CacheManager(
    "inventory_sales",
    default_ttl=settings.inventory.sales_window_cache_ttl_seconds,
)
