# data/storage/cache.py

import logging
from typing import Any, Dict, Optional

import orjson
import redis.asyncio as redis
from redis.asyncio.client import Redis
from redis.exceptions import RedisError

from utils.constants import CACHE_KEY_PREFIX
from utils.errors import CacheError
from utils.helpers import TTLCache

logger = logging.getLogger(__name__)


def report_key(ticker: str) -> str:
    """One cache entry per ticker"""
    return f"{CACHE_KEY_PREFIX}:{ticker.upper()}"


class CacheManager:
    """
    Redis cache manager for analysis reports.
    Values are JSON documents serialized with orjson.
    """

    backend = "redis"

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.redis_client: Optional[Redis] = None
        self.is_connected = False

        self.default_ttl = config.get('cache_ttl', 1800)

    async def connect(self) -> None:
        """Establish connection to Redis server."""
        try:
            self.redis_client = redis.from_url(
                f"redis://{self.config.get('redis_host', 'localhost')}:"
                f"{self.config.get('redis_port', 6379)}/"
                f"{self.config.get('redis_db', 0)}",
                password=self.config.get('redis_password'),
                decode_responses=False,
                max_connections=self.config.get('redis_max_connections', 20),
                health_check_interval=30,
            )
            await self.redis_client.ping()
            self.is_connected = True
            logger.info("Successfully connected to Redis cache")
        except RedisError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise CacheError(f"Redis connection failed: {e}") from e

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
            self.is_connected = False
            logger.info("Disconnected from Redis cache")

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        try:
            value = await self.redis_client.get(key)
        except RedisError as e:
            logger.error(f"Cache get error for key {key}: {e}")
            return None

        if value is None:
            return None

        try:
            return orjson.loads(value)
        except orjson.JSONDecodeError as e:
            logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            await self.delete(key)
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Set value in cache with TTL.

        Args:
            key: Cache key
            value: JSON-compatible value
            ttl: Time to live in seconds
        """
        try:
            serialized = orjson.dumps(value)
            ttl = self.default_ttl if ttl is None else ttl
            if ttl > 0:
                await self.redis_client.setex(key, ttl, serialized)
            else:
                await self.redis_client.set(key, serialized)
        except (RedisError, TypeError) as e:
            logger.error(f"Cache set error for key {key}: {e}")
            raise CacheError(f"Cache set failed for {key}: {e}") from e

    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        try:
            return bool(await self.redis_client.delete(key))
        except RedisError as e:
            logger.error(f"Cache delete error: {e}")
            return False

    async def health_check(self) -> bool:
        try:
            return bool(await self.redis_client.ping())
        except (RedisError, AttributeError):
            return False


class LocalCache:
    """
    In-process cache with the same async interface as CacheManager.
    Values round-trip through orjson so hits never share state with callers.
    """

    backend = "memory"

    def __init__(self, default_ttl: int = 1800):
        self._store = TTLCache(ttl=default_ttl)

    async def connect(self) -> None:
        logger.info("Using in-process analysis cache")

    async def disconnect(self) -> None:
        self._store.clear()

    async def get(self, key: str) -> Optional[Any]:
        value = self._store.get(key)
        return orjson.loads(value) if value is not None else None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            serialized = orjson.dumps(value)
        except TypeError as e:
            raise CacheError(f"Cache set failed for {key}: {e}") from e
        self._store.set(key, serialized, ttl=ttl)

    async def delete(self, key: str) -> bool:
        return self._store.delete(key)

    async def health_check(self) -> bool:
        return True


def build_cache(cache_config, cache_ttl: int = 1800):
    """Pick the cache backend from CacheConfig"""
    if cache_config.backend == "redis":
        password = cache_config.redis_password
        return CacheManager({
            'redis_host': cache_config.redis_host,
            'redis_port': cache_config.redis_port,
            'redis_db': cache_config.redis_db,
            'redis_password': password.get_secret_value() if password else None,
            'redis_max_connections': cache_config.redis_max_connections,
            'cache_ttl': cache_ttl,
        })
    return LocalCache(default_ttl=cache_ttl)
