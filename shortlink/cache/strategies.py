"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    This is the Strategy Pattern interface - allows multiple cache implementations
    without changing the service layer code.

    All methods are async because cache operations involve I/O (network for Redis).
    A backend failure is reported as a miss (get) or False (set), never raised.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        """
        Set value in cache with TTL (Time To Live).

        Replaces any previous value and resets its TTL.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds (default: 1 hour)

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    async def ttl(self, key: str) -> Optional[int]:
        """
        Remaining time to live of a key.

        Returns:
            Seconds left, or None if the key is absent
        """
        pass

    async def close(self):
        """Release backend connections"""
        pass


class RedisCache(CacheStrategy):
    """
    Redis cache implementation with async operations.

    - Distributed caching (every API process shares the cache)
    - TTL enforced by Redis (SETEX)
    - Non-blocking I/O (redis.asyncio)

    Used in production environments.
    """

    def __init__(self, redis_client):
        """
        Initialize Redis cache.

        Args:
            redis_client: redis.asyncio.Redis instance (decode_responses=True)
        """
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(key)
        except RedisError as e:
            logger.warning("Redis get error for %s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        try:
            return bool(await self.redis.setex(key, ttl, value))
        except RedisError as e:
            logger.warning("Redis set error for %s: %s", key, e)
            return False

    async def ttl(self, key: str) -> Optional[int]:
        try:
            remaining = await self.redis.ttl(key)
        except RedisError as e:
            logger.warning("Redis ttl error for %s: %s", key, e)
            return None
        # -2: no such key, -1: no expiry
        return remaining if remaining >= 0 else None

    async def close(self):
        await self.redis.aclose()


class InMemoryCache(CacheStrategy):
    """
    In-memory cache implementation using Python dict.

    Pros:
    - Very fast (no network overhead)
    - Simple (no external dependencies)
    - Good for development and testing

    Cons:
    - Not distributed (each server has its own cache)
    - Lost on restart

    Expired entries are dropped on read, and all of them on every set.
    """

    def __init__(self, clock=time.monotonic):
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._clock = clock

    def _live_entry(self, key: str) -> Optional[Tuple[str, float]]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        if entry[1] <= self._clock():
            del self._cache[key]
            return None
        return entry

    def _sweep(self):
        now = self._clock()
        for key in [k for k, (_, expires_at) in self._cache.items() if expires_at <= now]:
            del self._cache[key]

    async def get(self, key: str) -> Optional[str]:
        entry = self._live_entry(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        self._sweep()
        self._cache[key] = (value, self._clock() + ttl)
        return True

    async def ttl(self, key: str) -> Optional[int]:
        entry = self._live_entry(key)
        if entry is None:
            return None
        return int(round(entry[1] - self._clock()))


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.

    Used for:
    - Disabling cache in certain environments
    - Testing the store-only path

    Every lookup is a miss, which is always a valid cache state.
    """

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        return True

    async def ttl(self, key: str) -> Optional[int]:
        return None
