"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).

The cache is advisory: every backend turns its own failures into a miss
(or False / 0 for writes), so callers always fall back to the durable stores.
"""

import fnmatch
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Optional, Dict, Tuple

logger = logging.getLogger(__name__)

# Redis MATCH escapes a character with a backslash, fnmatch with a one-character class
_ESCAPED_CHAR = re.compile(r"\\(.)")


def redis_pattern_to_fnmatch(pattern: str) -> str:
    return _ESCAPED_CHAR.sub(r"[\1]", pattern)


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    All methods are async because cache operations involve I/O (network for Redis).
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found (or the backend failed)
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        """
        Set value in cache with TTL (Time To Live).

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds (default: 1 hour)

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete key from cache.

        Returns:
            True if deleted, False if key didn't exist
        """
        pass

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a Redis MATCH pattern (e.g. ``topic:*:42``).
        A backslash makes the following character literal.

        Returns:
            Number of keys deleted
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if key exists in cache"""
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """Clear all cache entries"""
        pass


class RedisCache(CacheStrategy):
    """
    Redis cache implementation.

    Shared by every API process and the visit worker, so an invalidation
    issued by the worker is seen by the next analytics read anywhere.
    """

    def __init__(self, redis_client, scan_count: int = 500):
        """
        Initialize Redis cache.

        Args:
            redis_client: Redis client instance (redis.Redis)
            scan_count: COUNT hint used while scanning for pattern deletes
        """
        self.redis = redis_client
        self.scan_count = scan_count

    async def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(key)
            if value is None:
                return None
            return value.decode("utf-8") if isinstance(value, bytes) else value
        except Exception as e:
            logger.warning("Redis get error for %s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        try:
            return bool(self.redis.setex(key, ttl, value))
        except Exception as e:
            logger.warning("Redis set error for %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(self.redis.delete(key))
        except Exception as e:
            logger.warning("Redis delete error for %s: %s", key, e)
            return False

    async def delete_pattern(self, pattern: str) -> int:
        # SCAN instead of KEYS so a large keyspace never blocks the server
        try:
            keys = list(self.redis.scan_iter(match=pattern, count=self.scan_count))
            if not keys:
                return 0
            return int(self.redis.delete(*keys))
        except Exception as e:
            logger.warning("Redis pattern delete error for %s: %s", pattern, e)
            return 0

    async def exists(self, key: str) -> bool:
        try:
            return bool(self.redis.exists(key))
        except Exception as e:
            logger.warning("Redis exists error for %s: %s", key, e)
            return False

    async def clear(self) -> bool:
        """Clear all Redis keys (use with caution!)"""
        try:
            self.redis.flushdb()
            return True
        except Exception as e:
            logger.warning("Redis clear error: %s", e)
            return False


class InMemoryCache(CacheStrategy):
    """
    In-memory cache implementation using Python dict.

    Entries expire lazily: an expired key is dropped the next time it is read.
    Not shared between processes, so only suitable for development, tests,
    or a single-process deployment with the embedded worker.
    """

    def __init__(self, clock=time.monotonic):
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._clock = clock

    def _alive(self, key: str) -> bool:
        entry = self._cache.get(key)
        if entry is None:
            return False
        if entry[1] <= self._clock():
            del self._cache[key]
            return False
        return True

    async def get(self, key: str) -> Optional[str]:
        if not self._alive(key):
            return None
        return self._cache[key][0]

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        self._cache[key] = (value, self._clock() + ttl)
        return True

    async def delete(self, key: str) -> bool:
        if key in self._cache:
            del self._cache[key]
            return True
        return False

    async def delete_pattern(self, pattern: str) -> int:
        translated = redis_pattern_to_fnmatch(pattern)
        matched = [key for key in self._cache if fnmatch.fnmatchcase(key, translated)]
        for key in matched:
            del self._cache[key]
        return len(matched)

    async def exists(self, key: str) -> bool:
        return self._alive(key)

    async def clear(self) -> bool:
        self._cache.clear()
        return True


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.

    Every read is a miss, so every request goes to the durable stores.
    """

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int = 3600) -> bool:
        return True

    async def delete(self, key: str) -> bool:
        return True

    async def delete_pattern(self, pattern: str) -> int:
        return 0

    async def exists(self, key: str) -> bool:
        return False

    async def clear(self) -> bool:
        return True
