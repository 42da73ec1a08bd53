"""
Builds the process-wide cache from settings.
"""

import logging
from enum import Enum

import redis

from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from linkstats_app.redis_client import connect_redis

logger = logging.getLogger(__name__)

# Cache calls sit on the redirect path; a slow Redis must degrade to a miss quickly
CACHE_SOCKET_TIMEOUT = 0.5


class CacheBackend(Enum):
    """Available cache backends"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


class CacheFactory:
    """
    Singleton cache factory.

    A Redis backend that cannot be reached at startup is replaced by the
    in-memory cache, so the service still runs (unshared) without Redis.
    """

    _instance: CacheStrategy = None

    @classmethod
    def create(cls, backend: CacheBackend) -> CacheStrategy:
        if cls._instance is not None:
            return cls._instance

        if backend == CacheBackend.REDIS:
            try:
                cls._instance = RedisCache(connect_redis("cache", CACHE_SOCKET_TIMEOUT))
            except redis.RedisError as e:
                logger.warning("⚠️  Redis cache unavailable (%s), using in-memory cache", e)
                cls._instance = InMemoryCache()

        elif backend == CacheBackend.MEMORY:
            cls._instance = InMemoryCache()

        elif backend == CacheBackend.NULL:
            cls._instance = NullCache()

        else:
            raise ValueError(f"Unknown cache backend: {backend}")

        logger.info("Cache backend: %s", type(cls._instance).__name__)
        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Forget the singleton (tests)"""
        cls._instance = None
