"""
Redis connections shared by the cache and queue factories.
"""

import logging

import redis

from linkstats_app.config import settings

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 2


def connect_redis(purpose: str, socket_timeout: float) -> redis.Redis:
    """
    Open a client on ``settings.redis_url`` and ping it.

    ``socket_timeout`` bounds every command; callers that issue blocking
    reads must allow for the server-side block time on top of it.

    Raises:
        redis.RedisError: the server cannot be reached
    """
    client = redis.from_url(
        settings.redis_url,
        decode_responses=False,
        socket_connect_timeout=CONNECT_TIMEOUT,
        socket_timeout=socket_timeout,
    )
    client.ping()
    logger.info("✅ Redis connected for %s", purpose)
    return client
