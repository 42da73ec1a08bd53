"""
Builds the process-wide visit queue from settings.
"""

import logging
from enum import Enum

import redis

from .strategies import QueueStrategy, RedisStreamQueue, InMemoryQueue
from linkstats_app.config import settings
from linkstats_app.redis_client import connect_redis

logger = logging.getLogger(__name__)


class QueueBackend(Enum):
    """Available queue backends"""
    REDIS_STREAMS = "redis_streams"
    MEMORY = "memory"


class QueueFactory:
    """
    Singleton queue factory.

    Falls back to the in-memory queue when Redis cannot be reached; that
    queue is private to the process, so only the embedded worker drains it.
    """

    _instance: QueueStrategy = None

    @classmethod
    def create(cls, backend: QueueBackend) -> QueueStrategy:
        if cls._instance is not None:
            return cls._instance

        if backend == QueueBackend.REDIS_STREAMS:
            try:
                # XREADGROUP blocks server-side for queue_block_ms
                client = connect_redis("queue", 2 + settings.queue_block_ms / 1000)
                cls._instance = RedisStreamQueue(client, settings.queue_consumer_group)
            except redis.RedisError as e:
                logger.warning("⚠️  Redis queue unavailable (%s), using in-memory queue", e)
                cls._instance = InMemoryQueue()

        elif backend == QueueBackend.MEMORY:
            cls._instance = InMemoryQueue()

        else:
            raise ValueError(f"Unknown queue backend: {backend}")

        logger.info("Queue backend: %s", type(cls._instance).__name__)
        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Forget the singleton (tests)"""
        cls._instance = None
