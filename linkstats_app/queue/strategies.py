"""
Queue strategies using Strategy Pattern.
Allows switching between different queue backends (Redis Streams, In-Memory).
"""

import asyncio
import logging
import socket
from abc import ABC, abstractmethod
from collections import deque
from typing import List, Dict

from .models import VisitMessage

logger = logging.getLogger(__name__)


class QueueStrategy(ABC):
    """
    Abstract base class for queue strategies.

    Publishing must never raise: the redirect route treats the queue as
    fire-and-forget and a failed publish only costs one analytics event.
    """

    @abstractmethod
    async def publish(self, queue_name: str, message: VisitMessage) -> bool:
        """
        Publish a message to the queue.

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[VisitMessage]:
        """
        Consume messages from the queue.

        Args:
            queue_name: Name of the queue
            batch_size: Maximum number of messages to retrieve
            block_time: Time to wait for messages (milliseconds)

        Returns:
            List of VisitMessage objects
        """
        pass

    @abstractmethod
    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """Acknowledge messages (mark as processed)"""
        pass

    @abstractmethod
    async def get_queue_length(self, queue_name: str) -> int:
        """Get the number of pending messages in queue"""
        pass


class RedisStreamQueue(QueueStrategy):
    """
    Redis Streams implementation for message queue.

    How it works:
    1. Producer publishes messages using XADD
    2. Consumer reads messages using XREADGROUP
    3. Consumer acknowledges messages using XACK
    4. Unacknowledged messages stay pending and can be reclaimed

    Delivery is at-least-once, which is all click accounting needs.
    """

    def __init__(self, redis_client, consumer_group: str = "visit_workers"):
        self.redis = redis_client
        self.consumer_group = consumer_group
        self.consumer_name = f"worker-{socket.gethostname()}-{id(self)}"
        self._initialized_streams = set()

    def _ensure_stream_exists(self, queue_name: str):
        """Create stream and consumer group on first use"""
        if queue_name in self._initialized_streams:
            return

        try:
            self.redis.xgroup_create(
                name=queue_name,
                groupname=self.consumer_group,
                id="0",
                mkstream=True
            )
            logger.info("✅ Created Redis stream: %s", queue_name)
        except Exception as e:
            # Group might already exist, that's OK
            if "BUSYGROUP" not in str(e):
                logger.warning("⚠️  Stream creation warning: %s", e)

        self._initialized_streams.add(queue_name)

    async def publish(self, queue_name: str, message: VisitMessage) -> bool:
        try:
            self._ensure_stream_exists(queue_name)
            self.redis.xadd(queue_name, {"data": message.model_dump_json()})
            return True
        except Exception as e:
            logger.error("❌ Redis publish error: %s", e)
            return False

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[VisitMessage]:
        try:
            self._ensure_stream_exists(queue_name)

            # '>' means "messages never delivered to other consumers".
            # The blocking read runs in a thread so an embedded worker never stalls the event loop.
            messages = await asyncio.to_thread(
                self.redis.xreadgroup,
                groupname=self.consumer_group,
                consumername=self.consumer_name,
                streams={queue_name: ">"},
                count=batch_size,
                block=block_time
            )

            if not messages:
                return []

            events = []
            for _stream_name, stream_messages in messages:
                for message_id, message_data in stream_messages:
                    if isinstance(message_id, bytes):
                        message_id = message_id.decode("utf-8")
                    try:
                        event = VisitMessage.model_validate_json(message_data[b"data"])
                    except Exception as e:
                        # Poison message: acknowledge so it is not redelivered forever
                        logger.warning("⚠️  Failed to parse message %s: %s", message_id, e)
                        await self.ack(queue_name, [message_id])
                        continue
                    event.message_id = message_id
                    events.append(event)

            return events

        except Exception as e:
            logger.error("❌ Redis consume error: %s", e)
            return []

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        try:
            if not message_ids:
                return True
            self.redis.xack(queue_name, self.consumer_group, *message_ids)
            return True
        except Exception as e:
            logger.error("❌ Redis ack error: %s", e)
            return False

    async def get_queue_length(self, queue_name: str) -> int:
        """Get approximate queue length"""
        try:
            info = self.redis.xinfo_stream(queue_name)
            return info["length"]
        except Exception:
            return 0


class InMemoryQueue(QueueStrategy):
    """
    In-memory queue implementation using Python deque.

    Lost on restart and private to one process; pair it with the
    embedded worker. Messages are removed on consume, so ack is a no-op.
    """

    def __init__(self):
        self._queues: Dict[str, deque] = {}

    def _get_queue(self, queue_name: str) -> deque:
        if queue_name not in self._queues:
            self._queues[queue_name] = deque()
        return self._queues[queue_name]

    async def publish(self, queue_name: str, message: VisitMessage) -> bool:
        self._get_queue(queue_name).append(message)
        return True

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: int = 1000
    ) -> List[VisitMessage]:
        """block_time is ignored: an empty queue returns immediately"""
        queue = self._get_queue(queue_name)
        messages = []
        while queue and len(messages) < batch_size:
            messages.append(queue.popleft())
        return messages

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        return True

    async def get_queue_length(self, queue_name: str) -> int:
        return len(self._get_queue(queue_name))
