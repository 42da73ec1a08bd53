"""
Visit Worker

Consumes visit messages published by the redirect route and records them
through the VisitRecorder (event store append, click counter, cache
invalidation).

Runs either embedded in the API process (see main.py lifespan) or on its own:

    python -m linkstats_app.hit_processor.visit_worker
"""

import asyncio
import logging
import signal
import sys
from typing import List, Optional

from linkstats_app.config import settings
from linkstats_app.queue.models import VisitMessage
from linkstats_app.queue.strategies import QueueStrategy
from linkstats_app.services.visit_recorder import VisitRecorder

logger = logging.getLogger(__name__)


class VisitWorker:
    """
    Batch consumer for the visit queue.

    Delivery is at-least-once: a batch is acknowledged after every message
    in it went through the recorder, which never raises.
    """

    def __init__(
        self,
        queue: QueueStrategy,
        recorder: VisitRecorder,
        queue_name: str = settings.queue_name,
        batch_size: int = settings.queue_batch_size,
        block_time: int = settings.queue_block_ms
    ):
        self.queue = queue
        self.recorder = recorder
        self.queue_name = queue_name
        self.batch_size = batch_size
        self.block_time = block_time
        self.running = False
        self.processed_count = 0
        self.last_batch_size = 0

    async def process_batch(self, block_time: Optional[int] = None) -> int:
        """
        Consume and record one batch.

        Returns:
            Number of visits that were stored
        """
        messages = await self.queue.consume(
            self.queue_name,
            batch_size=self.batch_size,
            block_time=self.block_time if block_time is None else block_time
        )
        self.last_batch_size = len(messages)
        if not messages:
            return 0

        recorded = await self._record_all(messages)

        message_ids = [msg.message_id for msg in messages if msg.message_id]
        if message_ids:
            await self.queue.ack(self.queue_name, message_ids)

        self.processed_count += len(messages)
        logger.debug("Processed %d visits (%d recorded)", len(messages), recorded)
        return recorded

    async def _record_all(self, messages: List[VisitMessage]) -> int:
        recorded = 0
        for message in messages:
            if await self.recorder.record(message):
                recorded += 1
        return recorded

    async def drain(self) -> int:
        """Process batches until nothing new is delivered; returns visits stored"""
        total = 0
        while True:
            total += await self.process_batch(block_time=1)
            if not self.last_batch_size:
                return total

    async def start(self, install_signal_handlers: bool = False):
        """Run until stop() is called or the task is cancelled"""
        self.running = True
        logger.info("🚀 Visit worker started (batch size %d)", self.batch_size)

        if install_signal_handlers:
            signal.signal(signal.SIGINT, self._signal_handler)
            signal.signal(signal.SIGTERM, self._signal_handler)

        while self.running:
            try:
                await self.process_batch()
                if not self.last_batch_size:
                    # In-memory queues do not block, avoid spinning on an empty queue
                    await asyncio.sleep(self.block_time / 1000)
            except asyncio.CancelledError:
                logger.info("Visit worker task cancelled")
                break
            except Exception:
                logger.exception("❌ Error processing visit batch")
                await asyncio.sleep(1)

        self.running = False
        logger.info("🛑 Visit worker stopped (%d visits processed)", self.processed_count)

    def _signal_handler(self, signum, frame):
        logger.info("Received signal %s. Shutting down gracefully...", signum)
        self.stop()

    def stop(self):
        self.running = False


def build_worker() -> VisitWorker:
    """Wire a worker from the configured queue, cache and visit storage"""
    from linkstats_app.dependencies import get_cache, get_queue, get_visit_storage

    recorder = VisitRecorder(storage=get_visit_storage(), cache=get_cache())
    return VisitWorker(queue=get_queue(), recorder=recorder)


async def main():
    logging.basicConfig(level=settings.log_level)
    logger.info("Environment: %s", settings.environment)
    logger.info("Queue backend: %s", settings.queue_backend)
    logger.info("Visit storage backend: %s", settings.visit_storage_backend)

    worker = build_worker()

    try:
        await worker.start(install_signal_handlers=True)
    except KeyboardInterrupt:
        logger.warning("⚠️  Interrupted by user")
    except Exception:
        logger.exception("❌ Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
