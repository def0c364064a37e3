"""
Click Ingestor Worker

This worker drains click events from the queue and stores them in the
analytics database.

Architecture:
- Single consumer, one message in flight (prefetch = 1)
- Rows are inserted in queue delivery order
- Every message is acknowledged, including ones that fail processing
- Failed messages are dropped or copied to a dead-letter queue

Usage:
    python -m shortlink.click_processor.click_worker
"""

import asyncio
import logging
import signal
import sys
from enum import Enum
from typing import Optional

from shortlink.config import settings, setup_logging
from shortlink.queue.models import ClickEvent, QueueMessage
from shortlink.queue.strategies import QueueStrategy
from shortlink.storage.strategies import ClickStorageStrategy

logger = logging.getLogger(__name__)


class FailurePolicy(Enum):
    """What happens to a message that cannot be processed"""
    DISCARD = "discard"
    DEAD_LETTER = "dead_letter"


class ClickIngestor:
    """
    Single-concurrency click consumer.

    The queue's stream() only fetches the next message after handle() has
    returned, and handle() always acks, so at most one message is ever
    outstanding. A crash between delivery and ack leaves the message pending
    and it is replayed on the next start (at-least-once).
    """

    def __init__(
        self,
        queue: QueueStrategy,
        storage: ClickStorageStrategy,
        queue_name: str = "clicks",
        failure_policy: FailurePolicy = FailurePolicy.DISCARD,
        dead_letter_queue_name: Optional[str] = None,
        block_ms: Optional[int] = 1000,
        retry_delay: float = 1.0
    ):
        """
        Initialize worker with dependencies.

        Args:
            queue: Queue strategy for consuming messages
            storage: Storage strategy for analytics data
            queue_name: Queue to drain
            failure_policy: Discard or dead-letter unprocessable messages
            dead_letter_queue_name: Required for the dead-letter policy
            block_ms: Poll block time while the queue is empty
            retry_delay: Pause before restarting after a consumer error
        """
        if failure_policy == FailurePolicy.DEAD_LETTER and not dead_letter_queue_name:
            raise ValueError("dead_letter_queue_name is required for the dead-letter policy")

        self.queue = queue
        self.storage = storage
        self.queue_name = queue_name
        self.failure_policy = failure_policy
        self.dead_letter_queue_name = dead_letter_queue_name
        self.block_ms = block_ms
        self.retry_delay = retry_delay
        self.running = False
        self.processed_count = 0
        self.failed_count = 0

    async def handle(self, message: QueueMessage) -> bool:
        """
        Parse, persist and acknowledge one message.

        Returns:
            True if a row was written, False if the message was discarded

        Raises:
            Exception: only if the ack itself fails (message stays pending)
        """
        try:
            event = ClickEvent.from_payload(message.body)
            await self.storage.store_click(event)
        except Exception as e:
            self.failed_count += 1
            logger.error("Error processing message %s: %s", message.message_id, e)
            await self._dispose(message)
            await self.queue.ack(self.queue_name, [message.message_id])
            return False

        await self.queue.ack(self.queue_name, [message.message_id])
        self.processed_count += 1
        logger.info("Saved click data for urlId: %s", event.url_id)
        return True

    async def _dispose(self, message: QueueMessage):
        if self.failure_policy == FailurePolicy.DEAD_LETTER:
            moved = await self.queue.publish(self.dead_letter_queue_name, message.body)
            if moved:
                logger.error("Moved message %s to %s", message.message_id, self.dead_letter_queue_name)
                return
            logger.error("Dead-letter publish failed, dropping message %s", message.message_id)
            return
        logger.error("Discarded message %s", message.message_id)

    async def start(self, stop_when_idle: bool = False) -> int:
        """
        Run the consumer loop.

        Args:
            stop_when_idle: Return once the queue has nothing new

        Returns:
            Number of messages handled during this run
        """
        self.running = True
        handled = 0
        logger.info("Click ingestor started on queue %s (policy: %s)",
                    self.queue_name, self.failure_policy.value)

        while self.running:
            try:
                async for message in self.queue.stream(
                    self.queue_name,
                    block_ms=self.block_ms,
                    stop_when_empty=stop_when_idle,
                    should_continue=lambda: self.running
                ):
                    await self.handle(message)
                    handled += 1
                break
            except asyncio.CancelledError:
                logger.info("Click ingestor task cancelled")
                raise
            except Exception as e:
                # Unacked message stays pending and is replayed by the restarted stream
                logger.error("Consumer loop failed: %s", e)
                await asyncio.sleep(self.retry_delay)

        self.running = False
        logger.info("Click ingestor stopped after %d messages", handled)
        return handled

    async def drain(self) -> int:
        """Process everything currently queued, then return"""
        return await self.start(stop_when_idle=True)

    def stop(self):
        """Stop the worker after the current message"""
        self.running = False


async def main():
    """Main entry point for the click ingestor"""
    setup_logging()
    logger.info("Environment: %s, queue backend: %s, failure policy: %s",
                settings.environment, settings.queue_backend, settings.click_failure_policy)

    from shortlink.database.connection import AnalyticsSessionLocal, init_db
    from shortlink.queue.factory import QueueFactory, QueueBackend
    from shortlink.storage.strategies import SQLClickStorage

    init_db()
    queue = QueueFactory.create(QueueBackend(settings.queue_backend))
    storage = SQLClickStorage(AnalyticsSessionLocal)

    worker = ClickIngestor(
        queue=queue,
        storage=storage,
        queue_name=settings.queue_name,
        failure_policy=FailurePolicy(settings.click_failure_policy),
        dead_letter_queue_name=settings.dead_letter_queue_name,
        block_ms=settings.queue_block_ms,
        retry_delay=settings.worker_retry_delay
    )

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, worker.stop)

    try:
        await worker.start()
    except Exception:
        logger.exception("Fatal error in click ingestor")
        sys.exit(1)
    finally:
        await queue.close()


if __name__ == "__main__":
    asyncio.run(main())
