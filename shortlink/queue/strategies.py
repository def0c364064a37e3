"""
Queue strategies using Strategy Pattern.
Allows switching between different queue backends (Redis Streams, In-Memory).

Delivery is at-least-once: a message stays pending for its consumer from
delivery until ack(). A consumer that restarts replays its own pending
messages before asking for new ones.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import AsyncIterator, Callable, Dict, List, Optional

from redis.exceptions import RedisError, ResponseError

from .models import QueueMessage

logger = logging.getLogger(__name__)


class QueueStrategy(ABC):
    """
    Abstract base class for queue strategies.

    This is the Strategy Pattern interface - allows multiple queue implementations
    without changing the resolver/worker code.

    Producer side (publish) reports failure as False and never raises.
    Consumer side (consume, consume_pending, ack) raises on backend errors
    so the worker loop can back off and restart.
    """

    @abstractmethod
    async def publish(self, queue_name: str, payload: str) -> bool:
        """
        Publish a message to the queue.

        Args:
            queue_name: Name of the queue
            payload: Serialized message body

        Returns:
            True once the message is durably queued, False otherwise
        """
        pass

    @abstractmethod
    async def consume(
        self,
        queue_name: str,
        count: int = 1,
        block_ms: Optional[int] = 1000
    ) -> List[QueueMessage]:
        """
        Receive messages never delivered before.

        Args:
            queue_name: Name of the queue
            count: Maximum number of messages to receive
            block_ms: Time to wait for messages (milliseconds), None to return at once

        Returns:
            Delivered messages, pending until acknowledged
        """
        pass

    @abstractmethod
    async def consume_pending(
        self,
        queue_name: str,
        after_id: str = "0",
        count: int = 1
    ) -> List[QueueMessage]:
        """
        Re-receive messages delivered to this consumer but never acknowledged.

        Args:
            queue_name: Name of the queue
            after_id: Only messages with an id greater than this one
            count: Maximum number of messages to receive
        """
        pass

    @abstractmethod
    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """
        Acknowledge messages (remove them from the pending list and the queue).

        Args:
            queue_name: Name of the queue
            message_ids: List of message IDs to acknowledge
        """
        pass

    @abstractmethod
    async def get_queue_length(self, queue_name: str) -> int:
        """Number of messages held by the queue"""
        pass

    @abstractmethod
    async def get_pending_count(self, queue_name: str) -> int:
        """Number of delivered but unacknowledged messages"""
        pass

    async def close(self):
        """Release backend connections"""
        pass

    async def stream(
        self,
        queue_name: str,
        block_ms: Optional[int] = 1000,
        stop_when_empty: bool = False,
        should_continue: Optional[Callable[[], bool]] = None
    ) -> AsyncIterator[QueueMessage]:
        """
        Lazy, restartable sequence of messages, one at a time.

        Pending messages from an earlier run come first, then new ones. The
        next message is only fetched when the caller resumes the generator,
        so a consumer that acks before moving on never holds more than one
        message (prefetch = 1).

        Args:
            queue_name: Name of the queue
            block_ms: Poll block time while waiting for new messages
            stop_when_empty: End the sequence once nothing new arrives
            should_continue: Checked before every fetch; False ends the sequence
        """
        keep_going = should_continue or (lambda: True)

        cursor = "0"
        while keep_going():
            pending = await self.consume_pending(queue_name, after_id=cursor, count=1)
            if not pending:
                break
            cursor = pending[0].message_id
            yield pending[0]

        while keep_going():
            messages = await self.consume(queue_name, count=1, block_ms=block_ms)
            if not messages:
                if stop_when_empty:
                    return
                continue
            for message in messages:
                yield message


class RedisStreamQueue(QueueStrategy):
    """
    Redis Streams implementation for message queue.

    Redis Streams fits this use case:
    - Persistent (entries survive restarts with AOF/RDB persistence)
    - Consumer groups with a per-consumer pending entry list
    - Atomic operations
    - Built into Redis (no extra infrastructure)

    How it works:
    1. Producer publishes messages using XADD
    2. Consumer reads new messages using XREADGROUP with '>'
    3. Consumer acknowledges messages using XACK, then removes them with XDEL
    4. After a restart the consumer re-reads its pending list with XREADGROUP from '0'

    The consumer name must be stable across restarts, otherwise the
    pending list of the previous run is never replayed.
    """

    def __init__(self, redis_client, consumer_group: str, consumer_name: str):
        """
        Args:
            redis_client: redis.asyncio.Redis instance (decode_responses=True)
            consumer_group: Name of consumer group for workers
            consumer_name: Stable name of this consumer within the group
        """
        self.redis = redis_client
        self.consumer_group = consumer_group
        self.consumer_name = consumer_name
        self._initialized_streams = set()

    async def _ensure_stream_exists(self, queue_name: str):
        """Create the stream and consumer group if they don't exist"""
        if queue_name in self._initialized_streams:
            return

        try:
            await self.redis.xgroup_create(
                name=queue_name,
                groupname=self.consumer_group,
                id="0",
                mkstream=True
            )
            logger.info("Created Redis stream %s with group %s", queue_name, self.consumer_group)
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise

        self._initialized_streams.add(queue_name)

    async def publish(self, queue_name: str, payload: str) -> bool:
        """Append to the stream (XADD). The group is only needed by consumers."""
        try:
            await self.redis.xadd(queue_name, {"data": payload})
            return True
        except RedisError as e:
            logger.warning("Redis publish error on %s: %s", queue_name, e)
            return False

    async def consume(
        self,
        queue_name: str,
        count: int = 1,
        block_ms: Optional[int] = 1000
    ) -> List[QueueMessage]:
        await self._ensure_stream_exists(queue_name)
        response = await self.redis.xreadgroup(
            groupname=self.consumer_group,
            consumername=self.consumer_name,
            streams={queue_name: ">"},
            count=count,
            block=block_ms
        )
        return self._parse(response, redelivered=False)

    async def consume_pending(
        self,
        queue_name: str,
        after_id: str = "0",
        count: int = 1
    ) -> List[QueueMessage]:
        await self._ensure_stream_exists(queue_name)
        response = await self.redis.xreadgroup(
            groupname=self.consumer_group,
            consumername=self.consumer_name,
            streams={queue_name: after_id},
            count=count
        )
        return self._parse(response, redelivered=True)

    @staticmethod
    def _parse(response, redelivered: bool) -> List[QueueMessage]:
        if not response:
            return []

        streams = response.items() if isinstance(response, dict) else response
        messages = []
        for _stream_name, entries in streams:
            for message_id, fields in entries:
                # Entries trimmed from the stream come back without fields;
                # they still need an ack, so hand them over with an empty body.
                body = (fields or {}).get("data", "")
                messages.append(QueueMessage(
                    message_id=message_id,
                    body=body,
                    redelivered=redelivered
                ))
        return messages

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        if not message_ids:
            return True
        await self.redis.xack(queue_name, self.consumer_group, *message_ids)
        # Single consumer group: once acked, nobody needs the entry again
        await self.redis.xdel(queue_name, *message_ids)
        return True

    async def get_queue_length(self, queue_name: str) -> int:
        return await self.redis.xlen(queue_name)

    async def get_pending_count(self, queue_name: str) -> int:
        await self._ensure_stream_exists(queue_name)
        info = await self.redis.xpending(queue_name, self.consumer_group)
        return info["pending"]

    async def close(self):
        await self.redis.aclose()


class InMemoryQueue(QueueStrategy):
    """
    In-memory queue implementation using Python deque.

    Pros:
    - Simple (no external dependencies)
    - Fast (no network overhead)
    - Same ack/redelivery semantics as the Redis queue within one process

    Cons:
    - Not persistent (lost on restart)
    - Not distributed (each process has its own queue)

    Used in development/testing environments.
    """

    def __init__(self):
        self._queues: Dict[str, deque] = {}
        self._unacked: Dict[str, Dict[str, QueueMessage]] = {}
        self._sequence = 0

    def _get_queue(self, queue_name: str) -> deque:
        if queue_name not in self._queues:
            self._queues[queue_name] = deque()
            self._unacked[queue_name] = {}
        return self._queues[queue_name]

    @staticmethod
    def _seq(message_id: str) -> int:
        return int(message_id.split("-", 1)[0])

    async def publish(self, queue_name: str, payload: str) -> bool:
        self._sequence += 1
        message = QueueMessage(message_id=f"{self._sequence}-0", body=payload)
        self._get_queue(queue_name).append(message)
        return True

    async def consume(
        self,
        queue_name: str,
        count: int = 1,
        block_ms: Optional[int] = 1000
    ) -> List[QueueMessage]:
        queue = self._get_queue(queue_name)
        if not queue and block_ms:
            await asyncio.sleep(block_ms / 1000)

        messages = []
        while queue and len(messages) < count:
            message = queue.popleft()
            self._unacked[queue_name][message.message_id] = message
            messages.append(message)
        return messages

    async def consume_pending(
        self,
        queue_name: str,
        after_id: str = "0",
        count: int = 1
    ) -> List[QueueMessage]:
        self._get_queue(queue_name)
        floor = self._seq(after_id)
        pending = sorted(
            (m for m in self._unacked[queue_name].values() if self._seq(m.message_id) > floor),
            key=lambda m: self._seq(m.message_id)
        )
        return [m.model_copy(update={"redelivered": True}) for m in pending[:count]]

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        self._get_queue(queue_name)
        for message_id in message_ids:
            self._unacked[queue_name].pop(message_id, None)
        return True

    async def get_queue_length(self, queue_name: str) -> int:
        return len(self._get_queue(queue_name))

    async def get_pending_count(self, queue_name: str) -> int:
        self._get_queue(queue_name)
        return len(self._unacked[queue_name])
