"""
Factory for creating queue instances.
Simple, clean factory with singleton caching.
"""

import logging
from enum import Enum

import redis.asyncio as aioredis

from .strategies import QueueStrategy, RedisStreamQueue, InMemoryQueue
from shortlink.config import settings

logger = logging.getLogger(__name__)


class QueueBackend(Enum):
    """Available queue backends"""
    REDIS_STREAMS = "redis_streams"
    MEMORY = "memory"


class QueueFactory:
    """
    Simple factory for creating queue instances.

    Gets configuration from settings (not passed as parameters).
    """

    _instance: QueueStrategy = None  # Single cached instance

    @classmethod
    def create(cls, backend: QueueBackend) -> QueueStrategy:
        """
        Create or return cached queue instance.

        Args:
            backend: Type of queue backend (from enum)

        Returns:
            Singleton queue instance
        """
        if cls._instance is not None:
            return cls._instance

        if backend == QueueBackend.REDIS_STREAMS:
            # No socket_timeout: consumers block in XREADGROUP for queue_block_ms.
            # Publishers are bounded by the resolver's own timeout instead.
            redis_client = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=settings.queue_publish_timeout,
            )
            cls._instance = RedisStreamQueue(
                redis_client,
                consumer_group=settings.queue_consumer_group,
                consumer_name=settings.queue_consumer_name
            )
            logger.info("Redis stream queue configured at %s", settings.redis_url)

        elif backend == QueueBackend.MEMORY:
            cls._instance = InMemoryQueue()
            logger.info("In-memory queue initialized")

        else:
            raise ValueError(f"Unknown queue backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
