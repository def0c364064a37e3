"""
Redirect resolution: cache-aside lookup plus click emission.

Per short code:
    cache check --hit--> click --> redirect
        |
        miss --> store lookup --not found--> 404 (no cache write, no click)
                     |
                   found --> cache populate --> click --> redirect

Only a mapping store failure can fail a redirect. Cache and queue failures
degrade silently (logged) to a store lookup or a dropped click.
"""

import asyncio
import logging
from typing import Optional

from pydantic import BaseModel
from fastapi.concurrency import run_in_threadpool

from shortlink.cache.resolution import ResolutionCache
from shortlink.queue.models import ClickEvent
from shortlink.queue.strategies import QueueStrategy
from shortlink.services.url_store import MappingStore

logger = logging.getLogger(__name__)


class Resolution(BaseModel):
    """Outcome of a successful lookup, with the click to publish"""
    short_code: str
    url_id: int
    long_url: str
    cache_hit: bool
    click: ClickEvent


class RedirectResolver:
    """
    Redirect Resolver with dependency injection for store, cache and queue.

    Safe to share between concurrent requests as long as the store's session
    belongs to one request; cache and queue clients are shared.
    """

    def __init__(
        self,
        store: MappingStore,
        cache: ResolutionCache,
        queue: QueueStrategy,
        queue_name: str = "clicks",
        publish_timeout: float = 0.5
    ):
        self.store = store
        self.cache = cache
        self.queue = queue
        self.queue_name = queue_name
        self.publish_timeout = publish_timeout

    async def resolve(
        self,
        short_code: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Optional[Resolution]:
        """
        Resolve short_code to its long URL using the Cache-Aside pattern.

        Returns:
            Resolution, or None when no mapping exists

        Raises:
            sqlalchemy.exc.SQLAlchemyError: mapping store unavailable (cache miss only)
        """
        cached = await self.cache.get(short_code)
        if cached is not None:
            logger.info("CACHE HIT for %s", short_code)
            return self._resolution(short_code, cached.url_id, cached.long_url, True,
                                    ip_address, user_agent)

        logger.info("CACHE MISS for %s", short_code)
        found = await run_in_threadpool(self.store.find_by_code, short_code)
        if found is None:
            return None

        # Populate before answering so the next lookup is a hit.
        # ResolutionCache bounds this and swallows failures.
        if await self.cache.set(short_code, found.url_id, found.long_url):
            logger.debug("SET cache for %s", short_code)

        return self._resolution(short_code, found.url_id, found.long_url, False,
                                ip_address, user_agent)

    @staticmethod
    def _resolution(short_code, url_id, long_url, cache_hit, ip_address, user_agent) -> Resolution:
        return Resolution(
            short_code=short_code,
            url_id=url_id,
            long_url=long_url,
            cache_hit=cache_hit,
            click=ClickEvent(url_id=url_id, ip_address=ip_address, user_agent=user_agent)
        )

    async def publish_click(self, event: ClickEvent) -> bool:
        """
        Publish a click event, giving up after publish_timeout.

        A failed or slow publish drops the click (logged). Never raises.
        """
        try:
            published = await asyncio.wait_for(
                self.queue.publish(self.queue_name, event.to_payload()),
                timeout=self.publish_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Dropped click for urlId %s: publish timed out after %.3fs",
                           event.url_id, self.publish_timeout)
            return False
        except Exception as e:
            logger.warning("Dropped click for urlId %s: %s", event.url_id, e)
            return False

        if not published:
            logger.warning("Dropped click for urlId %s: queue unavailable", event.url_id)
            return False

        logger.info("Sent click event to queue for urlId: %s", event.url_id)
        return True
