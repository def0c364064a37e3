"""
FastAPI dependencies for dependency injection.

This module provides singleton instances of cache and queue, and builds the
per-request services on top of them.

Pattern: Dependency Injection
- Components receive their clients, none creates its own
- Easy to test (override get_cache / get_queue / get_db with fakes)
- Flexible (swap implementations via config)
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from shortlink.cache.factory import CacheFactory, CacheBackend
from shortlink.cache.resolution import ResolutionCache
from shortlink.cache.strategies import CacheStrategy
from shortlink.config import settings
from shortlink.database.connection import get_db
from shortlink.queue.factory import QueueFactory, QueueBackend
from shortlink.queue.strategies import QueueStrategy
from shortlink.services.redirect_resolver import RedirectResolver
from shortlink.services.url_service import URLService
from shortlink.services.url_store import MappingStore


@lru_cache()
def get_cache() -> CacheStrategy:
    """
    Get cache instance (singleton).

    Factory gets config from settings internally.
    @lru_cache ensures this is called only once.
    """
    backend = CacheBackend(settings.cache_backend)
    return CacheFactory.create(backend)


@lru_cache()
def get_queue() -> QueueStrategy:
    """
    Get queue instance (singleton).

    Factory gets config from settings internally.
    @lru_cache ensures this is called only once.
    """
    backend = QueueBackend(settings.queue_backend)
    return QueueFactory.create(backend)


def get_mapping_store(db: Session = Depends(get_db)) -> MappingStore:
    return MappingStore(db)


def get_resolution_cache(cache: CacheStrategy = Depends(get_cache)) -> ResolutionCache:
    return ResolutionCache(
        cache,
        ttl=settings.cache_ttl,
        timeout=settings.cache_timeout,
        key_prefix=settings.cache_key_prefix
    )


def get_resolver(
    store: MappingStore = Depends(get_mapping_store),
    cache: ResolutionCache = Depends(get_resolution_cache),
    queue: QueueStrategy = Depends(get_queue)
) -> RedirectResolver:
    """Redirect resolver with store, cache and queue injected"""
    return RedirectResolver(
        store=store,
        cache=cache,
        queue=queue,
        queue_name=settings.queue_name,
        publish_timeout=settings.queue_publish_timeout
    )


def get_url_service(store: MappingStore = Depends(get_mapping_store)) -> URLService:
    return URLService(store)


async def close_clients():
    """
    Close the shared cache and queue clients on shutdown.

    Only clients that were actually created are closed; the singletons are
    reset so a restarted app builds fresh ones.
    """
    if get_cache.cache_info().currsize:
        await get_cache().close()
        get_cache.cache_clear()
        CacheFactory.clear_instance()
    if get_queue.cache_info().currsize:
        await get_queue().close()
        get_queue.cache_clear()
        QueueFactory.clear_instance()
