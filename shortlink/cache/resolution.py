"""
Resolution cache: the lookaside shadow of the mapping store.

Wraps a CacheStrategy with the redirect path's rules:
- every call is bounded by a timeout shorter than the request timeout
- any failure (timeout, backend error, unreadable entry) is a miss
- values are only ever written right after a store read

The cached value is {"urlId": ..., "longUrl": ...} so that redirects served
from cache still produce attributable click events.
"""

import asyncio
import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from .strategies import CacheStrategy

logger = logging.getLogger(__name__)


class CachedUrl(BaseModel):
    url_id: int
    long_url: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ResolutionCache:

    def __init__(
        self,
        backend: CacheStrategy,
        ttl: int = 3600,
        timeout: float = 0.25,
        key_prefix: str = ""
    ):
        self.backend = backend
        self.ttl = ttl
        self.timeout = timeout
        self.key_prefix = key_prefix

    def key_for(self, short_code: str) -> str:
        return f"{self.key_prefix}{short_code}"

    async def get(self, short_code: str) -> Optional[CachedUrl]:
        """Cached mapping for short_code, or None. Never raises."""
        key = self.key_for(short_code)
        try:
            raw = await asyncio.wait_for(self.backend.get(key), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Cache get timed out after %.3fs for %s", self.timeout, short_code)
            return None
        except Exception as e:
            logger.warning("Cache get failed for %s: %s", short_code, e)
            return None

        if raw is None:
            return None

        try:
            return CachedUrl.model_validate_json(raw)
        except ValidationError:
            # Written by an older format or by hand; the store lookup will overwrite it
            logger.warning("Ignoring unreadable cache entry for %s", short_code)
            return None

    async def set(self, short_code: str, url_id: int, long_url: str) -> bool:
        """Store a mapping just read from the store. Never raises."""
        key = self.key_for(short_code)
        value = CachedUrl(url_id=url_id, long_url=long_url).model_dump_json(by_alias=True)
        try:
            return await asyncio.wait_for(
                self.backend.set(key, value, ttl=self.ttl), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Cache set timed out after %.3fs for %s", self.timeout, short_code)
            return False
        except Exception as e:
            logger.warning("Cache set failed for %s: %s", short_code, e)
            return False
