import logging
from typing import List, Optional

from shortlink.config import settings
from shortlink.models.url import UrlMapping
from shortlink.services.short_code_factory import ShortCodeFactory
from shortlink.services.short_code_strategies import ShortCodeStrategy
from shortlink.services.url_store import MappingStore, ShortCodeTakenError

logger = logging.getLogger(__name__)


class ShortCodeExhaustedError(RuntimeError):
    """Every generated candidate collided with an existing code"""


class URLService:
    """
    Create and list short URLs on behalf of an authenticated owner.

    This is the producer of the rows the redirect path reads. It never
    touches the cache: a code is only cached once it has been resolved.
    """

    def __init__(
        self,
        store: MappingStore,
        short_code_strategy: Optional[ShortCodeStrategy] = None,
        max_retries: int = None
    ):
        """
        Args:
            store: Mapping store bound to the request's session
            short_code_strategy: Code generator (defaults to the configured one)
            max_retries: Attempts before giving up on collisions
        """
        self.store = store
        self.short_code_strategy = short_code_strategy or ShortCodeFactory.create_strategy()
        self.max_retries = max_retries if max_retries is not None else settings.max_retries

    def create_short_url(self, long_url: str, owner_id: Optional[int]) -> UrlMapping:
        """
        Generate a code and insert the mapping.

        A collision on insert is retried with a freshly generated code; the
        generator itself never checks uniqueness.

        Raises:
            ShortCodeExhaustedError: after max_retries collisions
        """
        for attempt in range(1, self.max_retries + 1):
            short_code = self.short_code_strategy.generate()
            try:
                url = self.store.insert(short_code, long_url, owner_id)
            except ShortCodeTakenError:
                logger.warning("Short code collision on %s (attempt %d/%d)",
                               short_code, attempt, self.max_retries)
                continue
            logger.info("Created short code %s for owner %s", url.short_code, owner_id)
            return url

        raise ShortCodeExhaustedError(
            f"Could not generate unique short code after {self.max_retries} attempts"
        )

    def list_urls(self, owner_id: int) -> List[UrlMapping]:
        """All mappings of owner_id, newest first"""
        return self.store.list_by_owner(owner_id)
