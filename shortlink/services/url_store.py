"""
Mapping store: durable short code -> long URL bindings.

All calls are synchronous round trips on a SQLAlchemy session. The redirect
path runs find_by_code in a worker thread so the event loop never blocks on it.
"""

import logging
from typing import List, NamedTuple, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shortlink.models.url import UrlMapping

logger = logging.getLogger(__name__)


class ShortCodeTakenError(Exception):
    """Raised when an insert hits the unique constraint on short_code"""

    def __init__(self, short_code: str):
        super().__init__(f"Short code already taken: {short_code}")
        self.short_code = short_code


class ResolvedUrl(NamedTuple):
    url_id: int
    long_url: str


class MappingStore:
    """Read/insert access to the urls table. No update or delete."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_code(self, short_code: str) -> Optional[ResolvedUrl]:
        """Return (url_id, long_url) or None. A missing code is not an error."""
        row = self.db.query(UrlMapping.id, UrlMapping.long_url).filter(
            UrlMapping.short_code == short_code
        ).first()
        if row is None:
            return None
        return ResolvedUrl(url_id=row.id, long_url=row.long_url)

    def insert(self, short_code: str, long_url: str, owner_id: Optional[int]) -> UrlMapping:
        """
        Insert a new mapping.

        Raises:
            ShortCodeTakenError: the code collides with an existing mapping
        """
        url = UrlMapping(short_code=short_code, long_url=long_url, owner_id=owner_id)
        self.db.add(url)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ShortCodeTakenError(short_code)
        self.db.refresh(url)
        return url

    def list_by_owner(self, owner_id: int) -> List[UrlMapping]:
        """Mappings created by owner_id, newest first"""
        return self.db.query(UrlMapping).filter(
            UrlMapping.owner_id == owner_id
        ).order_by(UrlMapping.created_at.desc(), UrlMapping.id.desc()).all()
