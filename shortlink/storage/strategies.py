"""
Click storage strategies using Strategy Pattern.

The analytics store is written only by the click ingestor, one row per
processed event. Reads are here for reporting and tests.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import func

from shortlink.models.click import Click
from shortlink.queue.models import ClickEvent

logger = logging.getLogger(__name__)


class ClickStorageStrategy(ABC):
    """
    Abstract base class for click storage strategies.

    store_click raises on failure: the ingestor decides what a failed
    write means for the message.
    """

    @abstractmethod
    async def store_click(self, event: ClickEvent) -> None:
        """
        Persist a single click event.

        Args:
            event: Parsed ClickEvent
        """
        pass

    @abstractmethod
    async def get_total_clicks(self, url_id: int) -> int:
        """Total clicks recorded for a mapping"""
        pass

    @abstractmethod
    async def list_clicks(self, url_id: Optional[int] = None) -> List[Click]:
        """Stored clicks in insertion order, optionally for one mapping"""
        pass


class SQLClickStorage(ClickStorageStrategy):
    """
    SQLAlchemy implementation writing to the clicks table.

    A fresh session per write keeps a failed insert from poisoning the next one.
    """

    def __init__(self, session_factory):
        """
        Args:
            session_factory: sessionmaker bound to the analytics engine
        """
        self.session_factory = session_factory

    async def store_click(self, event: ClickEvent) -> None:
        db = self.session_factory()
        try:
            db.add(Click(
                url_id=event.url_id,
                ip_address=event.ip_address,
                user_agent=event.user_agent,
                created_at=event.timestamp
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def get_total_clicks(self, url_id: int) -> int:
        db = self.session_factory()
        try:
            return db.query(func.count(Click.id)).filter(Click.url_id == url_id).scalar()
        finally:
            db.close()

    async def list_clicks(self, url_id: Optional[int] = None) -> List[Click]:
        db = self.session_factory()
        try:
            query = db.query(Click)
            if url_id is not None:
                query = query.filter(Click.url_id == url_id)
            clicks = query.order_by(Click.id).all()
            db.expunge_all()
            return clicks
        finally:
            db.close()
