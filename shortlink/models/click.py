from sqlalchemy import Column, Integer, String, DateTime
from shortlink.database.connection import AnalyticsBase


class Click(AnalyticsBase):
    """
    One row per processed click event.

    url_id carries no foreign key: the event crossed a queue boundary and
    may reference a mapping the analytics database knows nothing about.
    """
    __tablename__ = "clicks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url_id = Column(Integer, nullable=False, index=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    # Time of the redirect, not of ingestion
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
