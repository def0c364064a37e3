from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from shortlink.database.connection import Base


class UrlMapping(Base):
    """
    Short code -> long URL binding.

    Rows are written once by the create flow and never updated or deleted.
    The redirect path only reads them.
    """
    __tablename__ = "urls"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # unique=True is what actually guarantees short code uniqueness;
    # the generator never checks.
    short_code = Column(String(8), unique=True, nullable=False, index=True)
    long_url = Column(String, nullable=False)
    owner_id = Column(Integer, nullable=True, index=True)  # opaque to the core
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
