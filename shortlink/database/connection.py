"""
Database engines and sessions.

Two declarative bases are kept apart:
- Base: transactional data (short code -> long URL mappings)
- AnalyticsBase: click rows written by the ingestor

By default both live in the same database. Setting ANALYTICS_DATABASE_URL
moves the click table to a separate one.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from shortlink.config import settings


def _make_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        # Sessions are handed to worker threads by FastAPI
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


engine = _make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

if settings.analytics_database_url:
    analytics_engine = _make_engine(settings.analytics_database_url)
else:
    analytics_engine = engine
AnalyticsSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=analytics_engine)

Base = declarative_base()
AnalyticsBase = declarative_base()


def init_db():
    """Create mapping and analytics tables if they don't exist"""
    Base.metadata.create_all(bind=engine)
    AnalyticsBase.metadata.create_all(bind=analytics_engine)


def get_db():
    """FastAPI dependency: one session per request, always closed"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
