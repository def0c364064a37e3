"""
Test configuration and fixtures for the shortlink redirector.
This centralizes all test setup, making individual tests clean.
"""

import os

# Must be set before the app and its settings are imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("QUEUE_BACKEND", "memory")

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from shortlink.cache.strategies import InMemoryCache
from shortlink.config import settings
from shortlink.database.connection import AnalyticsBase, Base, get_db
from shortlink.dependencies import get_cache, get_queue
from shortlink.queue.strategies import InMemoryQueue
from shortlink.storage.strategies import SQLClickStorage

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Mapping and analytics tables share the test database.
    """
    Base.metadata.create_all(bind=engine)
    AnalyticsBase.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        AnalyticsBase.metadata.drop_all(bind=engine)


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def queue():
    return InMemoryQueue()


@pytest.fixture
def click_storage(db_session):
    return SQLClickStorage(TestingSessionLocal)


@pytest.fixture(scope="function")
def client(db_session, cache, queue):
    """
    Create a test client with database, cache and queue overridden.
    This is the main fixture that API tests will use.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_queue] = lambda: queue

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a given user id"""
    def make(user_id: int = 1):
        token = jwt.encode({"userId": user_id}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
        return {"Authorization": f"Bearer {token}"}
    return make
