"""
Test configuration and fixtures for the LinkStats API.
This centralizes all test setup, making individual tests clean.
"""

import os

# Must be set before the app (and its settings) are imported
os.environ["EMBEDDED_WORKER"] = "false"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["QUEUE_BACKEND"] = "memory"
os.environ["GEO_LOOKUP_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["VISIT_STORAGE_SQLITE_PATH"] = "./test_analytics.db"

import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from linkstats_app.auth import create_access_token
from linkstats_app.cache.strategies import InMemoryCache
from linkstats_app.database.connection import Base, get_db
from linkstats_app.dependencies import get_cache, get_queue, get_visit_storage
from linkstats_app.hit_processor.visit_worker import VisitWorker
from linkstats_app.queue.strategies import InMemoryQueue
from linkstats_app.rate_limit import limiter
from linkstats_app.services.visit_recorder import VisitRecorder
from linkstats_app.storage.models import GeoLocation
from linkstats_app.storage.strategies import SQLiteVisitStorage

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER_ID = "user-1"
OTHER_OWNER_ID = "user-2"


def unknown_location(ip: str) -> GeoLocation:
    """Geo lookup stand-in: never touches the network"""
    return GeoLocation()


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def queue():
    return InMemoryQueue()


@pytest.fixture
def visit_storage(tmp_path):
    return SQLiteVisitStorage(db_path=str(tmp_path / "analytics.db"))


@pytest.fixture
def recorder(db_session, visit_storage, cache):
    return VisitRecorder(
        storage=visit_storage,
        cache=cache,
        db_session_factory=TestingSessionLocal,
        geo_lookup=unknown_location
    )


@pytest.fixture
def worker(queue, recorder):
    return VisitWorker(queue=queue, recorder=recorder, batch_size=50, block_time=1)


@pytest.fixture
def drain_visits(worker):
    """Run the visit worker over everything queued so far"""
    def drain() -> int:
        return asyncio.run(worker.drain())
    return drain


@pytest.fixture(scope="function")
def client(db_session, cache, queue, visit_storage):
    """
    Create a test client with database, cache, queue and storage overridden.
    Each request gets its own session, like get_db in production.
    """
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_queue] = lambda: queue
    app.dependency_overrides[get_visit_storage] = lambda: visit_storage
    limiter.reset()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(OWNER_ID)}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {create_access_token(OTHER_OWNER_ID)}"}
