"""Pytest configuration and fixtures."""

import os

# Point the application at an in-memory database before it is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ims.db.base import Base
from ims.db.session import get_db
from ims.main import app
# Import all models to ensure they're registered with Base.metadata
from ims.models import Document, SequenceCounter  # noqa: F401
from ims.services.inventory_service import InventoryService
from ims.store.change_feed import ChangeFeed
from ims.store.document_store import DocumentStore

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def feed() -> ChangeFeed:
    """A change feed private to one test."""
    return ChangeFeed()


@pytest.fixture
def store(db_session: Session, feed: ChangeFeed) -> DocumentStore:
    return DocumentStore(db_session, feed=feed)


@pytest.fixture(scope="function")
def client(db_engine, db_session: Session, monkeypatch) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    # Sessions opened outside request dependencies use the test database too
    monkeypatch.setattr("ims.main.SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=db_engine))

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiting during tests to avoid flaky failures
    from ims.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def inventory(db_session: Session, store: DocumentStore) -> InventoryService:
    return InventoryService(db_session, store=store)


@pytest.fixture
def rope(inventory: InventoryService) -> dict:
    """Mooring rope, 10 on hand, reorder at 4, 2.00 each."""
    return inventory.create_consumable({
        "name": "Mooring Rope",
        "description": "Deck",
        "unitPrice": 2,
        "quantity": 10,
        "reorderLevel": 4,
        "datePurchased": "2024-03-01",
    })


@pytest.fixture
def filters(inventory: InventoryService) -> dict:
    """Fuel filters, 6 on hand, reorder at 5."""
    return inventory.create_consumable({
        "name": "Fuel Filter",
        "description": "Engine",
        "unitPrice": 15.5,
        "quantity": 6,
        "reorderLevel": 5,
        "datePurchased": "2024-02-10",
    })
