"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  registers every table on Base.metadata
from database import Base, get_db
from main import app
from api.sync import get_sync_service as get_sync_service_for_sync
from services.sync_service import SyncOptions, SyncService
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    category,
    completed_sync_log,
    inventory_record,
    product,
    service_product,
)
from tests.fixtures.mocks import MockMagentoClient


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sync_options(tmp_path) -> SyncOptions:
    """Run options with pacing disabled and the image cache in a temp dir."""
    return SyncOptions(
        page_size=50,
        rate_limit_ms=0,
        inventory_rate_limit_ms=0,
        images_dir=str(tmp_path / "media" / "products"),
        images_url_prefix="/media/products",
    )


@pytest.fixture
def mock_client() -> MockMagentoClient:
    return MockMagentoClient()


@pytest.fixture
def sync_service(mock_client, sync_options) -> SyncService:
    return SyncService(client=mock_client, options=sync_options)


@pytest.fixture(name="client")
def client_fixture(db, sync_service):
    """Create a test client with the test database and a mocked upstream."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_get_sync_service():
        return sync_service

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sync_service_for_sync] = override_get_sync_service
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
