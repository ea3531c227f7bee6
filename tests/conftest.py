"""
Pytest configuration and shared fixtures.
"""

import os

# Set test environment variables before importing the app
os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_PASSWORD", "postgres")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from engagement_api.database import AnalyticsStore, get_store
from engagement_api.main import app


@pytest.fixture
def fake_store():
    """Store double whose fetch_all returns no rows unless configured."""
    store = AsyncMock(spec=AnalyticsStore)
    store.fetch_all.return_value = []
    return store


@pytest.fixture
def client(fake_store):
    """Test client with the store dependency replaced; lifespan is not run."""
    app.dependency_overrides[get_store] = lambda: fake_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def last_query(fake_store):
    """Return the AnalyticsQuery passed to the most recent fetch_all call."""
    def _last_query():
        return fake_store.fetch_all.await_args.args[0]

    return _last_query
