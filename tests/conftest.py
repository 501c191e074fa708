"""
Pytest configuration and shared fixtures.

This module provides common fixtures for testing:
- A throwaway SQLite database per test (schema created up front)
- LedgerService bound to that database
- Mock and stub quote providers
- FastAPI test client with the ledger and quote provider overridden

The application's own engine points at a temporary file as well, so the
lifespan hook and the health check never touch a developer database.
"""
import os
import tempfile
from unittest.mock import AsyncMock, Mock

os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{tempfile.mkdtemp(prefix='ledger-tests-')}/app.db"
)
os.environ.setdefault("STOCK_PROVIDER", "stub")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

from portfolio_ledger.api.dependencies import get_ledger_service, get_quote_provider
from portfolio_ledger.api.main import app
from portfolio_ledger.db.base import Base
from portfolio_ledger.db import models  # noqa: F401
from portfolio_ledger.db.session import create_engine_for_url, create_session_factory
from portfolio_ledger.services.ledger_service import LedgerService
from portfolio_ledger.services.quotes.base import QuoteProvider
from portfolio_ledger.services.quotes.stub_provider import StubQuoteProvider


# ==================== Database Fixtures ====================

@pytest.fixture
def database_url(tmp_path):
    """
    Async URL of a fresh SQLite database with the ledger schema in place.

    The schema is created through a synchronous engine so the fixture does
    not depend on the test's event loop.
    """
    db_path = tmp_path / "ledger.db"
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return f"sqlite+aiosqlite:///{db_path}"


@pytest.fixture
def session_factory(database_url):
    """Session factory without connection pooling, safe across event loops."""
    engine = create_engine_for_url(database_url, poolclass=NullPool)
    return create_session_factory(engine)


@pytest.fixture
def ledger(session_factory):
    """LedgerService backed by the per-test database."""
    return LedgerService(session_factory)


# ==================== Quote Provider Fixtures ====================

@pytest.fixture
def stub_provider():
    return StubQuoteProvider()


@pytest.fixture
def mock_quote_provider():
    """
    Mock quote provider returning a fixed AAPL-style quote for any symbol.
    Override ``get_quote.side_effect`` per test for symbol-specific behavior.
    """
    mock = Mock(spec=QuoteProvider)

    async def quote_for(symbol):
        return {
            "symbol": symbol,
            "price": 160.0,
            "previousClose": 158.0,
            "currency": "USD",
            "asOf": "2024-01-16T16:00:00+00:00",
        }

    mock.get_quote = AsyncMock(side_effect=quote_for)
    mock.get_history = AsyncMock(return_value={
        "symbol": "AAPL",
        "range": "5D",
        "currency": "USD",
        "points": [{"at": "2024-01-16T16:00:00+00:00", "price": 160.0}],
    })
    return mock


# ==================== FastAPI App & Client Fixtures ====================

@pytest.fixture
def test_app():
    """Get the FastAPI application instance."""
    return app


@pytest.fixture
def client(test_app, ledger, stub_provider):
    """
    Synchronous test client wired to the per-test ledger and the stub
    quote provider. Tests can replace the provider through
    ``test_app.dependency_overrides[get_quote_provider]``.
    """
    test_app.dependency_overrides[get_ledger_service] = lambda: ledger
    test_app.dependency_overrides[get_quote_provider] = lambda: stub_provider
    try:
        with TestClient(test_app) as test_client:
            yield test_client
    finally:
        test_app.dependency_overrides.clear()


# ==================== Sample Test Data Fixtures ====================

@pytest.fixture
def sample_portfolio_data():
    """Sample portfolio payload in API (camelCase) form."""
    return {
        "id": "portfolio-1",
        "name": "Growth",
        "baseCurrency": "usd",
        "createdAt": "2024-01-15T09:30:00Z",
    }


@pytest.fixture
async def portfolio(ledger, sample_portfolio_data):
    """A stored portfolio."""
    return await ledger.create_portfolio(sample_portfolio_data)
