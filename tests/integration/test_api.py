"""
API tests through FastAPI's TestClient.

Tests cover:
- Health and root endpoints
- Portfolio, holding and transaction endpoints (status codes, payload shape)
- The JSON error envelope for every error class
- Dashboard summary, stock quote/history endpoints
- The server-rendered dashboard page
"""
from unittest.mock import AsyncMock, Mock

import pytest

from portfolio_ledger.api.dependencies import get_quote_provider
from portfolio_ledger.services.quotes.base import QuoteProvider

pytestmark = pytest.mark.integration


def _create_portfolio(client, portfolio_id="portfolio-1", **overrides):
    payload = {"id": portfolio_id, "name": "Growth", "baseCurrency": "usd", **overrides}
    response = client.post("/api/portfolios", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _post_transaction(client, portfolio_id, **payload):
    return client.post(f"/api/portfolios/{portfolio_id}/transactions", json=payload)


def _use_provider(test_app, provider):
    test_app.dependency_overrides[get_quote_provider] = lambda: provider


class TestHealth:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "Portfolio Ledger API"

    def test_health_reports_database_and_provider(self, client):
        response = client.get("/health")
        body = response.json()

        assert response.status_code == 200
        assert body["checks"]["database"]["status"] == "healthy"
        assert body["checks"]["quotes"]["provider"] == "stub"


class TestPortfolioEndpoints:
    """Test /api/portfolios CRUD."""

    def test_create_returns_camel_case(self, client):
        body = _create_portfolio(client, createdAt="2024-01-15T09:30:00Z")

        assert body["id"] == "portfolio-1"
        assert body["baseCurrency"] == "USD"
        assert body["createdAt"].startswith("2024-01-15T09:30:00")

    def test_list_and_get(self, client):
        _create_portfolio(client)

        listed = client.get("/api/portfolios").json()
        fetched = client.get("/api/portfolios/portfolio-1")

        assert [item["id"] for item in listed["items"]] == ["portfolio-1"]
        assert fetched.status_code == 200
        assert fetched.json()["name"] == "Growth"

    def test_get_unknown_returns_404_envelope(self, client):
        response = client.get("/api/portfolios/missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_create_invalid_returns_400(self, client):
        response = client.post("/api/portfolios", json={"id": "p", "name": "", "baseCurrency": "USD"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]["field"] == "name"

    def test_non_object_body_returns_400(self, client):
        response = client.post("/api/portfolios", json=["not", "an", "object"])

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_duplicate_returns_409(self, client):
        _create_portfolio(client)

        response = client.post("/api/portfolios", json={"id": "portfolio-1", "name": "Again", "baseCurrency": "USD"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DUPLICATE"

    def test_patch_updates_fields(self, client):
        _create_portfolio(client)

        response = client.patch("/api/portfolios/portfolio-1", json={"baseCurrency": "eur"})

        assert response.status_code == 200
        assert response.json()["baseCurrency"] == "EUR"
        assert response.json()["name"] == "Growth"

    def test_patch_unknown_field_returns_400(self, client):
        _create_portfolio(client)

        response = client.patch("/api/portfolios/portfolio-1", json={"owner": "me"})

        assert response.status_code == 400
        assert response.json()["error"]["details"]["unknownFields"] == ["owner"]

    def test_patch_unknown_portfolio_returns_404(self, client):
        response = client.patch("/api/portfolios/missing", json={"name": "X"})

        assert response.status_code == 404

    def test_delete(self, client):
        _create_portfolio(client)

        response = client.delete("/api/portfolios/portfolio-1")

        assert response.status_code == 204
        assert client.get("/api/portfolios/portfolio-1").status_code == 404
        assert client.delete("/api/portfolios/portfolio-1").status_code == 404


class TestHoldingAndTransactionEndpoints:
    """Test nested holdings and transactions."""

    def test_create_and_list_holdings(self, client):
        _create_portfolio(client)

        created = client.post(
            "/api/portfolios/portfolio-1/holdings",
            json={"id": "holding-1", "symbol": "aapl", "quantity": 10, "averageCost": 150.25}
        )
        listed = client.get("/api/portfolios/portfolio-1/holdings")

        assert created.status_code == 201
        assert created.json()["averageCost"] == 150.25
        assert listed.json()["items"][0]["symbol"] == "AAPL"

    def test_holdings_of_unknown_portfolio_returns_404(self, client):
        assert client.get("/api/portfolios/missing/holdings").status_code == 404

    def test_buy_then_sell(self, client):
        _create_portfolio(client)

        buy = _post_transaction(client, "portfolio-1", id="txn-1", type="BUY", symbol="MSFT", quantity=4, price=100)
        sell = _post_transaction(client, "portfolio-1", id="txn-2", type="SELL", symbol="MSFT", quantity=1.5, price=110)
        holdings = client.get("/api/portfolios/portfolio-1/holdings").json()["items"]

        assert buy.status_code == 201
        assert buy.json()["totalAmount"] == 400
        assert buy.json()["holdingId"] == holdings[0]["id"]
        assert sell.status_code == 201
        assert holdings[0]["quantity"] == 2.5
        assert holdings[0]["averageCost"] == 100

    def test_oversell_returns_400(self, client):
        _create_portfolio(client)
        _post_transaction(client, "portfolio-1", id="txn-1", type="BUY", symbol="MSFT", quantity=1, price=100)

        response = _post_transaction(client, "portfolio-1", id="txn-2", type="SELL", symbol="MSFT", quantity=9, price=100)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INSUFFICIENT_QUANTITY"
        assert error["details"]["availableQuantity"] == 1

    def test_transaction_for_unknown_portfolio_returns_404(self, client):
        response = _post_transaction(client, "missing", id="txn-1", type="DEPOSIT", totalAmount=10)

        assert response.status_code == 404

    def test_bad_holding_reference_returns_400(self, client):
        _create_portfolio(client)

        response = _post_transaction(
            client, "portfolio-1", id="txn-1", type="DEPOSIT", totalAmount=10, holdingId="missing"
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "FK_VIOLATION"

    def test_duplicate_transaction_returns_409(self, client):
        _create_portfolio(client)
        _post_transaction(client, "portfolio-1", id="txn-1", type="DEPOSIT", totalAmount=10)

        response = _post_transaction(client, "portfolio-1", id="txn-1", type="DEPOSIT", totalAmount=10)

        assert response.status_code == 409

    def test_transactions_are_listed_newest_first(self, client):
        _create_portfolio(client)
        _post_transaction(client, "portfolio-1", id="txn-old", type="DEPOSIT", totalAmount=1, occurredAt="2024-01-01")
        _post_transaction(client, "portfolio-1", id="txn-new", type="DEPOSIT", totalAmount=1, occurredAt="2024-02-01")

        items = client.get("/api/portfolios/portfolio-1/transactions").json()["items"]

        assert [item["id"] for item in items] == ["txn-new", "txn-old"]
        assert items[0]["totalAmount"] == 1


class TestDashboardSummaryEndpoint:

    def test_missing_portfolio_id_is_invalid_query(self, client):
        response = client.get("/api/dashboard/summary")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_QUERY"

    def test_unknown_portfolio_returns_404(self, client):
        response = client.get("/api/dashboard/summary", params={"portfolioId": "missing"})

        assert response.status_code == 404

    def test_summary_with_quotes(self, client, test_app, mock_quote_provider):
        _use_provider(test_app, mock_quote_provider)
        _create_portfolio(client)
        _post_transaction(client, "portfolio-1", id="txn-1", type="BUY", symbol="AAPL", quantity=10, price=150)

        response = client.get("/api/dashboard/summary", params={"portfolioId": "portfolio-1"})

        assert response.status_code == 200
        assert response.json() == {
            "totalValue": 1600.0,
            "investedValue": 1500.0,
            "dayChange": 20.0,
            "totalGainLoss": 100.0,
            "positionsCount": 1,
        }

    def test_summary_with_failing_provider_reports_warning(self, client, test_app):
        provider = Mock(spec=QuoteProvider)
        provider.get_quote = AsyncMock(side_effect=RuntimeError("provider down"))
        _use_provider(test_app, provider)
        _create_portfolio(client)
        _post_transaction(client, "portfolio-1", id="txn-1", type="BUY", symbol="AAPL", quantity=2, price=100)

        response = client.get("/api/dashboard/summary", params={"portfolioId": "portfolio-1"})
        body = response.json()

        assert response.status_code == 200
        assert body["totalValue"] == 200
        assert body["warnings"] == [{
            "code": "QUOTE_UNAVAILABLE",
            "symbol": "AAPL",
            "fallbackPrice": 100,
            "fallbackStrategy": "USE_AVERAGE_COST",
        }]


class TestStockEndpoints:

    def test_quote(self, client):
        response = client.get("/api/stocks/quote", params={"symbol": "aapl"})
        body = response.json()

        assert response.status_code == 200
        assert body["symbol"] == "AAPL"
        assert body["currency"] == "USD"
        assert "asOf" in body

    @pytest.mark.parametrize("symbol", [None, "", "1ABC", "TOO-LONG-SYMBOL", "AA PL"])
    def test_invalid_symbol(self, client, symbol):
        params = {} if symbol is None else {"symbol": symbol}

        response = client.get("/api/stocks/quote", params=params)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SYMBOL"

    def test_history(self, client):
        response = client.get("/api/stocks/history", params={"symbol": "AAPL", "range": "5d"})

        assert response.status_code == 200
        assert response.json()["range"] == "5D"
        assert len(response.json()["points"]) == 5

    def test_invalid_range(self, client):
        response = client.get("/api/stocks/history", params={"symbol": "AAPL", "range": "10Y"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INVALID_RANGE"
        assert error["details"]["supportedRanges"] == ["1D", "5D", "1M", "6M", "1Y"]

    def test_provider_failure_returns_502(self, client, test_app):
        provider = Mock(spec=QuoteProvider)
        provider.get_quote = AsyncMock(side_effect=RuntimeError("provider down"))
        _use_provider(test_app, provider)

        response = client.get("/api/stocks/quote", params={"symbol": "AAPL"})

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "QUOTE_PROVIDER_ERROR"


class TestDashboardPage:
    """Test the server-rendered dashboard."""

    def test_empty_state(self, client):
        response = client.get("/dashboard")

        assert response.status_code == 200
        assert "No portfolios yet" in response.text

    def test_defaults_to_first_portfolio(self, client, test_app, mock_quote_provider):
        _use_provider(test_app, mock_quote_provider)
        _create_portfolio(client)
        _post_transaction(client, "portfolio-1", id="txn-1", type="BUY", symbol="AAPL", quantity=10, price=150)

        response = client.get("/dashboard")

        assert response.status_code == 200
        assert 'data-testid="dashboard-summary"' in response.text
        assert "$1,600.00" in response.text
        assert "+6.67%" in response.text
        assert 'data-testid="holdings-table"' in response.text
        assert "10.0000" in response.text

    def test_unknown_portfolio_returns_404_page(self, client):
        _create_portfolio(client)

        response = client.get("/dashboard", params={"portfolioId": "missing"})

        assert response.status_code == 404
        assert "Portfolio not found: missing" in response.text

    def test_portfolio_without_activity_shows_empty_tables(self, client):
        _create_portfolio(client)

        response = client.get("/dashboard", params={"portfolioId": "portfolio-1"})

        assert 'data-testid="holdings-empty"' in response.text
        assert 'data-testid="transactions-empty"' in response.text
