"""
Unit tests for ValuationService.

Tests cover:
- Aggregating market value, invested value, day change and gain/loss
- Average-cost fallback and warnings for unusable quotes
- Quote timeouts and provider exceptions
- Report rounding and holding-order folding
- Summaries for stored portfolios
"""
import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from portfolio_ledger.core.errors import ErrorCode, LedgerError
from portfolio_ledger.services.quotes.base import QuoteProvider
from portfolio_ledger.services.valuation_service import PortfolioSummary, ValuationService, value_position

pytestmark = pytest.mark.unit


def _holding(symbol, quantity, average_cost):
    return {"symbol": symbol, "quantity": quantity, "average_cost": average_cost}


def _provider_with_quotes(quotes):
    """Mock provider answering from a symbol -> quote map; missing symbols raise."""
    provider = Mock(spec=QuoteProvider)

    async def get_quote(symbol):
        if symbol not in quotes:
            raise RuntimeError(f"no quote for {symbol}")
        return quotes[symbol]

    provider.get_quote = AsyncMock(side_effect=get_quote)
    return provider


@pytest.fixture
def two_position_holdings():
    return [_holding("AAPL", 2, 100), _holding("MSFT", 1, 150)]


class TestComputeSummary:
    """Test folding holdings and quotes into totals."""

    @pytest.mark.asyncio
    async def test_totals_across_positions(self, two_position_holdings):
        """AAPL 2 @ 100 quoted 130/125 and MSFT 1 @ 150 quoted 200/195."""
        provider = _provider_with_quotes({
            "AAPL": {"symbol": "AAPL", "price": 130, "previousClose": 125},
            "MSFT": {"symbol": "MSFT", "price": 200, "previousClose": 195},
        })
        service = ValuationService(provider)

        summary = await service.compute_summary("portfolio-1", two_position_holdings)

        assert summary.total_value == 460
        assert summary.invested_value == 350
        assert summary.day_change == 15
        assert summary.total_gain_loss == 110
        assert summary.positions_count == 2
        assert summary.warnings == []

    @pytest.mark.asyncio
    async def test_missing_quote_falls_back_to_average_cost(self, two_position_holdings):
        provider = _provider_with_quotes({
            "AAPL": {"symbol": "AAPL", "price": 130, "previousClose": 125},
        })
        service = ValuationService(provider)

        summary = await service.compute_summary("portfolio-1", two_position_holdings)

        assert summary.total_value == 410
        assert summary.invested_value == 350
        assert summary.day_change == 10
        assert summary.total_gain_loss == 60
        assert summary.warnings == [{
            "code": "QUOTE_UNAVAILABLE",
            "symbol": "MSFT",
            "fallbackPrice": 150,
            "fallbackStrategy": "USE_AVERAGE_COST",
        }]

    @pytest.mark.asyncio
    async def test_empty_portfolio(self):
        provider = _provider_with_quotes({})
        summary = await ValuationService(provider).compute_summary("portfolio-1", [])

        assert summary.to_dict() == {
            "totalValue": 0.0,
            "investedValue": 0.0,
            "dayChange": 0.0,
            "totalGainLoss": 0.0,
            "positionsCount": 0,
        }
        provider.get_quote.assert_not_called()

    @pytest.mark.asyncio
    async def test_slow_quote_times_out_to_fallback(self):
        provider = Mock(spec=QuoteProvider)

        async def slow_quote(symbol):
            await asyncio.sleep(1)
            return {"symbol": symbol, "price": 999}

        provider.get_quote = AsyncMock(side_effect=slow_quote)
        service = ValuationService(provider, quote_timeout_seconds=0.01)

        summary = await service.compute_summary("portfolio-1", [_holding("AAPL", 1, 100)])

        assert summary.total_value == 100
        assert summary.warnings[0]["symbol"] == "AAPL"

    @pytest.mark.asyncio
    async def test_quotes_are_fetched_once_per_holding(self, two_position_holdings):
        provider = _provider_with_quotes({
            "AAPL": {"symbol": "AAPL", "price": 130},
            "MSFT": {"symbol": "MSFT", "price": 200},
        })

        await ValuationService(provider).compute_summary("portfolio-1", two_position_holdings)

        assert provider.get_quote.await_count == 2

    @pytest.mark.asyncio
    async def test_warnings_follow_holding_order(self):
        """Fallback warnings are listed in holding order even when quotes finish out of order."""
        provider = Mock(spec=QuoteProvider)

        async def get_quote(symbol):
            await asyncio.sleep(0.02 if symbol == "AAA" else 0)
            raise RuntimeError("down")

        provider.get_quote = AsyncMock(side_effect=get_quote)
        holdings = [_holding("AAA", 1, 1), _holding("BBB", 1, 2)]

        summary = await ValuationService(provider).compute_summary("portfolio-1", holdings)

        assert [warning["symbol"] for warning in summary.warnings] == ["AAA", "BBB"]

    @pytest.mark.asyncio
    async def test_report_values_are_rounded_half_up(self):
        provider = _provider_with_quotes({"AAPL": {"symbol": "AAPL", "price": 1.005}})

        summary = await ValuationService(provider).compute_summary("portfolio-1", [_holding("AAPL", 1, 1)])

        assert summary.total_value == 1.01
        assert summary.invested_value == 1.0


class TestValuePosition:
    """Test per-holding valuation rules."""

    def test_previous_close_defaults_to_price(self):
        contribution = value_position(_holding("AAPL", 2, 100), {"symbol": "AAPL", "price": 130})

        assert contribution.day_change == 0
        assert contribution.gain_loss == 60
        assert contribution.warning is None

    @pytest.mark.parametrize("quote", [
        None,
        "not a quote",
        {"symbol": "MSFT", "price": 130},
        {"symbol": "AAPL", "price": None},
        {"symbol": "AAPL", "price": float("nan")},
        {"symbol": "AAPL", "price": "n/a"},
        {"price": 130},
    ])
    def test_unusable_quotes_fall_back(self, quote):
        contribution = value_position(_holding("AAPL", 2, 100), quote)

        assert contribution.market_value == 200
        assert contribution.day_change == 0
        assert contribution.gain_loss == 0
        assert contribution.warning["code"] == "QUOTE_UNAVAILABLE"
        assert contribution.warning["fallbackPrice"] == 100

    def test_symbol_match_is_case_insensitive(self):
        contribution = value_position(_holding("AAPL", 1, 100), {"symbol": "aapl", "price": 110})

        assert contribution.warning is None
        assert contribution.market_value == 110


class TestPortfolioSummaryToDict:

    def test_warnings_are_omitted_when_empty(self):
        summary = PortfolioSummary(1.0, 1.0, 0.0, 0.0, 1)

        assert "warnings" not in summary.to_dict()

    def test_warnings_are_included_when_present(self):
        warning = {"code": "QUOTE_UNAVAILABLE", "symbol": "AAPL"}
        summary = PortfolioSummary(1.0, 1.0, 0.0, 0.0, 1, warnings=[warning])

        assert summary.to_dict()["warnings"] == [warning]


class TestSummarizePortfolio:
    """Test summaries for stored portfolios (uses the per-test database)."""

    @pytest.mark.asyncio
    async def test_unknown_portfolio_raises_not_found(self, ledger, stub_provider):
        with pytest.raises(LedgerError) as exc_info:
            await ValuationService(stub_provider).summarize_portfolio(ledger, "missing")

        assert exc_info.value.code == ErrorCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_summary_uses_stored_holdings(self, ledger, portfolio, mock_quote_provider):
        await ledger.create_transaction({
            "id": "txn-1",
            "portfolioId": portfolio["id"],
            "type": "BUY",
            "symbol": "AAPL",
            "quantity": 10,
            "price": 150,
        })

        summary = await ValuationService(mock_quote_provider).summarize_portfolio(ledger, portfolio["id"])

        assert summary.positions_count == 1
        assert summary.invested_value == 1500
        assert summary.total_value == 1600
        assert summary.day_change == 20
        assert summary.total_gain_loss == 100


class TestValuationMetrics:

    @pytest.mark.asyncio
    async def test_fallbacks_and_quote_statuses_are_recorded(self, two_position_holdings):
        metrics = Mock()
        provider = _provider_with_quotes({"AAPL": {"symbol": "AAPL", "price": 130}})
        service = ValuationService(provider, metrics=metrics)

        await service.compute_summary("portfolio-1", two_position_holdings)

        metrics.increment_quote_fallbacks.assert_called_once_with(1)
        statuses = sorted(call.args[1] if len(call.args) > 1 else "success"
                          for call in metrics.record_quote_request.call_args_list)
        assert statuses == ["error", "success"]
        metrics.record_summary_duration.assert_called_once()
