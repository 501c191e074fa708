"""
Portfolio valuation summary built from stored holdings and live quotes.
"""
import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from portfolio_ledger.core.constants import ValuationConstants
from portfolio_ledger.services.ledger_service import LedgerService
from portfolio_ledger.services.metrics_service import MetricsService, get_metrics_service
from portfolio_ledger.services.normalization import finite_or_none, normalize_required_text, round_to
from portfolio_ledger.services.quotes.base import QuoteProvider

logger = logging.getLogger(__name__)


@dataclass
class PositionContribution:
    """One holding's share of the portfolio totals."""
    symbol: str
    invested_value: float
    market_value: float
    day_change: float = 0.0
    gain_loss: float = 0.0
    warning: Optional[Dict[str, Any]] = None


@dataclass
class PortfolioSummary:
    """Aggregated, report-rounded portfolio figures."""
    total_value: float
    invested_value: float
    day_change: float
    total_gain_loss: float
    positions_count: int
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "totalValue": self.total_value,
            "investedValue": self.invested_value,
            "dayChange": self.day_change,
            "totalGainLoss": self.total_gain_loss,
            "positionsCount": self.positions_count,
        }
        if self.warnings:
            payload["warnings"] = self.warnings
        return payload


def _usable_price(quote: Any, symbol: str) -> Optional[float]:
    """Current price of a quote that matches the holding, else None."""
    if not isinstance(quote, Mapping):
        return None
    quote_symbol = quote.get("symbol")
    if not isinstance(quote_symbol, str) or quote_symbol.upper() != str(symbol).upper():
        return None
    return finite_or_none(quote.get("price"))


def value_position(holding: Mapping[str, Any], quote: Any) -> PositionContribution:
    """
    Value one holding against its quote.

    An unusable quote values the position at its average cost, so it adds
    nothing to day change or gain/loss, and carries a QUOTE_UNAVAILABLE
    warning.
    """
    symbol = holding["symbol"]
    quantity = finite_or_none(holding.get("quantity")) or 0.0
    average_cost = finite_or_none(holding.get("average_cost")) or 0.0
    invested_value = quantity * average_cost

    current_price = _usable_price(quote, symbol)
    if current_price is None:
        return PositionContribution(
            symbol=symbol,
            invested_value=invested_value,
            market_value=quantity * average_cost,
            warning={
                "code": ValuationConstants.QUOTE_UNAVAILABLE,
                "symbol": symbol,
                "fallbackPrice": average_cost,
                "fallbackStrategy": ValuationConstants.USE_AVERAGE_COST,
            }
        )

    previous_close = finite_or_none(quote.get("previousClose"))
    if previous_close is None:
        previous_close = current_price

    return PositionContribution(
        symbol=symbol,
        invested_value=invested_value,
        market_value=quantity * current_price,
        day_change=quantity * (current_price - previous_close),
        gain_loss=quantity * (current_price - average_cost)
    )


class ValuationService:
    """
    Computes dashboard summaries for portfolios.

    Quotes are requested concurrently, one per holding. A failing, slow or
    mismatched quote only degrades its own position; the summary never fails
    because of the quote provider.
    """

    def __init__(
        self,
        quote_provider: QuoteProvider,
        quote_timeout_seconds: float = 5.0,
        metrics: Optional[MetricsService] = None
    ):
        self.quote_provider = quote_provider
        self.quote_timeout_seconds = quote_timeout_seconds
        self.metrics = metrics or get_metrics_service()

    async def compute_summary(
        self,
        portfolio_id: str,
        holdings: Sequence[Mapping[str, Any]]
    ) -> PortfolioSummary:
        """
        Fold holdings and their quotes into portfolio totals.

        Contributions are summed in holding order, independent of the order
        in which quotes arrive.
        """
        start_time = time.perf_counter()
        quotes = await asyncio.gather(
            *(self._fetch_quote(holding["symbol"]) for holding in holdings)
        )

        total_value = 0.0
        invested_value = 0.0
        day_change = 0.0
        total_gain_loss = 0.0
        warnings: List[Dict[str, Any]] = []

        for holding, quote in zip(holdings, quotes):
            contribution = value_position(holding, quote)
            invested_value += contribution.invested_value
            total_value += contribution.market_value
            day_change += contribution.day_change
            total_gain_loss += contribution.gain_loss
            if contribution.warning is not None:
                warnings.append(contribution.warning)

        if warnings:
            self.metrics.increment_quote_fallbacks(len(warnings))
            logger.warning(
                f"Portfolio {portfolio_id}: quotes unavailable for "
                f"{', '.join(w['symbol'] for w in warnings)}; valued at average cost"
            )

        self.metrics.record_summary_duration(time.perf_counter() - start_time, len(holdings))

        places = ValuationConstants.REPORT_DECIMAL_PLACES
        return PortfolioSummary(
            total_value=round_to(total_value, places),
            invested_value=round_to(invested_value, places),
            day_change=round_to(day_change, places),
            total_gain_loss=round_to(total_gain_loss, places),
            positions_count=len(holdings),
            warnings=warnings
        )

    async def summarize_portfolio(self, ledger: LedgerService, portfolio_id: Any) -> PortfolioSummary:
        """Summary for a stored portfolio; raises NOT_FOUND when it does not exist."""
        normalized_id = normalize_required_text(portfolio_id, "portfolioId")
        await ledger.get_portfolio_by_id(normalized_id)
        holdings = await ledger.list_holdings_by_portfolio(normalized_id)
        return await self.compute_summary(normalized_id, holdings)

    async def _fetch_quote(self, symbol: str) -> Optional[Any]:
        """Fetch one quote; any failure or timeout yields None."""
        start_time = time.perf_counter()
        try:
            result = self.quote_provider.get_quote(symbol)
            if inspect.isawaitable(result):
                result = await asyncio.wait_for(result, timeout=self.quote_timeout_seconds)
            self.metrics.record_quote_request(time.perf_counter() - start_time)
            return result
        except asyncio.TimeoutError:
            logger.warning(f"Quote for {symbol} timed out after {self.quote_timeout_seconds}s")
            self.metrics.record_quote_request(time.perf_counter() - start_time, "timeout")
        except Exception as ex:
            logger.warning(f"Quote for {symbol} failed: {ex}")
            self.metrics.record_quote_request(time.perf_counter() - start_time, "error")
        return None
