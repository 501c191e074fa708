"""Business metrics for OpenTelemetry instrumentation.

- Counters for ledger writes, quote requests and valuation fallbacks
- Histograms for write, quote and summary durations
- Attributes limited to low-cardinality values (operation, type, status)
"""
import time
from contextlib import contextmanager
from functools import lru_cache
from typing import Generator, Optional

from opentelemetry import metrics

_meter = metrics.get_meter("PortfolioLedger.Business", "0.1.0")

# Counters
_ledger_mutations_total = _meter.create_counter(
    name="ledger_mutations_total",
    description="Total number of ledger write operations",
    unit="1"
)

_quote_requests_total = _meter.create_counter(
    name="quote_requests_total",
    description="Total number of quote requests made while valuing portfolios",
    unit="1"
)

_quote_fallbacks_total = _meter.create_counter(
    name="quote_fallbacks_total",
    description="Positions valued at average cost because no usable quote was available",
    unit="1"
)

# Histograms
_ledger_mutation_duration = _meter.create_histogram(
    name="ledger_mutation_duration_seconds",
    description="Duration of ledger write operations in seconds",
    unit="s"
)

_quote_request_duration = _meter.create_histogram(
    name="quote_request_duration_seconds",
    description="Duration of quote fetches in seconds",
    unit="s"
)

_summary_duration = _meter.create_histogram(
    name="portfolio_summary_duration_seconds",
    description="Duration of portfolio summary computations in seconds",
    unit="s"
)


class MetricsService:
    """Service for recording business metrics."""

    def increment_ledger_mutations(
        self,
        operation: str,
        transaction_type: Optional[str] = None,
        status: str = "success"
    ) -> None:
        attributes = {"operation": operation, "status": status}
        if transaction_type:
            attributes["transaction_type"] = transaction_type
        _ledger_mutations_total.add(1, attributes)

    def record_ledger_mutation_duration(
        self,
        duration_seconds: float,
        operation: str,
        status: str = "success"
    ) -> None:
        _ledger_mutation_duration.record(duration_seconds, {"operation": operation, "status": status})

    def record_quote_request(self, duration_seconds: float, status: str = "success") -> None:
        """Count one quote fetch and record how long it took."""
        _quote_requests_total.add(1, {"status": status})
        _quote_request_duration.record(duration_seconds, {"status": status})

    def increment_quote_fallbacks(self, count: int = 1) -> None:
        if count:
            _quote_fallbacks_total.add(count)

    def record_summary_duration(self, duration_seconds: float, positions: int) -> None:
        _summary_duration.record(duration_seconds, {"has_positions": positions > 0})

    @contextmanager
    def track_ledger_mutation(
        self,
        operation: str,
        transaction_type: Optional[str] = None
    ) -> Generator[None, None, None]:
        """Context manager for tracking ledger write metrics."""
        start_time = time.perf_counter()
        status = "success"
        try:
            yield
        except Exception:
            status = "error"
            raise
        finally:
            duration = time.perf_counter() - start_time
            self.increment_ledger_mutations(operation, transaction_type, status)
            self.record_ledger_mutation_duration(duration, operation, status)


@lru_cache()
def get_metrics_service() -> MetricsService:
    """Get singleton metrics service instance."""
    return MetricsService()
