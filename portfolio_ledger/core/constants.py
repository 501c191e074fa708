"""
Constants for transaction types, quote ranges, and valuation rounding.
"""

class TransactionTypes:
    """Ledger transaction types."""

    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"

    ALL = (BUY, SELL, DEPOSIT, WITHDRAWAL)

    # Types that derive holdings from symbol/quantity/price
    POSITION = (BUY, SELL)


class QuoteConstants:
    """Quote provider ranges and defaults."""

    SUPPORTED_RANGES = ("1D", "5D", "1M", "6M", "1Y")

    # Number of history points returned per range
    RANGE_POINTS = {
        "1D": 1,
        "5D": 5,
        "1M": 30,
        "6M": 26,
        "1Y": 52,
    }

    DEFAULT_CURRENCY = "USD"

    # Ticker pattern accepted by the stock endpoints
    SYMBOL_PATTERN = r"^[A-Z][A-Z0-9.-]{0,9}$"

    STUB = "stub"
    LIVE = "live"


class ValuationConstants:
    """Rounding scales and warning codes used by ledger and summary."""

    # Auto-computed transaction totals keep sub-cent precision
    LEDGER_DECIMAL_PLACES = 8

    # Reported summary figures
    REPORT_DECIMAL_PLACES = 2

    QUOTE_UNAVAILABLE = "QUOTE_UNAVAILABLE"
    USE_AVERAGE_COST = "USE_AVERAGE_COST"
