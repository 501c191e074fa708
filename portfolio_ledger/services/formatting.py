"""Display formatting for the dashboard page."""
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from portfolio_ledger.services.normalization import finite_or_none

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}


def format_currency(value: Any, currency: str = "USD") -> str:
    """Format an amount with two decimals and a currency sign, e.g. -$1,234.50."""
    amount = finite_or_none(value) or 0.0
    code = (currency or "USD").upper()
    symbol = CURRENCY_SYMBOLS.get(code)
    digits = f"{abs(amount):,.2f}"
    sign = "-" if amount < 0 and digits != "0.00" else ""
    if symbol is None:
        return f"{sign}{code} {digits}"
    return f"{sign}{symbol}{digits}"


def format_percent(ratio: Any) -> str:
    """Format a ratio as a signed percentage, e.g. 0.0425 -> +4.25%."""
    value = finite_or_none(ratio) or 0.0
    sign = "+" if value > 0 else ""
    return f"{sign}{value * 100:.2f}%"


def format_quantity(value: Any) -> str:
    return f"{finite_or_none(value) or 0.0:.4f}"


def format_transaction_date(value: Optional[datetime]) -> str:
    if not isinstance(value, datetime):
        return "Invalid date"
    return value.date().isoformat()


def to_summary_view_model(summary: Mapping[str, Any], currency: str = "USD") -> Dict[str, str]:
    """Display strings for the summary cards; percentages are relative to invested value."""
    invested_value = finite_or_none(summary.get("investedValue")) or 0.0
    day_change = finite_or_none(summary.get("dayChange")) or 0.0
    total_gain_loss = finite_or_none(summary.get("totalGainLoss")) or 0.0

    def to_ratio(value: float) -> float:
        return value / invested_value if invested_value else 0.0

    return {
        "total_value_text": format_currency(summary.get("totalValue"), currency),
        "invested_value_text": format_currency(invested_value, currency),
        "day_change_text": format_currency(day_change, currency),
        "day_change_percent_text": format_percent(to_ratio(day_change)),
        "total_gain_loss_text": format_currency(total_gain_loss, currency),
        "total_gain_loss_percent_text": format_percent(to_ratio(total_gain_loss)),
    }
