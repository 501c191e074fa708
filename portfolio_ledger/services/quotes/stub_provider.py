"""Deterministic offline quote provider."""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from portfolio_ledger.core.constants import QuoteConstants


def _normalize_symbol(symbol: Any) -> str:
    return str(symbol or "").strip().upper()


def _hash_symbol(symbol: str) -> int:
    return sum(ord(char) for char in symbol)


class StubQuoteProvider:
    """
    Quote provider that derives prices from the symbol's characters.

    The same symbol always yields the same quote, which keeps local runs and
    tests reproducible without network access.
    """

    async def get_quote(self, symbol: str) -> Dict[str, Any]:
        normalized = _normalize_symbol(symbol)
        base = _hash_symbol(normalized)
        price = round(50 + (base % 350) + (base % 100) / 100, 2)
        return {
            "symbol": normalized,
            "price": price,
            "currency": QuoteConstants.DEFAULT_CURRENCY,
            "asOf": datetime.now(timezone.utc).isoformat(),
        }

    async def get_history(self, symbol: str, history_range: str) -> Dict[str, Any]:
        normalized = _normalize_symbol(symbol)
        points = QuoteConstants.RANGE_POINTS.get(history_range, 0)
        seed = _hash_symbol(normalized) % 40
        now = datetime.now(timezone.utc)

        data = []
        # Oldest point first, one day apart, ending now
        for index in range(points - 1, -1, -1):
            data.append({
                "at": (now - timedelta(days=index)).isoformat(),
                "price": round(100 + seed + (points - index) * 0.75, 2),
            })

        return {
            "symbol": normalized,
            "range": history_range,
            "currency": QuoteConstants.DEFAULT_CURRENCY,
            "points": data,
        }
