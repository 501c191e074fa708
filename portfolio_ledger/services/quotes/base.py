"""Quote provider contract consumed by the valuation and stock endpoints."""
from typing import Any, Awaitable, Dict, Protocol, Union

QuotePayload = Dict[str, Any]


class QuoteProvider(Protocol):
    """
    Source of current quotes and price history.

    ``get_quote`` returns ``{symbol, price, currency?, previousClose?, asOf?}``
    and ``get_history`` returns ``{symbol, range, currency, points}`` where
    each point is ``{at, price}``. Either may raise; implementations may be
    sync or async.
    """

    def get_quote(self, symbol: str) -> Union[QuotePayload, Awaitable[QuotePayload]]:
        ...

    def get_history(self, symbol: str, history_range: str) -> Union[QuotePayload, Awaitable[QuotePayload]]:
        ...
