"""Stock quote and history endpoints."""
import inspect
import logging
import re

from fastapi import APIRouter, Depends, Query

from portfolio_ledger.api.dependencies import get_quote_provider
from portfolio_ledger.core.constants import QuoteConstants
from portfolio_ledger.core.errors import ErrorCode, LedgerError
from portfolio_ledger.schemas.dashboard import ErrorResponse, HistoryResponse, QuoteResponse
from portfolio_ledger.services.quotes.base import QuoteProvider

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/stocks",
    tags=["stocks"],
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}}
)

_SYMBOL_RE = re.compile(QuoteConstants.SYMBOL_PATTERN)


def normalize_query_symbol(raw: str | None) -> str:
    symbol = (raw or "").strip().upper()
    if not symbol or not _SYMBOL_RE.match(symbol):
        raise LedgerError(
            ErrorCode.INVALID_SYMBOL,
            'Query parameter "symbol" must be a valid ticker symbol.'
        )
    return symbol


def normalize_query_range(raw: str | None) -> str:
    history_range = (raw or "").strip().upper()
    if history_range not in QuoteConstants.SUPPORTED_RANGES:
        raise LedgerError(
            ErrorCode.INVALID_RANGE,
            'Query parameter "range" is unsupported.',
            {"supportedRanges": list(QuoteConstants.SUPPORTED_RANGES)}
        )
    return history_range


async def _call_provider(method, *args):
    """Invoke a sync or async provider method, classifying failures."""
    try:
        result = method(*args)
        if inspect.isawaitable(result):
            result = await result
        return result
    except Exception as ex:
        logger.error(f"Quote provider failed for {args}: {ex}", exc_info=True)
        raise LedgerError(ErrorCode.QUOTE_PROVIDER_ERROR, "Stock quote provider request failed.") from ex


@router.get("/quote", response_model=QuoteResponse)
async def get_quote(
    symbol: str | None = Query(None),
    provider: QuoteProvider = Depends(get_quote_provider)
):
    normalized = normalize_query_symbol(symbol)
    quote = await _call_provider(provider.get_quote, normalized)
    return {
        "symbol": quote.get("symbol"),
        "price": quote.get("price"),
        "currency": quote.get("currency"),
        "as_of": quote.get("asOf"),
    }


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    symbol: str | None = Query(None),
    range: str | None = Query(None),
    provider: QuoteProvider = Depends(get_quote_provider)
):
    normalized = normalize_query_symbol(symbol)
    history_range = normalize_query_range(range)
    history = await _call_provider(provider.get_history, normalized, history_range)
    return {
        "symbol": history.get("symbol"),
        "range": history.get("range"),
        "currency": history.get("currency"),
        "points": history.get("points") or [],
    }
