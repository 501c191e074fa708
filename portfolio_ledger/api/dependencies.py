"""FastAPI dependencies wiring the ledger, valuation and quote services."""
from functools import lru_cache

from fastapi import Depends

from portfolio_ledger.core.config import settings
from portfolio_ledger.db.session import AsyncSessionLocal
from portfolio_ledger.services.ledger_service import LedgerService
from portfolio_ledger.services.quotes.base import QuoteProvider
from portfolio_ledger.services.quotes.provider import create_quote_provider
from portfolio_ledger.services.valuation_service import ValuationService


@lru_cache
def get_ledger_service() -> LedgerService:
    """Shared LedgerService; its per-position locks must outlive a request."""
    return LedgerService(AsyncSessionLocal)


@lru_cache
def get_quote_provider() -> QuoteProvider:
    """Quote provider selected by ``settings.stock_provider``."""
    return create_quote_provider(settings)


def get_valuation_service(
    quote_provider: QuoteProvider = Depends(get_quote_provider)
) -> ValuationService:
    """Dependency to get ValuationService instance."""
    return ValuationService(quote_provider, quote_timeout_seconds=settings.quote_timeout_seconds)
