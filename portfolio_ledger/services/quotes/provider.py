"""Quote provider selection."""
import logging

from portfolio_ledger.core.config import Settings
from portfolio_ledger.core.constants import QuoteConstants
from portfolio_ledger.services.quotes.base import QuoteProvider
from portfolio_ledger.services.quotes.live_provider import LiveQuoteProvider
from portfolio_ledger.services.quotes.stub_provider import StubQuoteProvider

logger = logging.getLogger(__name__)


def create_quote_provider(settings: Settings) -> QuoteProvider:
    """Build the live provider when ``stock_provider`` is "live", otherwise the stub."""
    provider_name = (settings.stock_provider or QuoteConstants.STUB).strip().lower()

    if provider_name == QuoteConstants.LIVE:
        logger.info(f"Using live quote provider at {settings.stock_api_base_url}")
        return LiveQuoteProvider(
            base_url=settings.stock_api_base_url,
            api_key=settings.stock_api_key,
            timeout_seconds=settings.stock_api_timeout_seconds
        )

    logger.info("Using stub quote provider")
    return StubQuoteProvider()
