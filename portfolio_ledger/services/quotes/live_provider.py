"""HTTP-backed quote provider."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from portfolio_ledger.core.constants import QuoteConstants
from portfolio_ledger.core.errors import QuoteProviderError
from portfolio_ledger.services.normalization import finite_or_none

logger = logging.getLogger(__name__)


class LiveQuoteProvider:
    """Quote provider backed by a JSON market data API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 10,
        max_concurrency: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the live quote provider.

        Args:
            base_url: Market data API base URL
            api_key: API token sent as the ``token`` query parameter
            timeout_seconds: Request timeout in seconds
            max_concurrency: Maximum number of in-flight requests
            transport: Optional httpx transport (used by tests)

        Raises:
            QuoteProviderError: If the base URL or API key is missing
        """
        if not base_url or not api_key:
            raise QuoteProviderError("Live stock provider requires STOCK_API_BASE_URL and STOCK_API_KEY.")

        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout_seconds
        self._transport = transport
        self._semaphore = asyncio.Semaphore(max_concurrency)  # Limit concurrent requests

    async def get_quote(self, symbol: str) -> Dict[str, Any]:
        payload = await self._fetch_json("/quote", {"symbol": symbol})

        quote: Dict[str, Any] = {
            "symbol": payload.get("symbol") or symbol,
            "price": finite_or_none(payload.get("price")),
            "currency": payload.get("currency") or QuoteConstants.DEFAULT_CURRENCY,
            "asOf": payload.get("asOf") or datetime.now(timezone.utc).isoformat(),
        }
        previous_close = finite_or_none(payload.get("previousClose"))
        if previous_close is not None:
            quote["previousClose"] = previous_close
        return quote

    async def get_history(self, symbol: str, history_range: str) -> Dict[str, Any]:
        payload = await self._fetch_json("/history", {"symbol": symbol, "range": history_range})
        points = payload.get("points")
        return {
            "symbol": payload.get("symbol") or symbol,
            "range": history_range,
            "currency": payload.get("currency") or QuoteConstants.DEFAULT_CURRENCY,
            "points": points if isinstance(points, list) else [],
        }

    async def _fetch_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        GET a JSON document from the API.

        Raises:
            QuoteProviderError: On transport errors, non-2xx responses or
                non-object bodies
        """
        query = {key: str(value) for key, value in params.items() if value not in (None, "")}
        query["token"] = self.api_key
        url = f"{self.base_url}{path}"

        async with self._semaphore:
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.get(url, params=query)
            except httpx.HTTPError as ex:
                logger.error(f"Error requesting {path} for {params.get('symbol')}: {ex}")
                raise QuoteProviderError(f"Live stock provider request failed: {ex}") from ex

        if not response.is_success:
            logger.warning(
                f"HTTP error fetching {path} for {params.get('symbol')}: "
                f"{response.status_code} - {response.reason_phrase}"
            )
            raise QuoteProviderError(
                f"Live stock provider request failed with status {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as ex:
            raise QuoteProviderError("Live stock provider returned invalid JSON") from ex

        if not isinstance(payload, dict):
            raise QuoteProviderError("Live stock provider returned an unexpected payload")
        return payload
