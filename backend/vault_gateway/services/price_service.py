"""Price service for fetching multi-currency crypto prices."""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

import httpx

from vault_gateway.errors import MarketDataError
from vault_gateway.models import PriceTable

module_logger = logging.getLogger(__name__)


class PriceService:
    """Service responsible for retrieving price tables from the market data API."""

    def __init__(
        self,
        base_url: str,
        currencies: Iterable[str],
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.base_url: str = base_url
        self.currencies: List[str] = list(currencies)
        self.timeout: float = float(timeout)
        self.transport = transport
        self.logger = logger or module_logger

    @property
    def endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}/data/pricemulti"

    async def get_prices(
        self,
        symbols: Iterable[str],
        currencies: Optional[Iterable[str]] = None,
    ) -> PriceTable:
        """Fetch a symbol -> currency -> price table in one batched request.

        Raises:
            MarketDataError: On transport failure, timeout, a non-success
                status, or a body that is not a price table.
        """
        symbol_list = sorted({s for s in symbols if s})
        if not symbol_list:
            return {}

        currency_list = list(currencies) if currencies is not None else self.currencies
        params = {
            "fsyms": ",".join(symbol_list),
            "tsyms": ",".join(currency_list),
        }
        headers = {"Content-type": "application/json; charset=UTF-8"}

        self.logger.info(
            "Fetching prices for symbols: %s in currencies: %s",
            params["fsyms"],
            params["tsyms"],
        )

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.get(self.endpoint, params=params, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            self.logger.error("Failed to fetch crypto prices: %s", str(exc))
            raise MarketDataError(f"Crypto market data error: {exc}") from exc
        except ValueError as exc:
            self.logger.error("Crypto price response is not valid JSON: %s", str(exc))
            raise MarketDataError(f"Crypto market data error: {exc}") from exc

        prices = self._parse_table(data)
        self.logger.debug("Fetched %d price rows", len(prices))
        return prices

    def _parse_table(self, data: Any) -> PriceTable:
        if not isinstance(data, dict):
            raise MarketDataError("Crypto market data error: unexpected response shape")

        if data.get("Response") == "Error":
            message = data.get("Message", "unknown error")
            self.logger.error("Market data API returned an error: %s", message)
            raise MarketDataError(f"Crypto market data error: {message}")

        prices: PriceTable = {}
        for symbol, row in data.items():
            if not isinstance(row, dict):
                raise MarketDataError(
                    f"Crypto market data error: unexpected row for {symbol}"
                )
            parsed: Dict[str, float] = {}
            for currency, value in row.items():
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise MarketDataError(
                        f"Crypto market data error: non-numeric {currency} price for {symbol}"
                    )
                if math.isfinite(value):
                    parsed[currency] = float(value)
            prices[symbol] = parsed
        return prices
