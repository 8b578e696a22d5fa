"""Balance enrichment: prices and valuations for vault assets and accounts."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from vault_gateway.errors import MarketDataError
from vault_gateway.models import EnrichedAsset, PriceTable, RawAsset
from vault_gateway.services.price_service import PriceService
from vault_gateway.services.valuation import (
    aggregate_totals,
    collect_symbols,
    valuate_asset,
)

module_logger = logging.getLogger(__name__)


class EnrichmentService:
    """Attaches unit prices, calculated values and account totals.

    Every scope (one asset, one account's assets, each account of a list)
    goes through :meth:`enrich_assets`, which makes at most one price request.
    A failed price request leaves prices and values as ``None`` instead of
    failing the response, so balances are always returned.
    """

    def __init__(
        self,
        price_service: PriceService,
        currencies: Sequence[str],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.price_service = price_service
        self.currencies: List[str] = list(currencies)
        self.logger = logger or module_logger

    async def _fetch_prices(self, symbols: List[str]) -> PriceTable:
        if not symbols:
            return {}
        try:
            return await self.price_service.get_prices(symbols, self.currencies)
        except MarketDataError as exc:
            self.logger.warning(
                "Price enrichment unavailable for %s: %s", ",".join(symbols), exc
            )
            return {}

    async def enrich_assets(self, assets: Sequence[RawAsset]) -> List[EnrichedAsset]:
        """Enrich a scope of assets with a single batched price fetch."""
        prices = await self._fetch_prices(collect_symbols(assets))
        return [valuate_asset(asset, prices, self.currencies) for asset in assets]

    async def enrich_asset(self, asset: RawAsset) -> EnrichedAsset:
        enriched = await self.enrich_assets([asset])
        return enriched[0]

    async def enrich_account(self, account: Dict[str, Any]) -> Dict[str, Any]:
        """Enrich one account's assets and attach ``assetBalances`` totals."""
        records = account.get("assets")
        raw_assets = (
            [RawAsset.from_upstream(record) for record in records]
            if isinstance(records, list)
            else []
        )
        enriched = await self.enrich_assets(raw_assets)

        result = dict(account)
        if isinstance(records, list):
            result["assets"] = [asset.to_payload() for asset in enriched]
        result["assetBalances"] = aggregate_totals(enriched, self.currencies)
        return result

    async def enrich_accounts(
        self, accounts: Sequence[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """Enrich each account concurrently, one price request per account."""
        self.logger.info("Enriching %d vault accounts", len(accounts))
        return list(
            await asyncio.gather(*(self.enrich_account(account) for account in accounts))
        )
