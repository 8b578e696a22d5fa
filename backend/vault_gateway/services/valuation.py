"""Symbol extraction, asset valuation and account totals."""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence

from vault_gateway.models import AccountTotals, EnrichedAsset, PriceTable, RawAsset


def extract_symbol(identifier: Optional[str]) -> str:
    """Return the ticker part of an asset id, e.g. ``BTC`` for ``BTC_TEST``."""
    if not identifier:
        return ""
    return identifier.split("_", 1)[0]


def collect_symbols(assets: Iterable[RawAsset]) -> List[str]:
    """Deduplicated, sorted non-empty symbols across a set of assets."""
    return sorted({extract_symbol(asset.id) for asset in assets} - {""})


def valuate_asset(
    asset: RawAsset, prices: PriceTable, currencies: Sequence[str]
) -> EnrichedAsset:
    symbol = extract_symbol(asset.id)
    row = prices.get(symbol) if symbol else None
    row = row or {}

    unit_price: Dict[str, Optional[float]] = {}
    calculated: Dict[str, Optional[float]] = {}
    for currency in currencies:
        price = row.get(currency)
        unit_price[currency] = price
        # a zero price is a real price; only a missing one yields None
        value = asset.available * price if price is not None else None
        calculated[currency] = value if value is not None and math.isfinite(value) else None

    return EnrichedAsset(asset=asset, unit_price=unit_price, calculated_values=calculated)


def aggregate_totals(
    assets: Iterable[EnrichedAsset], currencies: Sequence[str]
) -> AccountTotals:
    totals: AccountTotals = {currency: 0.0 for currency in currencies}
    for asset in assets:
        for currency in currencies:
            value = asset.calculated_values.get(currency)
            if value is not None and math.isfinite(value):
                totals[currency] += value
    return totals
