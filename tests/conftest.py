from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from vault_gateway.config import GatewaySettings
from vault_gateway.services.price_service import PriceService

MARKET_DATA_URL = "https://market.test"


class FakeWalletClient:
    """Stands in for the Fireblocks SDK client"""

    def __init__(
        self,
        accounts: Optional[List[Dict[str, Any]]] = None,
        assets: Optional[Dict[str, Dict[str, Any]]] = None,
        supported_assets: Any = None,
        transactions: Any = None,
        error: Optional[Exception] = None,
    ):
        self.accounts = accounts or []
        self.assets = assets or {}
        self.supported_assets = supported_assets if supported_assets is not None else []
        self.transactions = transactions if transactions is not None else []
        self.error = error
        self.calls: List[str] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.error is not None:
            raise self.error

    def get_vault_accounts_with_page_info(self, filters):
        self._check("get_vault_accounts_with_page_info")
        return {"accounts": self.accounts, "paging": {"after": "next-page"}}

    def get_vault_account(self, vault_account_id):
        self._check("get_vault_account")
        for account in self.accounts:
            if account.get("id") == vault_account_id:
                return account
        raise Exception(f"Vault account {vault_account_id} not found")

    def get_vault_account_asset(self, vault_account_id, asset_id):
        self._check("get_vault_account_asset")
        key = f"{vault_account_id}/{asset_id}"
        if key not in self.assets:
            raise Exception(f"Asset {asset_id} does not exist")
        return self.assets[key]

    def get_supported_assets(self):
        self._check("get_supported_assets")
        return self.supported_assets

    def get_transactions(self):
        self._check("get_transactions")
        return self.transactions


class PriceEndpoint:
    """Records requests made to the mocked pricemulti endpoint"""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def requested_symbols(self, index: int = 0) -> List[str]:
        return self.requests[index].url.params["fsyms"].split(",")


def price_table_handler(table: Dict[str, Dict[str, float]]):
    """Answer like pricemulti: only the requested symbols that are known"""

    def handler(request: httpx.Request) -> httpx.Response:
        symbols = request.url.params["fsyms"].split(",")
        currencies = request.url.params["tsyms"].split(",")
        body = {
            s: {c: table[s][c] for c in currencies if c in table[s]}
            for s in symbols
            if s in table
        }
        return httpx.Response(200, json=body)

    return handler


@pytest.fixture
def currencies():
    return ["USD", "AUD"]


@pytest.fixture
def settings(currencies):
    return GatewaySettings(
        api_key="test-key",
        secret_path="/tmp/secret.key",
        market_data_api=MARKET_DATA_URL,
        currencies=currencies,
    )


@pytest.fixture
def prices():
    return {
        "BTC": {"USD": 50000.0, "AUD": 70000.0},
        "ETH": {"USD": 3000.0, "AUD": 4500.0},
    }


@pytest.fixture
def price_endpoint(prices):
    return PriceEndpoint(price_table_handler(prices))


@pytest.fixture
def price_service(price_endpoint, currencies):
    return PriceService(MARKET_DATA_URL, currencies, transport=price_endpoint.transport)


@pytest.fixture
def failing_price_service(currencies):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    return PriceService(
        MARKET_DATA_URL, currencies, transport=httpx.MockTransport(handler)
    )
