import logging

import pytest

from vault_gateway.errors import NotFoundError, UpstreamPlatformError
from vault_gateway.services.wallet_service import WalletService

from .conftest import FakeWalletClient


class StatusError(Exception):
    def __init__(self, message, status):
        super().__init__(message)
        self.status = status


@pytest.fixture
def client():
    return FakeWalletClient(
        accounts=[
            {"id": "0", "name": "Main", "assets": [{"id": "BTC_TEST", "available": "1"}]},
            {"data": {"id": "1", "name": "Wrapped", "assets": []}},
        ],
        assets={
            "0/BTC_TEST": {"data": {"id": "BTC_TEST", "available": "1", "total": "1"}},
            "0/ETH": {"available": "4"},
        },
    )


@pytest.mark.asyncio
async def test_list_vault_accounts_keeps_paging_and_unwraps(client):
    page = await WalletService(client).list_vault_accounts()

    assert page["paging"] == {"after": "next-page"}
    assert [a["id"] for a in page["accounts"]] == ["0", "1"]


@pytest.mark.asyncio
async def test_list_vault_accounts_accepts_bare_list():
    class ListClient(FakeWalletClient):
        def get_vault_accounts_with_page_info(self, filters):
            return [{"id": "0"}]

    page = await WalletService(ListClient()).list_vault_accounts()
    assert page == {"accounts": [{"id": "0"}]}


@pytest.mark.asyncio
async def test_get_vault_account_assets(client):
    assets = await WalletService(client).get_vault_account_assets("0")
    assert assets == [{"id": "BTC_TEST", "available": "1"}]


@pytest.mark.asyncio
async def test_get_vault_asset_unwraps_data(client):
    asset = await WalletService(client).get_vault_asset("0", "BTC_TEST")
    assert asset == {"id": "BTC_TEST", "available": "1", "total": "1"}


@pytest.mark.asyncio
async def test_get_vault_asset_fills_missing_id(client):
    asset = await WalletService(client).get_vault_asset("0", "ETH")
    assert asset == {"id": "ETH", "available": "4"}


@pytest.mark.asyncio
async def test_get_vault_asset_not_found(client):
    with pytest.raises(NotFoundError) as exc_info:
        await WalletService(client).get_vault_asset("0", "DOGE")

    assert exc_info.value.status == 404
    assert exc_info.value.message == (
        "Asset 'DOGE' is not supported or doesn't exist in this wallet"
    )


@pytest.mark.asyncio
async def test_get_vault_account_not_found(client):
    with pytest.raises(NotFoundError, match="Vault account '42' not found"):
        await WalletService(client).get_vault_account("42")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, status",
    [
        (StatusError("forbidden", 403), 403),
        (Exception("Got an error from fireblocks server: 401 Unauthorized"), 401),
        (RuntimeError("socket closed"), 500),
    ],
)
async def test_upstream_errors_carry_status(error, status):
    service = WalletService(FakeWalletClient(error=error))
    with pytest.raises(UpstreamPlatformError) as exc_info:
        await service.get_transactions()

    assert exc_info.value.status == status
    assert exc_info.value.to_payload() == {"error": str(error), "status": status}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response, expected",
    [
        ([{"id": "BTC"}, {"name": "no id"}, None], [{"id": "BTC"}]),
        ({"data": [{"id": "ETH"}]}, [{"id": "ETH"}]),
        ({"assets": [{"id": "SOL"}, "junk"]}, [{"id": "SOL"}]),
        ({"supportedAssets": [{"id": "XRP"}]}, [{"id": "XRP"}]),
        ({"unexpected": True}, {"unexpected": True}),
        (None, []),
    ],
)
async def test_get_supported_assets_normalizes_shapes(response, expected):
    client = FakeWalletClient()
    client.supported_assets = response
    assert await WalletService(client).get_supported_assets() == expected


@pytest.mark.asyncio
async def test_get_transactions_passes_through():
    transactions = [{"id": "tx-1", "status": "COMPLETED"}]
    client = FakeWalletClient(transactions=transactions)
    assert await WalletService(client).get_transactions() == transactions


@pytest.mark.asyncio
async def test_list_vault_accounts_drops_non_object_entries():
    client = FakeWalletClient(accounts=[{"id": "0"}, "junk", None, ["x"]])
    page = await WalletService(client).list_vault_accounts()
    assert page["accounts"] == [{"id": "0"}]


@pytest.mark.asyncio
async def test_get_vault_account_assets_drops_non_object_entries():
    client = FakeWalletClient(accounts=[{"id": "0", "assets": [{"id": "ETH"}, 7]}])
    assert await WalletService(client).get_vault_account_assets("0") == [{"id": "ETH"}]


@pytest.mark.asyncio
async def test_injected_logger_receives_call_failures(caplog):
    logger = logging.getLogger("tests.wallet")
    service = WalletService(FakeWalletClient(error=RuntimeError("socket closed")), logger=logger)

    with caplog.at_level(logging.ERROR, logger="tests.wallet"):
        with pytest.raises(UpstreamPlatformError):
            await service.get_transactions()

    assert any(
        r.name == "tests.wallet" and "socket closed" in r.getMessage() for r in caplog.records
    )
