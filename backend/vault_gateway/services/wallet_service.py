"""Wallet platform service wrapping the synchronous Fireblocks SDK"""
import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from fireblocks_sdk import FireblocksSDK
from fireblocks_sdk.api_types import PagedVaultAccountsRequestFilters

from vault_gateway.config import GatewaySettings
from vault_gateway.errors import (
    ConfigurationError,
    NotFoundError,
    UpstreamPlatformError,
)

module_logger = logging.getLogger(__name__)

NOT_FOUND_MARKERS = ("not found", "not supported", "not exist")
SUPPORTED_ASSET_KEYS = ("data", "assets", "supportedAssets")


def create_wallet_client(settings: GatewaySettings, private_key: str) -> FireblocksSDK:
    """Build the platform SDK client from validated settings"""
    try:
        return FireblocksSDK(private_key, settings.api_key, api_base_url=settings.base_path)
    except Exception as e:
        raise ConfigurationError(f"Failed to create Fireblocks service: {e}") from e


def _unwrap(response: Any) -> Any:
    """Strip a ``data`` envelope some SDK versions put around payloads"""
    if isinstance(response, dict) and isinstance(response.get("data"), (dict, list)):
        return response["data"]
    return response


def _status_of(exc: Exception) -> int:
    for attr in ("status", "status_code"):
        status = getattr(exc, attr, None)
        if isinstance(status, int):
            return status
    response_status = getattr(getattr(exc, "response", None), "status_code", None)
    if isinstance(response_status, int):
        return response_status
    if "401" in str(exc):
        return 401
    return 500


class WalletService:
    """Service fetching vault, asset and transaction data from the platform"""

    def __init__(
        self,
        client: Any,
        executor: Optional[ThreadPoolExecutor] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        # The SDK is blocking; calls run in a dedicated pool
        self.executor = executor or ThreadPoolExecutor(max_workers=10)
        self.logger = logger or module_logger

    async def _call(
        self,
        description: str,
        fn: Callable[[], Any],
        not_found_message: Optional[str] = None,
    ) -> Any:
        start_time = time.time()
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(self.executor, fn)
        except Exception as e:
            elapsed = time.time() - start_time
            message = str(e) or e.__class__.__name__
            self.logger.error(
                "[%s] Failed in %.2fs - %s", description, elapsed, message[:200]
            )
            if not_found_message and any(m in message.lower() for m in NOT_FOUND_MARKERS):
                raise NotFoundError(not_found_message) from e
            raise UpstreamPlatformError(message, _status_of(e)) from e

        elapsed = time.time() - start_time
        self.logger.debug("[%s] Success in %.2fs", description, elapsed)
        return result

    async def list_vault_accounts(self) -> Dict[str, Any]:
        """
        Fetch the first page of vault accounts

        Returns:
            The page with paging info kept and ``accounts`` always a list of
            account records
        """
        response = await self._call(
            "vault-accounts",
            lambda: self.client.get_vault_accounts_with_page_info(
                PagedVaultAccountsRequestFilters()
            ),
        )
        page = _unwrap(response)
        if isinstance(page, list):
            page = {"accounts": page}
        elif not isinstance(page, dict):
            page = {}

        accounts = page.get("accounts")
        page = dict(page)
        page["accounts"] = (
            [a for a in map(_unwrap, accounts) if isinstance(a, dict)]
            if isinstance(accounts, list)
            else []
        )
        return page

    async def get_vault_account(self, vault_account_id: str) -> Dict[str, Any]:
        response = await self._call(
            f"vault-account {vault_account_id}",
            lambda: self.client.get_vault_account(vault_account_id),
            not_found_message=f"Vault account '{vault_account_id}' not found",
        )
        account = _unwrap(response)
        return account if isinstance(account, dict) else {}

    async def get_vault_account_assets(self, vault_account_id: str) -> List[Dict[str, Any]]:
        account = await self.get_vault_account(vault_account_id)
        assets = account.get("assets")
        if not isinstance(assets, list):
            return []
        return [a for a in map(_unwrap, assets) if isinstance(a, dict)]

    async def get_vault_asset(self, vault_account_id: str, asset_id: str) -> Dict[str, Any]:
        """
        Fetch one asset of a vault account

        Raises:
            NotFoundError: If the platform does not know the asset in this vault
        """
        response = await self._call(
            f"vault-asset {vault_account_id}/{asset_id}",
            lambda: self.client.get_vault_account_asset(vault_account_id, asset_id),
            not_found_message=(
                f"Asset '{asset_id}' is not supported or doesn't exist in this wallet"
            ),
        )
        record = _unwrap(response)
        record = dict(record) if isinstance(record, dict) else {}
        if not record.get("id"):
            record["id"] = asset_id
        return record

    async def get_supported_assets(self) -> Any:
        """
        Fetch the platform's supported assets

        Returns:
            Asset records carrying an ``id``; an unrecognized object is
            returned as received
        """
        response = await self._call(
            "supported-assets", self.client.get_supported_assets
        )
        if not response:
            return []

        assets = None
        if isinstance(response, list):
            assets = response
        elif isinstance(response, dict):
            for key in SUPPORTED_ASSET_KEYS:
                if isinstance(response.get(key), list):
                    assets = response[key]
                    break
        if assets is None:
            return response

        return [a for a in assets if isinstance(a, dict) and a.get("id")]

    async def get_transactions(self) -> Any:
        return await self._call("transactions", self.client.get_transactions)

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False)
