"""FastAPI main application"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from vault_gateway import __version__
from vault_gateway.config import GatewaySettings, config, load_settings
from vault_gateway.credentials import read_private_key
from vault_gateway.errors import (
    ConfigurationError,
    CredentialError,
    UpstreamPlatformError,
)
from vault_gateway.models import HealthResponse, RawAsset, RootResponse
from vault_gateway.services import (
    EnrichmentService,
    PriceService,
    WalletService,
    create_wallet_client,
)

# Configure logging - get level from config
log_level = str(config.get('service.log_level', 'info')).upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

FALLBACK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def error_response(message: str, status: int) -> JSONResponse:
    if not 400 <= status <= 599:
        status = 500
    return JSONResponse({"error": message, "status": status}, status_code=status)


def create_fallback_app(reason: str) -> FastAPI:
    """App answering every route with a 500 when startup failed"""
    fallback = FastAPI(title="Vault Gateway (unconfigured)")

    @fallback.api_route("/{path:path}", methods=FALLBACK_METHODS)
    async def configuration_error(path: str):
        return JSONResponse(
            {"error": "Server configuration error", "detail": reason, "status": 500},
            status_code=500,
        )

    return fallback


def create_app(
    settings: Optional[GatewaySettings] = None,
    wallet_service: Optional[WalletService] = None,
    price_service: Optional[PriceService] = None,
) -> FastAPI:
    """
    Build the gateway application

    Missing settings or an invalid credential file yield the fallback app
    instead of raising.
    """
    try:
        if settings is None:
            settings = load_settings(config)
        if wallet_service is None:
            private_key = read_private_key(settings.secret_path)
            wallet_service = WalletService(create_wallet_client(settings, private_key))
    except (ConfigurationError, CredentialError) as e:
        logger.error(f"Application setup failed: {e}")
        return create_fallback_app(str(e))

    if price_service is None:
        price_service = PriceService(
            settings.market_data_api,
            settings.currencies,
            timeout=settings.price_timeout,
        )
    enrichment_service = EnrichmentService(price_service, settings.currencies)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Vault Gateway...")
        yield
        logger.info("Shutting down Vault Gateway...")
        wallet_service.shutdown()

    app = FastAPI(
        title=config.get('api.title', 'Vault Gateway'),
        version=config.get('api.version', __version__),
        description=config.get(
            'api.description', 'Vault balances enriched with market prices'
        ),
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get('api.cors_origins', ["*"]),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(UpstreamPlatformError)
    async def upstream_error_handler(request: Request, exc: UpstreamPlatformError):
        return error_response(exc.message, exc.status)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}")
        return error_response(str(exc) or "Internal server error", 500)

    @app.get("/", response_model=RootResponse, tags=["Root"])
    async def root():
        """Root endpoint"""
        return RootResponse(
            message="Fireblocks Demo API",
            version=__version__,
            endpoints={
                "vault_accounts": "/api/vault-accounts",
                "supported_assets": "/api/supported-assets",
                "transactions": "/api/transactions",
                "health": "/health",
            },
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Health check endpoint"""
        return HealthResponse(
            status="healthy",
            currencies=settings.currencies,
            timestamp=datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        )

    @app.get("/api/vault-accounts", tags=["Vaults"])
    async def get_vault_accounts():
        """
        Fetch vault accounts with priced assets and per-account totals

        Returns:
            The upstream page with every account carrying ``assetBalances``
        """
        page = await wallet_service.list_vault_accounts()
        page["accounts"] = await enrichment_service.enrich_accounts(page["accounts"])
        return page

    @app.get("/api/vault-accounts/{vault_account_id}", tags=["Vaults"])
    async def get_vault_account(vault_account_id: str):
        """Fetch one vault account with priced assets and totals"""
        account = await wallet_service.get_vault_account(vault_account_id)
        return await enrichment_service.enrich_account(account)

    @app.get("/api/vault-accounts/{vault_account_id}/assets", tags=["Vaults"])
    async def get_vault_account_assets(vault_account_id: str):
        """Fetch the priced assets of one vault account, without totals"""
        records = await wallet_service.get_vault_account_assets(vault_account_id)
        if not records:
            return []
        assets = [RawAsset.from_upstream(record) for record in records]
        enriched = await enrichment_service.enrich_assets(assets)
        return [asset.to_payload() for asset in enriched]

    @app.get("/api/vault-accounts/{vault_account_id}/{asset_id}", tags=["Vaults"])
    async def get_vault_asset(vault_account_id: str, asset_id: str):
        """Fetch a single priced asset of a vault account"""
        record = await wallet_service.get_vault_asset(vault_account_id, asset_id)
        enriched = await enrichment_service.enrich_asset(RawAsset.from_upstream(record))
        return enriched.to_payload()

    @app.get("/api/supported-assets", tags=["Assets"])
    async def get_supported_assets():
        """List the assets supported by the platform"""
        return await wallet_service.get_supported_assets()

    @app.get("/api/transactions", tags=["Transactions"])
    async def get_transactions():
        """List transactions as returned by the platform"""
        return await wallet_service.get_transactions()

    return app


app = create_app()


def run() -> None:
    """Serve the module-level app with uvicorn"""
    workers = int(config.get('service.workers', 1))
    # Several workers each import the app themselves; one worker reuses this one
    target = "vault_gateway.main:app" if workers > 1 else app
    uvicorn.run(
        target,
        host=config.get('service.host', '0.0.0.0'),
        port=int(config.get('service.port', 3000)),
        reload=False,
        workers=workers,
        log_level=str(config.get('service.log_level', 'info')).lower()
    )


if __name__ == "__main__":
    run()
