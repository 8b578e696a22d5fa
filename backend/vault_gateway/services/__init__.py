"""Services module"""
from .enrichment_service import EnrichmentService
from .price_service import PriceService
from .wallet_service import WalletService, create_wallet_client

__all__ = ["EnrichmentService", "PriceService", "WalletService", "create_wallet_client"]
