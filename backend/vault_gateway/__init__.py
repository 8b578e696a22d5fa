"""Vault gateway: wallet platform data enriched with market prices"""

__version__ = "1.0.0"
