"""Configuration management"""
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field

from vault_gateway.errors import ConfigurationError

SANDBOX_BASE_URL = "https://sandbox-api.fireblocks.io"
DEFAULT_CURRENCIES = ["USD", "AUD"]

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    "FIREBLOCKS_API_KEY": "fireblocks.api_key",
    "FIREBLOCKS_API_SECRET_PATH": "fireblocks.secret_path",
    "FIREBLOCKS_API_BASE_URL": "fireblocks.base_url",
    "CRYPTO_MARKET_DATA_API": "market_data.base_url",
    "PORT": "service.port",
    "LOG_LEVEL": "service.log_level",
}


class Config:
    """Load and manage configuration from a YAML file and the environment"""

    def __init__(
        self,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        if config_path is None:
            config_path = os.environ.get("VAULT_GATEWAY_CONFIG", "config.yml")
        self.config_path = Path(config_path)
        self.environ = os.environ if environ is None else environ
        self._config: Dict[str, Any] = {}
        self.load()

    def load(self):
        """Load the YAML file if present, then apply environment overrides"""
        self._config = {}
        if self.config_path.exists():
            with open(self.config_path, 'r') as f:
                self._config = yaml.safe_load(f) or {}

        for env_name, key in ENV_OVERRIDES.items():
            value = self.environ.get(env_name)
            if value:
                self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot notation (e.g., 'fireblocks.api_key')"""
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value by dot notation"""
        keys = key.split('.')
        node = self._config
        for k in keys[:-1]:
            child = node.get(k)
            if not isinstance(child, dict):
                child = {}
                node[k] = child
            node = child
        node[keys[-1]] = value

    @property
    def fireblocks(self) -> Dict[str, Any]:
        """Get wallet platform configuration"""
        return self._config.get('fireblocks', {})

    @property
    def market_data(self) -> Dict[str, Any]:
        """Get market data configuration"""
        return self._config.get('market_data', {})

    @property
    def api(self) -> Dict[str, Any]:
        """Get API configuration"""
        return self._config.get('api', {})

    @property
    def service(self) -> Dict[str, Any]:
        """Get service configuration"""
        return self._config.get('service', {})


class GatewaySettings(BaseModel):
    """Validated settings required before any route can be served"""
    api_key: str = Field(..., description="Wallet platform API key")
    secret_path: str = Field(..., description="Path to the API private key file")
    base_path: str = Field(SANDBOX_BASE_URL, description="Wallet platform base URL")
    market_data_api: str = Field(..., description="Market data base URL")
    currencies: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CURRENCIES),
        description="Quote currencies requested for every price fetch",
    )
    price_timeout: float = Field(5.0, description="Price fetch timeout in seconds")


def load_settings(cfg: Config) -> GatewaySettings:
    """Validate the startup settings, raising ConfigurationError on the first gap"""
    required = [
        ("fireblocks.api_key", "FIREBLOCKS_API_KEY"),
        ("fireblocks.secret_path", "FIREBLOCKS_API_SECRET_PATH"),
        ("market_data.base_url", "CRYPTO_MARKET_DATA_API"),
    ]
    for key, env_name in required:
        if not cfg.get(key):
            raise ConfigurationError(f"Missing {env_name}")

    currencies = cfg.get("market_data.currencies") or DEFAULT_CURRENCIES
    if isinstance(currencies, str):
        currencies = [c for c in currencies.split(",") if c]

    return GatewaySettings(
        api_key=str(cfg.get("fireblocks.api_key")),
        secret_path=str(cfg.get("fireblocks.secret_path")),
        base_path=cfg.get("fireblocks.base_url") or SANDBOX_BASE_URL,
        market_data_api=str(cfg.get("market_data.base_url")),
        currencies=[str(c).strip().upper() for c in currencies],
        price_timeout=float(cfg.get("market_data.timeout", 5)),
    )


# Global config instance
config = Config()
