"""Error types raised across the gateway"""
from typing import Any, Dict


class GatewayError(Exception):
    """Base class for gateway errors"""


class ConfigurationError(GatewayError):
    """A required setting is missing at startup"""


class CredentialError(GatewayError):
    """The platform credential file is unreadable or malformed"""


class MarketDataError(GatewayError):
    """Price data could not be fetched or parsed"""


class UpstreamPlatformError(GatewayError):
    """A wallet platform call failed"""

    def __init__(self, message: str, status: int = 500):
        super().__init__(message)
        self.message = message
        self.status = status

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "status": self.status}


class NotFoundError(UpstreamPlatformError):
    """The requested account or asset does not exist upstream"""

    def __init__(self, message: str):
        super().__init__(message, status=404)
