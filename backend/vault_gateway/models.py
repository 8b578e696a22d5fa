"""Data models for API requests and responses"""
import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

PriceRow = Dict[str, float]
PriceTable = Dict[str, PriceRow]
AccountTotals = Dict[str, float]


def parse_balance(value: Any) -> float:
    """Parse an upstream decimal string, defaulting to zero when unparsable or non-finite"""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        balance = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return balance if math.isfinite(balance) else 0.0


class RawAsset(BaseModel):
    """A vault asset as reported by the wallet platform"""
    id: str = Field("", description="Asset identifier, e.g. BTC_TEST")
    available: float = Field(0.0, description="Available balance")
    record: Dict[str, Any] = Field(
        default_factory=dict, description="Upstream record, passed through untouched"
    )

    @classmethod
    def from_upstream(cls, record: Any) -> "RawAsset":
        """Normalize an upstream asset record, unwrapping a nested data object"""
        if not isinstance(record, dict):
            return cls()
        if isinstance(record.get("data"), dict):
            record = record["data"]
        return cls(
            id=str(record.get("id") or ""),
            available=parse_balance(record.get("available")),
            record=dict(record),
        )


class EnrichedAsset(BaseModel):
    """A raw asset with unit prices and calculated values per quote currency"""
    asset: RawAsset
    unit_price: Dict[str, Optional[float]] = Field(..., alias="unitPrice")
    calculated_values: Dict[str, Optional[float]] = Field(..., alias="calculatedValues")

    model_config = {"populate_by_name": True}

    def to_payload(self) -> Dict[str, Any]:
        payload = dict(self.asset.record)
        payload["unitPrice"] = dict(self.unit_price)
        payload["calculatedValues"] = dict(self.calculated_values)
        return payload


class RootResponse(BaseModel):
    """Greeting returned by the root endpoint"""
    message: str = Field(..., description="Service greeting")
    version: str = Field(..., description="Service version")
    endpoints: Dict[str, str] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    currencies: List[str] = Field(..., description="Configured quote currencies")
    timestamp: str = Field(..., description="Check timestamp")
