"""Market time-series sample models."""

from datetime import datetime
from pydantic import BaseModel, Field


class TokenInfo(BaseModel):
    """Display information for a token."""

    address: str = Field(..., min_length=1, description="Token mint address")
    symbol: str = Field(..., min_length=1, description="Ticker symbol")
    name: str = Field(default="", description="Token name")

    model_config = {"frozen": True}


class PriceSample(BaseModel):
    """A single timestamped price observation."""

    token_address: str = Field(..., min_length=1, description="Token address")
    price: float = Field(..., ge=0, description="Price in base asset")
    timestamp: datetime = Field(..., description="Observation timestamp")

    model_config = {"frozen": True}


class VolumeSample(BaseModel):
    """A single timestamped trading volume observation."""

    token_address: str = Field(..., min_length=1, description="Token address")
    volume: float = Field(..., ge=0, description="Traded volume")
    liquidity: float = Field(default=0.0, ge=0, description="Pool liquidity")
    timestamp: datetime = Field(..., description="Observation timestamp")

    model_config = {"frozen": True}


class MarketSnapshot(BaseModel):
    """Short-window market movement for breakout detection."""

    token_address: str = Field(..., min_length=1, description="Token address")
    symbol: str = Field(default="Unknown", description="Ticker symbol")
    name: str = Field(default="", description="Token name")
    price_change_5m: float = Field(default=0.0, description="5 minute price change %")
    price_change_1h: float = Field(default=0.0, description="1 hour price change %")
    volume_24h: float = Field(default=0.0, ge=0, description="24 hour volume")
    volume_change: float = Field(default=0.0, description="Volume change %")
    liquidity: float = Field(default=0.0, ge=0, description="Pool liquidity in SOL")

    model_config = {"frozen": True}
