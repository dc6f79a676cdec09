"""Key opinion leader (KOL) wallet models."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field


KOLCategory = Literal["trader", "influencer", "institution"]
TradeAction = Literal["buy", "sell"]


class KOLProfile(BaseModel):
    """A tracked wallet and its trading statistics."""

    id: Optional[int] = Field(default=None, description="Database ID")
    wallet_address: str = Field(..., min_length=1, description="Wallet address")
    name: str = Field(default="", description="Display name")
    category: KOLCategory = Field(..., description="KOL category")
    influence_score: float = Field(default=0.0, ge=0, le=100, description="Influence score")
    success_rate: float = Field(default=0.0, ge=0, le=100, description="Winning trade %")
    total_trades: int = Field(default=0, ge=0, description="Recorded trades")
    profitable_trades: int = Field(default=0, ge=0, description="Profitable trades")
    avg_profit_rate: float = Field(default=0.0, description="Average profit/loss")
    followers_count: int = Field(default=0, ge=0, description="Social followers")
    verified: bool = Field(default=False, description="Identity verified")
    tags: list[str] = Field(default_factory=list, description="Tags")
    is_active: bool = Field(default=True, description="Whether the wallet is monitored")

    model_config = {"frozen": True}


class KOLTransaction(BaseModel):
    """An on-chain trade made by a tracked wallet."""

    id: Optional[int] = Field(default=None, description="Database ID")
    wallet_address: str = Field(..., min_length=1, description="KOL wallet address")
    token_address: str = Field(..., min_length=1, description="Token address")
    transaction_hash: str = Field(..., min_length=1, description="Transaction signature")
    action: TradeAction = Field(..., description="Trade side")
    amount: float = Field(..., ge=0, description="Token amount")
    price: float = Field(..., ge=0, description="Execution price")
    value_sol: float = Field(..., ge=0, description="Trade value in SOL")
    timestamp: datetime = Field(..., description="Trade timestamp")
    profit_loss: Optional[float] = Field(default=None, description="Realized P&L")
    holding_period: Optional[int] = Field(default=None, ge=0, description="Seconds held")

    model_config = {"frozen": True}


class KOLSignal(BaseModel):
    """Confidence scored trade signal derived from a KOL transaction."""

    id: Optional[int] = Field(default=None, description="Database ID")
    wallet_address: str = Field(..., description="KOL wallet address")
    kol_name: str = Field(default="Unknown KOL", description="KOL display name")
    token_address: str = Field(..., description="Token address")
    token_symbol: str = Field(default="Unknown", description="Ticker symbol")
    action: TradeAction = Field(..., description="Trade side")
    amount: float = Field(..., ge=0, description="Token amount")
    price: float = Field(..., ge=0, description="Execution price")
    value_sol: float = Field(..., ge=0, description="Trade value in SOL")
    confidence: float = Field(..., ge=0, le=100, description="Signal confidence")
    reasoning: str = Field(default="", description="Why the signal scored as it did")
    timestamp: datetime = Field(..., description="Trade timestamp")

    model_config = {"frozen": True}
