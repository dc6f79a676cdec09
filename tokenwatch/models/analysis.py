"""Composite token analysis models."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from tokenwatch.models.sentiment import Recommendation


PriceTrend = Literal["bullish", "bearish", "neutral"]
IndicatorSignal = Literal["buy", "sell", "hold"]
InfluenceLevel = Literal["high", "medium", "low"]
TimeHorizon = Literal["short", "medium", "long"]


class TechnicalView(BaseModel):
    """Price action summary from recent price samples."""

    score: float = Field(..., ge=0, le=100, description="Technical score")
    trend: PriceTrend = Field(default="neutral", description="Price trend")
    rsi: Optional[float] = Field(default=None, ge=0, le=100, description="RSI, if computable")
    rsi_signal: IndicatorSignal = Field(default="hold", description="RSI signal")
    support: float = Field(default=0.0, ge=0, description="Lowest recent price")
    resistance: float = Field(default=0.0, ge=0, description="Highest recent price")
    signals: list[str] = Field(default_factory=list, description="Technical signals")

    model_config = {"frozen": True}


class SentimentView(BaseModel):
    """Sentiment analysis rescaled to [0, 100]."""

    score: float = Field(..., ge=0, le=100, description="Sentiment score")
    sentiment: str = Field(default="neutral", description="Sentiment label")
    confidence: float = Field(default=0.0, ge=0, le=100, description="Analysis confidence")
    social_volume: float = Field(default=0.0, ge=0, le=100, description="Social volume")
    key_signals: list[str] = Field(default_factory=list, description="Notable signals")

    model_config = {"frozen": True}


class KOLView(BaseModel):
    """Recent KOL activity in a token."""

    score: float = Field(..., ge=0, le=100, description="KOL score")
    active_kols: int = Field(default=0, ge=0, description="Distinct wallets trading")
    transaction_count: int = Field(default=0, ge=0, description="Trades in the window")
    recent_activity: list[str] = Field(default_factory=list, description="Activity summary")
    influence_level: InfluenceLevel = Field(default="low", description="Traded value level")

    model_config = {"frozen": True}


class MarketView(BaseModel):
    """24 hour market statistics."""

    score: float = Field(..., ge=0, le=100, description="Market score")
    volume_24h: float = Field(default=0.0, ge=0, description="24 hour volume")
    price_change_24h: float = Field(default=0.0, description="24 hour price change %")
    liquidity: float = Field(default=0.0, ge=0, description="Latest pool liquidity")
    volatility: float = Field(default=0.0, ge=0, description="High-low range as % of mean")

    model_config = {"frozen": True}


class TradeRecommendation(BaseModel):
    """Action derived from the composite scores."""

    action: Recommendation = Field(default="hold", description="Recommended action")
    confidence: float = Field(default=50.0, ge=0, le=100, description="Recommendation confidence")
    reasoning: list[str] = Field(default_factory=list, description="Supporting reasons")
    risk_factors: list[str] = Field(default_factory=list, description="Risks noticed")
    time_horizon: TimeHorizon = Field(default="medium", description="Suggested holding horizon")

    model_config = {"frozen": True}


class TokenAnalysis(BaseModel):
    """Technical, sentiment, KOL and market views of one token, combined."""

    token_address: str = Field(..., description="Token address")
    token_symbol: str = Field(default="Unknown", description="Ticker symbol")
    token_name: str = Field(default="", description="Token name")
    overall_score: float = Field(..., ge=0, le=100, description="Weighted overall score")
    risk_score: float = Field(..., ge=0, le=100, description="Risk score")
    potential_score: float = Field(..., ge=0, le=100, description="Upside potential score")
    technical: TechnicalView
    sentiment: SentimentView
    kol: KOLView
    market: MarketView
    recommendation: TradeRecommendation
    timestamp: datetime = Field(default_factory=datetime.now, description="Analysis timestamp")

    model_config = {"frozen": True}
