"""Social sentiment sample and analysis models."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field


SentimentSource = Literal["twitter", "telegram", "discord", "reddit", "pump_comments"]
SentimentLabel = Literal["very_bullish", "bullish", "neutral", "bearish", "very_bearish"]
TrendDirection = Literal["rising", "falling", "stable"]
RiskLevel = Literal["low", "medium", "high"]
Recommendation = Literal["strong_buy", "buy", "hold", "sell", "strong_sell"]

KEYWORDS = ("bullish", "bearish", "moon", "dump", "hodl", "sell")


class SentimentSample(BaseModel):
    """One social feed reading for a token."""

    id: Optional[int] = Field(default=None, description="Database ID")
    token_address: str = Field(..., min_length=1, description="Token address")
    source: SentimentSource = Field(..., description="Social feed")
    score: float = Field(..., ge=-100, le=100, description="Sentiment score")
    positive_count: int = Field(default=0, ge=0, description="Positive mentions")
    negative_count: int = Field(default=0, ge=0, description="Negative mentions")
    neutral_count: int = Field(default=0, ge=0, description="Neutral mentions")
    total_mentions: int = Field(default=0, ge=0, description="Total mentions")
    keyword_mentions: dict[str, int] = Field(
        default_factory=dict, description="Keyword histogram"
    )
    influencer_mentions: int = Field(default=0, ge=0, description="Influencer mentions")
    volume_spike: bool = Field(default=False, description="Mention volume spiked")
    trending_score: float = Field(default=0.0, ge=0, le=100, description="Trending score")
    timestamp: datetime = Field(..., description="Sample timestamp")

    model_config = {"frozen": True}


class SentimentAnalysis(BaseModel):
    """Composite sentiment view of a token."""

    token_address: str = Field(..., description="Token address")
    token_symbol: str = Field(default="Unknown", description="Ticker symbol")
    overall_sentiment: SentimentLabel = Field(..., description="Sentiment label")
    sentiment_score: float = Field(..., ge=-100, le=100, description="Composite score")
    confidence: float = Field(..., ge=0, le=100, description="Analysis confidence")
    trend_direction: TrendDirection = Field(..., description="Short-window trend")
    social_volume: float = Field(..., ge=0, le=100, description="Social volume")
    influencer_activity: float = Field(..., ge=0, le=100, description="Influencer activity")
    key_signals: list[str] = Field(default_factory=list, description="Notable signals")
    risk_level: RiskLevel = Field(..., description="Risk level")
    recommendation: Recommendation = Field(..., description="Trade recommendation")
    sample_count: int = Field(default=0, ge=0, description="Samples analysed")
    timestamp: datetime = Field(default_factory=datetime.now, description="Analysis timestamp")

    model_config = {"frozen": True}
