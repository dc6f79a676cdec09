"""Data models for TokenWatch."""

from tokenwatch.models.alert import Alert, Trigger
from tokenwatch.models.alert_config import (
    Action,
    AlertConfig,
    Condition,
    KOLActivityCondition,
    MarketCapChangeCondition,
    PriceChangeCondition,
    SentimentChangeCondition,
    TechnicalIndicatorCondition,
    VolumeSpikeCondition,
)
from tokenwatch.models.analysis import (
    KOLView,
    MarketView,
    SentimentView,
    TechnicalView,
    TokenAnalysis,
    TradeRecommendation,
)
from tokenwatch.models.kol import KOLProfile, KOLSignal, KOLTransaction
from tokenwatch.models.sample import MarketSnapshot, PriceSample, TokenInfo, VolumeSample
from tokenwatch.models.sentiment import SentimentAnalysis, SentimentSample

__all__ = [
    "Action",
    "Alert",
    "AlertConfig",
    "Condition",
    "KOLActivityCondition",
    "KOLProfile",
    "KOLSignal",
    "KOLTransaction",
    "KOLView",
    "MarketCapChangeCondition",
    "MarketSnapshot",
    "MarketView",
    "PriceChangeCondition",
    "PriceSample",
    "SentimentAnalysis",
    "SentimentChangeCondition",
    "SentimentSample",
    "SentimentView",
    "TechnicalIndicatorCondition",
    "TechnicalView",
    "TokenAnalysis",
    "TokenInfo",
    "TradeRecommendation",
    "Trigger",
    "VolumeSample",
]
