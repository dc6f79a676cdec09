"""Composite token analysis.

Four views of a token are scored from 0 to 100 and combined:

- technical: price trend and RSI over recent price samples
- sentiment: the token's sentiment analysis, rescaled from [-100, 100]
- kol: KOL trades in the token over the last 24 hours
- market: 24 hour volume, price change, volatility and liquidity

Risk and potential scores are built from the same views and drive the
recommendation and the ``smart_analysis`` alerts.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Callable, Optional

from tokenwatch.broadcast import NEW_ALERT, SMART_ANALYSIS, BaseBroadcastSink
from tokenwatch.db.store import DataStore
from tokenwatch.engine.sentiment import SentimentMonitor
from tokenwatch.errors import PersistenceFailure
from tokenwatch.models import (
    Alert,
    KOLTransaction,
    KOLView,
    MarketView,
    PriceSample,
    SentimentView,
    TechnicalView,
    TokenAnalysis,
    TradeRecommendation,
    VolumeSample,
)
from tokenwatch.sources.base import BaseSampleSource

logger = logging.getLogger(__name__)


SCORE_WEIGHTS = {
    "technical": 0.30,
    "sentiment": 0.25,
    "kol": 0.20,
    "market": 0.25,
}
RSI_PERIOD = 14
TREND_WINDOW = 5
TREND_THRESHOLD = 0.05
KOL_LOOKBACK_HOURS = 24


def _clip(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(high, max(low, value))


def calculate_rsi(prices: list[float], period: int = RSI_PERIOD) -> Optional[float]:
    """Relative Strength Index over the last ``period`` price changes.

    Uses simple averages of gains and losses.

    Args:
        prices: Prices ordered oldest first.
        period: Number of price changes to use.

    Returns:
        RSI in [0, 100], 100 when there are no losses, or None if there
        are fewer than ``period + 1`` prices.
    """
    if period < 1 or len(prices) < period + 1:
        return None

    window = prices[-(period + 1):]
    changes = [b - a for a, b in zip(window, window[1:])]
    avg_gain = sum(c for c in changes if c > 0) / period
    avg_loss = sum(-c for c in changes if c < 0) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def rsi_signal(rsi: Optional[float]) -> str:
    if rsi is None:
        return "hold"
    if rsi > 70:
        return "sell"
    if rsi < 30:
        return "buy"
    return "hold"


def price_trend(prices: list[float], window: int = TREND_WINDOW) -> str:
    """Compare the mean of the last ``window`` prices with the ``window`` before.

    Returns:
        'bullish' above +5%, 'bearish' below -5%, 'neutral' otherwise or
        when there is not enough history.
    """
    if len(prices) < window + 1:
        return "neutral"

    recent = prices[-window:]
    older = prices[-2 * window:-window]
    older_avg = sum(older) / len(older)
    if older_avg <= 0:
        return "neutral"

    change = (sum(recent) / len(recent) - older_avg) / older_avg
    if change > TREND_THRESHOLD:
        return "bullish"
    if change < -TREND_THRESHOLD:
        return "bearish"
    return "neutral"


def technical_view(prices: list[PriceSample]) -> TechnicalView:
    """Score recent price action.

    Base 50, +/-20 for a bullish or bearish trend, +/-10 for an RSI buy or
    sell signal.
    """
    values = [s.price for s in prices]
    trend = price_trend(values)
    rsi = calculate_rsi(values)
    signal = rsi_signal(rsi)

    score = 50.0
    signals = []
    if signal == "buy":
        score += 10
        signals.append("RSI buy signal")
    elif signal == "sell":
        score -= 10
        signals.append("RSI sell signal")

    if trend == "bullish":
        score += 20
        signals.append("Price trending up")
    elif trend == "bearish":
        score -= 20
        signals.append("Price trending down")

    return TechnicalView(
        score=_clip(score),
        trend=trend,
        rsi=rsi,
        rsi_signal=signal,
        support=min(values) if values else 0.0,
        resistance=max(values) if values else 0.0,
        signals=signals or ["No clear technical signal"],
    )


def influence_level(transactions: list[KOLTransaction]) -> str:
    total = sum(tx.value_sol for tx in transactions)
    if total > 1000:
        return "high"
    if total > 100:
        return "medium"
    return "low"


def kol_view(transactions: list[KOLTransaction]) -> KOLView:
    """Score KOL trading in a token.

    Base 50, +5 per active wallet, +2 per trade, +20 / +10 for high or
    medium traded value.
    """
    wallets = {tx.wallet_address for tx in transactions}
    influence = influence_level(transactions)

    buys = sum(1 for tx in transactions if tx.action == "buy")
    sells = sum(1 for tx in transactions if tx.action == "sell")
    if not transactions:
        activity = ["No KOL activity"]
    elif buys > sells:
        activity = ["KOLs net buying"]
    elif sells > buys:
        activity = ["KOLs net selling"]
    else:
        activity = ["KOL activity balanced"]

    score = 50 + len(wallets) * 5 + len(transactions) * 2
    if influence == "high":
        score += 20
    elif influence == "medium":
        score += 10

    return KOLView(
        score=_clip(score),
        active_kols=len(wallets),
        transaction_count=len(transactions),
        recent_activity=activity,
        influence_level=influence,
    )


def market_score(volume: float, price_change: float, volatility: float) -> float:
    score = 50.0

    if volume > 10000:
        score += 20
    elif volume > 1000:
        score += 10
    elif volume < 100:
        score -= 20

    if price_change > 0:
        score += min(20.0, price_change / 2)
    else:
        score += max(-20.0, price_change / 2)

    if volatility > 100:
        score -= 15
    elif volatility > 50:
        score -= 5
    elif volatility > 10:
        score += 5

    return _clip(score)


def market_view(prices: list[PriceSample], volumes: list[VolumeSample]) -> MarketView:
    """Summarise the 24 hour window of price and volume samples."""
    values = [s.price for s in prices]
    volume = sum(s.volume for s in volumes)

    price_change = 0.0
    volatility = 0.0
    if values:
        if values[0] > 0:
            price_change = (values[-1] - values[0]) / values[0] * 100
        mean = sum(values) / len(values)
        if mean > 0:
            volatility = (max(values) - min(values)) / mean * 100

    return MarketView(
        score=market_score(volume, price_change, volatility),
        volume_24h=volume,
        price_change_24h=price_change,
        liquidity=volumes[-1].liquidity if volumes else 0.0,
        volatility=volatility,
    )


def overall_score(
    technical: TechnicalView,
    sentiment: SentimentView,
    kol: KOLView,
    market: MarketView,
) -> float:
    weighted = (
        technical.score * SCORE_WEIGHTS["technical"]
        + sentiment.score * SCORE_WEIGHTS["sentiment"]
        + kol.score * SCORE_WEIGHTS["kol"]
        + market.score * SCORE_WEIGHTS["market"]
    )
    return float(round(weighted))


def risk_score(technical: TechnicalView, sentiment: SentimentView, market: MarketView) -> float:
    risk = 50.0
    if technical.trend == "bearish":
        risk += 15
    if technical.rsi_signal == "sell":
        risk += 10
    if "bearish" in sentiment.sentiment:
        risk += 15
    if sentiment.confidence < 50:
        risk += 10
    if market.volatility > 50:
        risk += 20
    if market.volume_24h < 1000:
        risk += 15
    if market.price_change_24h < -20:
        risk += 25
    return _clip(risk)


def potential_score(
    technical: TechnicalView,
    sentiment: SentimentView,
    kol: KOLView,
    market: MarketView,
) -> float:
    potential = 50.0
    if technical.trend == "bullish":
        potential += 15
    if technical.rsi_signal == "buy":
        potential += 10
    if "bullish" in sentiment.sentiment:
        potential += 15
    if sentiment.social_volume > 70:
        potential += 10
    if kol.influence_level == "high":
        potential += 20
    if kol.active_kols > 3:
        potential += 10
    if market.price_change_24h > 20:
        potential += 15
    if market.volume_24h > 10000:
        potential += 10
    return _clip(potential)


def recommend_action(
    overall: float,
    risk: float,
    potential: float,
    technical: TechnicalView,
    sentiment: SentimentView,
    market: MarketView,
) -> TradeRecommendation:
    """Pick an action from the overall and risk scores.

    The strong_sell band is checked before sell, so an overall score of
    20 or less, or a risk of 90 or more, is always a strong_sell.
    """
    action = "hold"
    confidence = 50.0
    reasoning = []

    if overall >= 80 and risk <= 40:
        action, confidence = "strong_buy", 85.0
        reasoning.append("Strong overall score with contained risk")
    elif overall >= 65 and risk <= 60:
        action, confidence = "buy", 70.0
        reasoning.append("Good overall score")
    elif overall <= 20 or risk >= 90:
        action, confidence = "strong_sell", 85.0
        reasoning.append("Very weak overall score or extreme risk")
    elif overall <= 35 or risk >= 80:
        action, confidence = "sell", 75.0
        reasoning.append("Weak overall score or high risk")

    if technical.trend == "bullish":
        reasoning.append("Technicals bullish")
    elif technical.trend == "bearish":
        reasoning.append("Technicals bearish")

    if "bullish" in sentiment.sentiment:
        reasoning.append("Sentiment positive")
    elif "bearish" in sentiment.sentiment:
        reasoning.append("Sentiment negative")

    risk_factors = []
    if market.volatility > 50:
        risk_factors.append("High price volatility")
    if market.volume_24h < 1000:
        risk_factors.append("Thin trading volume")
    if sentiment.confidence < 50:
        risk_factors.append("Low sentiment confidence")

    if market.volatility > 70:
        horizon = "short"
    elif potential > 80:
        horizon = "long"
    else:
        horizon = "medium"

    return TradeRecommendation(
        action=action,
        confidence=confidence,
        reasoning=reasoning or ["Based on combined analysis"],
        risk_factors=risk_factors or ["Routine market risk"],
        time_horizon=horizon,
    )


def analysis_alert_reasons(analysis: TokenAnalysis) -> list[str]:
    """Rules that make a token analysis worth an alert."""
    symbol = analysis.token_symbol
    reasons = []

    if analysis.potential_score > 85 and analysis.risk_score < 40:
        reasons.append(f"{symbol} shows high potential at low risk")

    rec = analysis.recommendation
    if rec.action == "strong_buy" and rec.confidence > 80:
        reasons.append(f"{symbol} strong buy signal")

    if analysis.risk_score > 80:
        reasons.append(f"{symbol} risk is elevated, trade carefully")

    return reasons


class TokenAnalyzer:
    """Periodic composite analysis over active tokens."""

    def __init__(
        self,
        source: BaseSampleSource,
        data_store: DataStore,
        sink: BaseBroadcastSink,
        sentiment: SentimentMonitor,
        token_limit: int = 20,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the analyzer.

        Args:
            source: Sample source for prices, volumes and KOL trades.
            data_store: Store for analysis alerts.
            sink: Broadcast sink for analyses and alerts.
            sentiment: Monitor that provides each token's sentiment analysis.
            token_limit: Active tokens analysed per cycle.
            clock: Returns the current time; injectable for tests.
        """
        self._source = source
        self._data_store = data_store
        self._sink = sink
        self._sentiment = sentiment
        self.token_limit = token_limit
        self._clock = clock

    def sentiment_view(self, token_address: str) -> SentimentView:
        analysis = self._sentiment.analyze_token(token_address)
        if analysis is None:
            return SentimentView(score=50.0, key_signals=["No sentiment data"])
        return SentimentView(
            score=_clip((analysis.sentiment_score + 100) / 2),
            sentiment=analysis.overall_sentiment,
            confidence=analysis.confidence,
            social_volume=analysis.social_volume,
            key_signals=analysis.key_signals,
        )

    def analyze_token(self, token_address: str) -> Optional[TokenAnalysis]:
        """Build the composite analysis for one token.

        Returns:
            TokenAnalysis, or None if the token is unknown to the source.
        """
        info = self._source.get_token_info(token_address)
        if info is None:
            return None

        prices = self._source.get_recent_price_samples(token_address, "24h")
        volumes = self._source.get_recent_volume_samples(token_address, "24h")
        transactions = self._source.get_token_kol_transactions(
            token_address, hours=KOL_LOOKBACK_HOURS
        )

        technical = technical_view(prices)
        sentiment = self.sentiment_view(token_address)
        kol = kol_view(transactions)
        market = market_view(prices, volumes)

        overall = overall_score(technical, sentiment, kol, market)
        risk = risk_score(technical, sentiment, market)
        potential = potential_score(technical, sentiment, kol, market)

        return TokenAnalysis(
            token_address=token_address,
            token_symbol=info.symbol,
            token_name=info.name,
            overall_score=overall,
            risk_score=risk,
            potential_score=potential,
            technical=technical,
            sentiment=sentiment,
            kol=kol,
            market=market,
            recommendation=recommend_action(overall, risk, potential, technical, sentiment, market),
            timestamp=self._clock(),
        )

    def run_cycle(self) -> list[TokenAnalysis]:
        """Analyze every active token, broadcast the results and raise alerts.

        A failure on one token is logged and the cycle moves on.

        Returns:
            Analyses produced in this cycle.
        """
        analyses = []
        for token_address in self._source.get_active_tokens(limit=self.token_limit):
            try:
                analysis = self.analyze_token(token_address)
                if analysis is None:
                    continue
                self._sink.emit(SMART_ANALYSIS, analysis.model_dump(mode="json"))
                self.check_alerts(analysis)
                analyses.append(analysis)
            except Exception:
                logger.exception("Token analysis failed for %s", token_address)

        logger.debug("Analysis cycle finished: %d tokens analysed", len(analyses))
        return analyses

    def check_alerts(self, analysis: TokenAnalysis) -> Optional[Alert]:
        """Raise a smart_analysis alert if any alert rule matches.

        Returns:
            The alert, or None if no rule matched.
        """
        reasons = analysis_alert_reasons(analysis)
        if not reasons:
            return None

        if analysis.risk_score > 80:
            severity = "high"
        elif analysis.potential_score > 85:
            severity = "medium"
        else:
            severity = "low"

        alert = Alert(
            token_address=analysis.token_address,
            type="smart_analysis",
            title=reasons[0],
            message="; ".join(reasons),
            score=analysis.overall_score,
            conditions=reasons,
            severity=severity,
            data={
                "token_symbol": analysis.token_symbol,
                "overall_score": analysis.overall_score,
                "risk_score": analysis.risk_score,
                "potential_score": analysis.potential_score,
                "recommendation": analysis.recommendation.action,
                "confidence": analysis.recommendation.confidence,
            },
            timestamp=analysis.timestamp,
        )

        try:
            alert_id = self._data_store.save_alert(alert)
            alert = alert.model_copy(update={"id": alert_id})
        except sqlite3.Error as e:
            logger.error("%s", PersistenceFailure(f"Failed to save analysis alert: {e}"))

        self._sink.emit(NEW_ALERT, alert.model_dump(mode="json"))
        logger.info("Analysis alert: %s", alert.message)
        return alert
