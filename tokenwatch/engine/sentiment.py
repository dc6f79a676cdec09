"""Multi-source sentiment aggregation.

Samples from several social feeds are combined into one composite score
using a source weight, an exponential time decay and the mention count of
each sample. Trend, social volume, influencer activity, risk and a trade
recommendation are derived from the same sample set.
"""

import logging
import math
import sqlite3
from datetime import datetime
from typing import Callable, Optional

from tokenwatch.broadcast import NEW_ALERT, SENTIMENT_ANALYSIS, BaseBroadcastSink
from tokenwatch.db.store import DataStore
from tokenwatch.errors import PersistenceFailure
from tokenwatch.models import Alert, SentimentAnalysis, SentimentSample
from tokenwatch.models.sentiment import KEYWORDS
from tokenwatch.sources.base import BaseSampleSource

logger = logging.getLogger(__name__)


DEFAULT_SOURCE_WEIGHTS = {
    "twitter": 1.5,
    "reddit": 1.3,
    "telegram": 1.2,
    "discord": 1.0,
    "pump_comments": 0.8,
}
DEFAULT_DECAY_HOURS = 12.0

# Trend classification
TREND_WINDOW = 6
TREND_THRESHOLD = 5.0


def _clip(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(high, max(low, value))


def composite_score(
    samples: list[SentimentSample],
    now: datetime,
    source_weights: Optional[dict[str, float]] = None,
    decay_hours: float = DEFAULT_DECAY_HOURS,
) -> float:
    """Weighted mean of sample scores.

    weight = source_weight * exp(-(hours_ago - newest_hours_ago) / decay_hours)
             * max(1, total_mentions)

    Args:
        samples: Sentiment samples.
        now: Reference time for the decay.
        source_weights: Per-source weights; unknown sources weigh 1.0.
        decay_hours: Decay constant in hours.

    Returns:
        Composite score in [-100, 100]; 0 when there are no samples, and
        the plain mean when every source weight is zero.
    """
    weights = source_weights or DEFAULT_SOURCE_WEIGHTS
    if not samples:
        return 0.0

    ages = [(now - sample.timestamp).total_seconds() / 3600 for sample in samples]
    # Decay is measured from the newest sample so its weight never underflows
    newest = min(ages)
    weighted_sum = 0.0
    total_weight = 0.0

    for sample, hours_ago in zip(samples, ages):
        time_weight = math.exp(-(hours_ago - newest) / decay_hours)
        weight = weights.get(sample.source, 1.0) * time_weight * max(1, sample.total_mentions)
        weighted_sum += sample.score * weight
        total_weight += weight

    if total_weight <= 0:
        return _clip(sum(s.score for s in samples) / len(samples), -100.0, 100.0)
    return _clip(weighted_sum / total_weight, -100.0, 100.0)


def trend_direction(samples: list[SentimentSample]) -> str:
    """Classify the short-window slope of sentiment scores.

    Uses the average score delta across the most recent six samples.

    Returns:
        'rising', 'falling' or 'stable'.
    """
    if len(samples) < 2:
        return "stable"

    recent = sorted(samples, key=lambda s: s.timestamp)[-TREND_WINDOW:]
    deltas = [b.score - a.score for a, b in zip(recent, recent[1:])]
    avg_delta = sum(deltas) / len(deltas)

    if avg_delta > TREND_THRESHOLD:
        return "rising"
    if avg_delta < -TREND_THRESHOLD:
        return "falling"
    return "stable"


def social_volume(samples: list[SentimentSample]) -> float:
    """Average mentions per sample scaled to [0, 100]."""
    if not samples:
        return 0.0
    avg_mentions = sum(s.total_mentions for s in samples) / len(samples)
    return _clip(avg_mentions * 2)


def influencer_activity(samples: list[SentimentSample]) -> float:
    """Average influencer mentions per sample scaled to [0, 100]."""
    if not samples:
        return 0.0
    avg_mentions = sum(s.influencer_mentions for s in samples) / len(samples)
    return _clip(avg_mentions * 10)


def aggregate_keywords(samples: list[SentimentSample]) -> dict[str, int]:
    """Sum the keyword histograms of all samples."""
    totals = {keyword: 0 for keyword in KEYWORDS}
    for sample in samples:
        for keyword in KEYWORDS:
            totals[keyword] += sample.keyword_mentions.get(keyword, 0)
    return totals


def key_signals(samples: list[SentimentSample]) -> list[str]:
    """Human readable signals found in the sample set."""
    signals = []
    keywords = aggregate_keywords(samples)

    if keywords["bullish"] > keywords["bearish"] * 2:
        signals.append("Strong bullish chatter")
    elif keywords["bearish"] > keywords["bullish"] * 2:
        signals.append("Strong bearish chatter")

    if keywords["moon"] > 10:
        signals.append("Moon talk heating up")

    if keywords["hodl"] > 5:
        signals.append("Holders showing conviction")

    if any(s.volume_spike for s in samples):
        signals.append("Mention volume spike")

    if samples:
        avg_trending = sum(s.trending_score for s in samples) / len(samples)
        if avg_trending > 70:
            signals.append("Trending across social feeds")

    return signals or ["Routine market sentiment"]


def assess_risk(score: float, volume: float, influencers: float) -> str:
    """Risk level from score extremity and social activity."""
    if (abs(score) > 70 and volume > 80) or influencers > 90:
        return "high"
    if abs(score) > 40 or volume > 50:
        return "medium"
    return "low"


def recommend(score: float, trend: str, risk: str) -> str:
    """Map score, trend and risk to a trade recommendation.

    Under high risk only buy, sell or hold are possible.
    """
    if risk == "high":
        if score > 60 and trend == "rising":
            return "buy"
        if score < -60 and trend == "falling":
            return "sell"
        return "hold"

    if score > 70 and trend == "rising":
        return "strong_buy"
    if score > 40 and trend == "rising":
        return "buy"
    if score < -70 and trend == "falling":
        return "strong_sell"
    if score < -40 and trend == "falling":
        return "sell"
    return "hold"


def analysis_confidence(sample_count: int, volume: float, influencers: float) -> float:
    """Confidence grows with sample count and social activity."""
    confidence = 50 + min(30, sample_count * 2) + volume * 0.2 + influencers * 0.1
    return _clip(confidence)


def sentiment_label(score: float) -> str:
    if score > 60:
        return "very_bullish"
    if score > 20:
        return "bullish"
    if score > -20:
        return "neutral"
    if score > -60:
        return "bearish"
    return "very_bearish"


def sentiment_alert_reasons(analysis: SentimentAnalysis) -> list[str]:
    """Rules that make an analysis worth an alert.

    Returns:
        One message per matched rule; empty if nothing matched.
    """
    symbol = analysis.token_symbol
    score = analysis.sentiment_score
    reasons = []

    if abs(score) > 80:
        mood = "bullish" if score > 0 else "bearish"
        reasons.append(f"{symbol} shows extreme {mood} sentiment ({score:.1f})")

    if analysis.trend_direction == "rising" and score > 50:
        reasons.append(f"{symbol} bullish sentiment rising fast")
    elif analysis.trend_direction == "falling" and score < -50:
        reasons.append(f"{symbol} bearish sentiment falling fast")

    if analysis.risk_level == "high":
        reasons.append(f"{symbol} sentiment volatility risk is high")

    return reasons


class SentimentAggregator:
    """Combines multi-source sentiment samples into one analysis."""

    def __init__(
        self,
        source_weights: Optional[dict[str, float]] = None,
        decay_hours: float = DEFAULT_DECAY_HOURS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.source_weights = dict(source_weights or DEFAULT_SOURCE_WEIGHTS)
        self.decay_hours = decay_hours
        self._clock = clock

    def analyze(
        self,
        token_address: str,
        samples: list[SentimentSample],
        token_symbol: str = "Unknown",
    ) -> Optional[SentimentAnalysis]:
        """Build a composite analysis for one token.

        Args:
            token_address: Token address.
            samples: The token's samples from the lookback window.
            token_symbol: Display symbol.

        Returns:
            SentimentAnalysis, or None if there are no samples.
        """
        if not samples:
            return None

        now = self._clock()
        score = composite_score(samples, now, self.source_weights, self.decay_hours)
        trend = trend_direction(samples)
        volume = social_volume(samples)
        influencers = influencer_activity(samples)
        risk = assess_risk(score, volume, influencers)

        return SentimentAnalysis(
            token_address=token_address,
            token_symbol=token_symbol,
            overall_sentiment=sentiment_label(score),
            sentiment_score=score,
            confidence=analysis_confidence(len(samples), volume, influencers),
            trend_direction=trend,
            social_volume=volume,
            influencer_activity=influencers,
            key_signals=key_signals(samples),
            risk_level=risk,
            recommendation=recommend(score, trend, risk),
            sample_count=len(samples),
            timestamp=now,
        )


class SentimentMonitor:
    """Periodic sentiment analysis over active tokens."""

    def __init__(
        self,
        source: BaseSampleSource,
        data_store: DataStore,
        sink: BaseBroadcastSink,
        aggregator: Optional[SentimentAggregator] = None,
        lookback_hours: int = 24,
        token_limit: int = 20,
    ):
        """Initialize the monitor.

        Args:
            source: Sample source for tokens and sentiment samples.
            data_store: Store for analyses, samples and alerts.
            sink: Broadcast sink for analyses and alerts.
            aggregator: Aggregator to use. Defaults to standard weights.
            lookback_hours: Sample lookback per analysis.
            token_limit: Active tokens analysed per cycle.
        """
        self._source = source
        self._data_store = data_store
        self._sink = sink
        self.aggregator = aggregator or SentimentAggregator()
        self.lookback_hours = lookback_hours
        self.token_limit = token_limit

    def get_history(self, token_address: str, hours: int = 24) -> list[SentimentSample]:
        return self._source.get_sentiment_samples(token_address, hours=hours)

    def analyze_token(self, token_address: str) -> Optional[SentimentAnalysis]:
        """Analyze one token from its lookback window of samples."""
        samples = self._source.get_sentiment_samples(token_address, hours=self.lookback_hours)
        info = self._source.get_token_info(token_address)
        return self.aggregator.analyze(
            token_address,
            samples,
            token_symbol=info.symbol if info else "Unknown",
        )

    def run_cycle(self) -> list[SentimentAnalysis]:
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
                self._persist(analysis)
                self._sink.emit(SENTIMENT_ANALYSIS, analysis.model_dump(mode="json"))
                self.check_alerts(analysis)
                analyses.append(analysis)
            except Exception:
                logger.exception("Sentiment analysis failed for %s", token_address)

        logger.debug("Sentiment cycle finished: %d tokens analysed", len(analyses))
        return analyses

    def _persist(self, analysis: SentimentAnalysis) -> None:
        try:
            self._data_store.save_sentiment_analysis(analysis)
        except sqlite3.Error as e:
            logger.error("%s", PersistenceFailure(f"Failed to save analysis: {e}"))

    def check_alerts(self, analysis: SentimentAnalysis) -> Optional[Alert]:
        """Raise a sentiment alert if any alert rule matches.

        Returns:
            The alert, or None if no rule matched.
        """
        reasons = sentiment_alert_reasons(analysis)
        if not reasons:
            return None

        alert = Alert(
            token_address=analysis.token_address,
            type="sentiment",
            title=reasons[0],
            message="; ".join(reasons),
            score=_clip(abs(analysis.sentiment_score)),
            conditions=reasons,
            severity="high" if analysis.risk_level == "high" else "medium",
            data={
                "token_symbol": analysis.token_symbol,
                "sentiment_score": analysis.sentiment_score,
                "trend_direction": analysis.trend_direction,
                "confidence": analysis.confidence,
                "recommendation": analysis.recommendation,
            },
            timestamp=analysis.timestamp,
        )

        try:
            alert_id = self._data_store.save_alert(alert)
            alert = alert.model_copy(update={"id": alert_id})
        except sqlite3.Error as e:
            logger.error("%s", PersistenceFailure(f"Failed to save sentiment alert: {e}"))

        self._sink.emit(NEW_ALERT, alert.model_dump(mode="json"))
        logger.info("Sentiment alert: %s", alert.message)
        return alert
