"""Tests for sentiment aggregation and the sentiment monitor.

**Feature: token-alert-engine**
"""

from datetime import timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import NOW, TOKEN
from tokenwatch.broadcast import NEW_ALERT, SENTIMENT_ANALYSIS, MemorySink
from tokenwatch.engine.sentiment import (
    SentimentAggregator,
    SentimentMonitor,
    assess_risk,
    composite_score,
    key_signals,
    recommend,
    sentiment_label,
    trend_direction,
)
from tokenwatch.models import SentimentSample


def _sample(score, source="twitter", hours_ago=0.0, mentions=10, **kwargs):
    return SentimentSample(
        token_address=TOKEN,
        source=source,
        score=score,
        total_mentions=mentions,
        timestamp=NOW - timedelta(hours=hours_ago),
        **kwargs,
    )


sample_strategy = st.builds(
    _sample,
    score=st.floats(min_value=-100, max_value=100, allow_nan=False),
    source=st.sampled_from(["twitter", "telegram", "discord", "reddit", "pump_comments"]),
    hours_ago=st.floats(min_value=0, max_value=20_000, allow_nan=False),
    mentions=st.integers(min_value=0, max_value=10_000),
)


class TestCompositeScore:
    """
    **Feature: token-alert-engine, Property 5: Composite Score Is a Convex Combination**

    *For any* non-empty sample set, the composite score lies between the
    smallest and largest sample score.
    """

    @given(st.lists(sample_strategy, min_size=1, max_size=30))
    @settings(max_examples=100)
    def test_within_sample_range(self, samples):
        score = composite_score(samples, NOW)
        low = min(s.score for s in samples)
        high = max(s.score for s in samples)

        assert low - 1e-6 <= score <= high + 1e-6

    @given(st.floats(min_value=-100, max_value=100, allow_nan=False))
    @settings(max_examples=50)
    def test_single_sample_is_its_own_score(self, score):
        assert composite_score([_sample(score)], NOW) == pytest.approx(score)

    def test_empty_is_zero(self):
        assert composite_score([], NOW) == 0.0

    def test_source_weight_and_mentions(self):
        samples = [
            _sample(100, source="twitter", mentions=1),
            _sample(-100, source="pump_comments", mentions=1),
        ]
        # twitter 1.5 vs pump_comments 0.8
        expected = (100 * 1.5 - 100 * 0.8) / (1.5 + 0.8)
        assert composite_score(samples, NOW) == pytest.approx(expected)

    def test_recent_samples_dominate(self):
        samples = [_sample(80, hours_ago=0), _sample(-80, hours_ago=24)]
        assert composite_score(samples, NOW) > 0

    def test_fully_decayed_samples_keep_their_mean(self):
        # exp(-10000 / 12) underflows to 0.0 when measured from now
        samples = [_sample(50, hours_ago=10_000), _sample(30, hours_ago=10_000)]
        assert composite_score(samples, NOW) == pytest.approx(40)

    def test_zero_source_weights_fall_back_to_mean(self):
        samples = [_sample(50), _sample(30)]
        assert composite_score(samples, NOW, {"twitter": 0.0}) == pytest.approx(40)


class TestTrend:
    """
    **Feature: token-alert-engine, Property 6: Trend Classification**
    """

    @pytest.mark.parametrize(
        "scores,expected",
        [
            ([10, 20, 30, 40, 50, 60], "rising"),
            ([60, 50, 40, 30, 20, 10], "falling"),
            ([30, 30, 30], "stable"),
            ([10, 12, 11, 13], "stable"),
            ([50], "stable"),
        ],
    )
    def test_classification(self, scores, expected):
        samples = [_sample(score, hours_ago=len(scores) - i) for i, score in enumerate(scores)]
        assert trend_direction(samples) == expected

    def test_uses_recent_window_only(self):
        # Old crash followed by six flat readings
        scores = [90, -90] + [0] * 6
        samples = [_sample(score, hours_ago=len(scores) - i) for i, score in enumerate(scores)]
        assert trend_direction(samples) == "stable"

    def test_order_independent(self):
        samples = [_sample(score, hours_ago=4 - i) for i, score in enumerate([10, 20, 30, 40])]
        assert trend_direction(list(reversed(samples))) == "rising"


class TestDerivedFields:
    @pytest.mark.parametrize(
        "score,label",
        [(61, "very_bullish"), (60, "bullish"), (21, "bullish"), (0, "neutral"),
         (-20, "bearish"), (-60, "very_bearish")],
    )
    def test_label_thresholds(self, score, label):
        assert sentiment_label(score) == label

    def test_high_risk_caps_recommendation(self):
        assert recommend(90, "rising", "high") == "buy"
        assert recommend(90, "rising", "low") == "strong_buy"
        assert recommend(-90, "falling", "high") == "sell"
        assert recommend(-90, "falling", "medium") == "strong_sell"
        assert recommend(90, "stable", "low") == "hold"

    def test_risk_levels(self):
        assert assess_risk(75, 85, 0) == "high"
        assert assess_risk(0, 0, 95) == "high"
        assert assess_risk(45, 0, 0) == "medium"
        assert assess_risk(10, 10, 10) == "low"

    def test_key_signals(self):
        samples = [
            _sample(50, keyword_mentions={"bullish": 10, "bearish": 1, "moon": 11, "hodl": 6}),
        ]
        signals = key_signals(samples)

        assert "Strong bullish chatter" in signals
        assert "Moon talk heating up" in signals
        assert "Holders showing conviction" in signals

    def test_routine_fallback(self):
        assert key_signals([_sample(0)]) == ["Routine market sentiment"]


class TestAggregator:
    def test_no_samples_no_analysis(self):
        assert SentimentAggregator(clock=lambda: NOW).analyze(TOKEN, []) is None

    def test_analysis_fields(self):
        samples = [_sample(70 + i * 6, hours_ago=5 - i, mentions=50) for i in range(5)]
        analysis = SentimentAggregator(clock=lambda: NOW).analyze(TOKEN, samples, token_symbol="BONK")

        assert analysis.token_symbol == "BONK"
        assert analysis.sample_count == 5
        assert analysis.trend_direction == "rising"
        assert analysis.overall_sentiment == "very_bullish"
        assert analysis.social_volume == 100.0
        assert 0 <= analysis.confidence <= 100
        assert analysis.timestamp == NOW


class TestSentimentMonitor:
    """
    **Feature: token-alert-engine, Property 7: Sentiment Cycle Broadcasts**

    Each analysed token is persisted and broadcast; extreme readings also
    raise one alert.
    """

    def _monitor(self, fake_source, temp_db, sink):
        return SentimentMonitor(
            fake_source, temp_db, sink, aggregator=SentimentAggregator(clock=lambda: NOW)
        )

    def test_cycle_persists_and_broadcasts(self, fake_source, temp_db):
        sink = MemorySink()
        fake_source.sentiment[TOKEN] = [_sample(10, hours_ago=1), _sample(12)]

        analyses = self._monitor(fake_source, temp_db, sink).run_cycle()

        assert len(analyses) == 1
        assert len(sink.of_type(SENTIMENT_ANALYSIS)) == 1
        assert sink.of_type(NEW_ALERT) == []
        assert temp_db.get_latest_sentiment_analysis(TOKEN) is not None

    def test_extreme_sentiment_raises_one_alert(self, fake_source, temp_db):
        sink = MemorySink()
        fake_source.sentiment[TOKEN] = [
            _sample(70 + i * 7, hours_ago=4 - i, mentions=20) for i in range(5)
        ]

        self._monitor(fake_source, temp_db, sink).run_cycle()

        alerts = sink.of_type(NEW_ALERT)
        assert len(alerts) == 1
        assert alerts[0]["type"] == "sentiment"
        assert "extreme bullish" in alerts[0]["message"]
        assert "rising fast" in alerts[0]["message"]
        stored = temp_db.get_alerts()
        assert len(stored) == 1
        assert stored[0].type == "sentiment"

    def test_failing_token_does_not_stop_cycle(self, fake_source, temp_db):
        other = "So11111111111111111111111111111111111111112"
        fake_source.sentiment[TOKEN] = [_sample(10)]
        fake_source.sentiment[other] = [_sample(10)]
        monitor = self._monitor(fake_source, temp_db, MemorySink())

        original = monitor.analyze_token

        def flaky(token_address):
            if token_address == other:
                raise RuntimeError("boom")
            return original(token_address)

        monitor.analyze_token = flaky
        analyses = monitor.run_cycle()

        assert [a.token_address for a in analyses] == [TOKEN]

    def test_history_comes_from_source(self, fake_source, temp_db):
        samples = [_sample(10, hours_ago=2), _sample(-5, source="reddit")]
        fake_source.sentiment[TOKEN] = samples
        monitor = self._monitor(fake_source, temp_db, MemorySink())

        assert monitor.get_history(TOKEN, hours=6) == samples
        assert monitor.get_history("unknown-token") == []
