"""Tests for the composite token analyzer.

**Feature: token-alert-engine**
"""

from datetime import timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import NOW, TOKEN
from tokenwatch.broadcast import NEW_ALERT, SMART_ANALYSIS, MemorySink
from tokenwatch.engine.analysis import (
    TokenAnalyzer,
    analysis_alert_reasons,
    calculate_rsi,
    kol_view,
    market_score,
    market_view,
    overall_score,
    potential_score,
    price_trend,
    recommend_action,
    risk_score,
    technical_view,
)
from tokenwatch.engine.sentiment import SentimentAggregator, SentimentMonitor
from tokenwatch.models import (
    KOLTransaction,
    KOLView,
    MarketView,
    PriceSample,
    SentimentSample,
    SentimentView,
    TechnicalView,
    TokenAnalysis,
    TradeRecommendation,
    VolumeSample,
)


def _prices(values):
    start = NOW - timedelta(minutes=len(values))
    return [
        PriceSample(token_address=TOKEN, price=value, timestamp=start + timedelta(minutes=i))
        for i, value in enumerate(values)
    ]


def _tx(tx_hash, wallet, value_sol, action="buy"):
    return KOLTransaction(
        wallet_address=wallet,
        token_address=TOKEN,
        transaction_hash=tx_hash,
        action=action,
        amount=1000,
        price=0.01,
        value_sol=value_sol,
        timestamp=NOW - timedelta(hours=1),
    )


def _views(trend="neutral", sentiment="neutral", confidence=80.0, volume=5000.0, volatility=0.0):
    technical = TechnicalView(score=50, trend=trend)
    sentiment_view = SentimentView(score=50, sentiment=sentiment, confidence=confidence)
    market = MarketView(score=50, volume_24h=volume, volatility=volatility)
    return technical, sentiment_view, market


def _analysis(risk=50.0, potential=50.0, action="hold", confidence=50.0):
    return TokenAnalysis(
        token_address=TOKEN,
        token_symbol="BONK",
        overall_score=50,
        risk_score=risk,
        potential_score=potential,
        technical=TechnicalView(score=50),
        sentiment=SentimentView(score=50),
        kol=KOLView(score=50),
        market=MarketView(score=50),
        recommendation=TradeRecommendation(action=action, confidence=confidence),
        timestamp=NOW,
    )


class TestIndicators:
    """
    **Feature: token-alert-engine, Property 18: Technical Indicators Stay In Range**

    *For any* positive price series, RSI lies in [0, 100] once there is
    enough history.
    """

    @given(st.lists(st.floats(min_value=0.0001, max_value=1e6, allow_nan=False), min_size=15, max_size=60))
    @settings(max_examples=100)
    def test_rsi_bounds(self, prices):
        rsi = calculate_rsi(prices)
        assert rsi is not None
        assert 0 <= rsi <= 100

    def test_rsi_needs_history(self):
        assert calculate_rsi([1.0] * 14) is None

    def test_rsi_extremes_and_balance(self):
        assert calculate_rsi([float(i) for i in range(1, 16)]) == 100.0
        assert calculate_rsi([float(i) for i in range(15, 0, -1)]) == 0.0
        assert calculate_rsi([1.0, 2.0] * 8) == pytest.approx(50.0)

    @pytest.mark.parametrize(
        "prices,expected",
        [
            ([1.0] * 5 + [1.1] * 5, "bullish"),
            ([1.0] * 5 + [0.9] * 5, "bearish"),
            ([1.0] * 5 + [1.02] * 5, "neutral"),
            ([1.0, 2.0, 3.0, 4.0, 5.0], "neutral"),
            ([], "neutral"),
        ],
    )
    def test_price_trend(self, prices, expected):
        assert price_trend(prices) == expected

    def test_technical_view_rising(self):
        view = technical_view(_prices([float(i) for i in range(1, 16)]))

        assert view.trend == "bullish"
        assert view.rsi_signal == "sell"
        assert view.score == 60
        assert view.support == 1.0
        assert view.resistance == 15.0
        assert view.signals == ["RSI sell signal", "Price trending up"]

    def test_technical_view_without_prices(self):
        view = technical_view([])

        assert view.score == 50
        assert view.rsi is None
        assert view.signals == ["No clear technical signal"]


class TestKOLAndMarketViews:
    def test_no_kol_activity(self):
        view = kol_view([])

        assert view.score == 50
        assert view.influence_level == "low"
        assert view.recent_activity == ["No KOL activity"]

    def test_kol_activity_scoring(self):
        view = kol_view([
            _tx("a", "wallet-1", 600),
            _tx("b", "wallet-1", 500),
            _tx("c", "wallet-2", 10, action="sell"),
        ])

        assert view.active_kols == 2
        assert view.transaction_count == 3
        assert view.influence_level == "high"
        assert view.score == 86
        assert view.recent_activity == ["KOLs net buying"]

    @pytest.mark.parametrize(
        "volume,price_change,volatility,expected",
        [
            (20000, 10, 20, 80),
            (5000, 0, 5, 60),
            (50, -60, 150, 0),
        ],
    )
    def test_market_score(self, volume, price_change, volatility, expected):
        assert market_score(volume, price_change, volatility) == expected

    def test_market_view(self):
        volumes = [
            VolumeSample(token_address=TOKEN, volume=600, liquidity=5, timestamp=NOW - timedelta(hours=2)),
            VolumeSample(token_address=TOKEN, volume=400, liquidity=8, timestamp=NOW - timedelta(hours=1)),
        ]

        view = market_view(_prices([1.0, 2.0, 1.5]), volumes)

        assert view.volume_24h == 1000
        assert view.price_change_24h == pytest.approx(50.0)
        assert view.volatility == pytest.approx(100 / 1.5)
        assert view.liquidity == 8
        assert view.score == pytest.approx(65.0)


class TestCombinedScores:
    """
    **Feature: token-alert-engine, Property 19: Combined Scores Are Bounded**
    """

    def test_overall_weights(self):
        assert overall_score(
            TechnicalView(score=100), SentimentView(score=0), KOLView(score=0), MarketView(score=0)
        ) == 30
        assert overall_score(
            TechnicalView(score=50), SentimentView(score=50), KOLView(score=50), MarketView(score=50)
        ) == 50

    def test_risk_saturates(self):
        technical = TechnicalView(score=20, trend="bearish", rsi_signal="sell")
        sentiment = SentimentView(score=10, sentiment="very_bearish", confidence=40)
        market = MarketView(score=0, volume_24h=500, price_change_24h=-30, volatility=60)

        assert risk_score(technical, sentiment, market) == 100

    def test_neutral_risk(self):
        technical, sentiment, market = _views()
        assert risk_score(technical, sentiment, market) == 50

    def test_potential_saturates(self):
        technical = TechnicalView(score=80, trend="bullish", rsi_signal="buy")
        sentiment = SentimentView(score=90, sentiment="bullish", social_volume=80)
        kol = KOLView(score=100, active_kols=4, influence_level="high")
        market = MarketView(score=90, volume_24h=20000, price_change_24h=30)

        assert potential_score(technical, sentiment, kol, market) == 100


class TestRecommendation:
    @pytest.mark.parametrize(
        "overall,risk,action,confidence",
        [
            (85, 30, "strong_buy", 85),
            (70, 55, "buy", 70),
            (50, 50, "hold", 50),
            (30, 50, "sell", 75),
            (50, 82, "sell", 75),
            (15, 50, "strong_sell", 85),
            (50, 95, "strong_sell", 85),
        ],
    )
    def test_action_bands(self, overall, risk, action, confidence):
        technical, sentiment, market = _views()
        rec = recommend_action(overall, risk, 50, technical, sentiment, market)

        assert rec.action == action
        assert rec.confidence == confidence

    def test_neutral_fallbacks(self):
        technical, sentiment, market = _views()
        rec = recommend_action(50, 50, 50, technical, sentiment, market)

        assert rec.reasoning == ["Based on combined analysis"]
        assert rec.risk_factors == ["Routine market risk"]
        assert rec.time_horizon == "medium"

    def test_reasoning_and_risk_factors(self):
        technical, sentiment, market = _views(
            trend="bearish", sentiment="bearish", confidence=30, volume=200, volatility=80
        )
        rec = recommend_action(50, 50, 90, technical, sentiment, market)

        assert rec.reasoning == ["Technicals bearish", "Sentiment negative"]
        assert rec.risk_factors == [
            "High price volatility",
            "Thin trading volume",
            "Low sentiment confidence",
        ]
        assert rec.time_horizon == "short"

    def test_long_horizon_for_high_potential(self):
        technical, sentiment, market = _views()
        assert recommend_action(50, 50, 85, technical, sentiment, market).time_horizon == "long"


class TestAlertRules:
    def test_no_rule_matched(self):
        assert analysis_alert_reasons(_analysis()) == []

    def test_every_rule(self):
        reasons = analysis_alert_reasons(
            _analysis(risk=30, potential=90, action="strong_buy", confidence=85)
        )

        assert reasons == ["BONK shows high potential at low risk", "BONK strong buy signal"]
        assert analysis_alert_reasons(_analysis(risk=85)) == [
            "BONK risk is elevated, trade carefully"
        ]

    def test_strong_buy_needs_confidence(self):
        assert analysis_alert_reasons(_analysis(action="strong_buy", confidence=80)) == []


class TestTokenAnalyzer:
    """
    **Feature: token-alert-engine, Property 20: Analysis Cycle Broadcasts**

    Each analysed token is broadcast; matching rules raise one
    smart_analysis alert.
    """

    def _analyzer(self, fake_source, temp_db, sink):
        monitor = SentimentMonitor(
            fake_source, temp_db, sink, aggregator=SentimentAggregator(clock=lambda: NOW)
        )
        return TokenAnalyzer(fake_source, temp_db, sink, monitor, clock=lambda: NOW)

    def _sentiment(self, score):
        return [
            SentimentSample(
                token_address=TOKEN, source=source, score=score, total_mentions=10, timestamp=NOW
            )
            for source in ("twitter", "reddit")
        ]

    def test_unknown_token(self, fake_source, temp_db):
        analyzer = self._analyzer(fake_source, temp_db, MemorySink())
        assert analyzer.analyze_token("unknown-token") is None

    def test_views_use_source_data(self, fake_source, temp_db):
        fake_source.prices = _prices([float(i) for i in range(1, 16)])
        fake_source.sentiment[TOKEN] = self._sentiment(40)
        fake_source.transactions["wallet-1"] = [_tx("a", "wallet-1", 150)]
        fake_source.transactions["wallet-2"] = [_tx("b", "wallet-2", 20, action="sell")]

        analysis = self._analyzer(fake_source, temp_db, MemorySink()).analyze_token(TOKEN)

        assert analysis.token_symbol == "BONK"
        assert analysis.technical.trend == "bullish"
        assert analysis.sentiment.score == pytest.approx(70.0)
        assert analysis.sentiment.sentiment == "bullish"
        assert analysis.kol.active_kols == 2
        assert analysis.kol.influence_level == "medium"
        assert analysis.timestamp == NOW
        assert 0 <= analysis.overall_score <= 100

    def test_missing_sentiment_is_neutral(self, fake_source, temp_db):
        analyzer = self._analyzer(fake_source, temp_db, MemorySink())

        view = analyzer.sentiment_view(TOKEN)

        assert view.score == 50
        assert view.key_signals == ["No sentiment data"]

    def test_quiet_token_broadcasts_without_alert(self, fake_source, temp_db):
        sink = MemorySink()
        fake_source.sentiment[TOKEN] = self._sentiment(0)

        analyses = self._analyzer(fake_source, temp_db, sink).run_cycle()

        assert len(analyses) == 1
        assert analyses[0].risk_score == 65
        assert len(sink.of_type(SMART_ANALYSIS)) == 1
        assert sink.of_type(NEW_ALERT) == []

    def test_collapsing_token_raises_high_alert(self, fake_source, temp_db):
        sink = MemorySink()
        fake_source.prices = _prices([float(i) for i in range(15, 0, -1)])
        fake_source.sentiment[TOKEN] = self._sentiment(-80)

        [analysis] = self._analyzer(fake_source, temp_db, sink).run_cycle()

        assert analysis.risk_score == 100
        assert analysis.recommendation.action == "strong_sell"
        alerts = sink.of_type(NEW_ALERT)
        assert len(alerts) == 1
        assert alerts[0]["type"] == "smart_analysis"
        assert alerts[0]["severity"] == "high"
        stored = temp_db.get_alerts()
        assert len(stored) == 1
        assert stored[0].data["recommendation"] == "strong_sell"

    def test_failing_token_does_not_stop_cycle(self, fake_source, temp_db):
        other = "So11111111111111111111111111111111111111112"
        fake_source.sentiment[TOKEN] = self._sentiment(0)
        fake_source.sentiment[other] = self._sentiment(0)
        analyzer = self._analyzer(fake_source, temp_db, MemorySink())

        original = analyzer.analyze_token

        def flaky(token_address):
            if token_address == other:
                raise RuntimeError("boom")
            return original(token_address)

        analyzer.analyze_token = flaky

        assert [a.token_address for a in analyzer.run_cycle()] == [TOKEN]
