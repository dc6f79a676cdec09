"""Tests for condition evaluation.

**Feature: token-alert-engine**
"""

from datetime import timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import NOW, TOKEN
from tokenwatch.engine.conditions import ConditionEvaluator, compare, find_volume_spike
from tokenwatch.errors import SampleUnavailable
from tokenwatch.models import (
    KOLActivityCondition,
    MarketCapChangeCondition,
    PriceChangeCondition,
    PriceSample,
    SentimentChangeCondition,
    TechnicalIndicatorCondition,
    VolumeSample,
    VolumeSpikeCondition,
)


def _prices(values, token=TOKEN):
    start = NOW - timedelta(minutes=len(values))
    return [
        PriceSample(token_address=token, price=price, timestamp=start + timedelta(minutes=i))
        for i, price in enumerate(values)
    ]


def _volumes(values, token=TOKEN):
    start = NOW - timedelta(minutes=len(values))
    return [
        VolumeSample(token_address=token, volume=volume, timestamp=start + timedelta(minutes=i))
        for i, volume in enumerate(values)
    ]


@pytest.fixture
def evaluator(fake_source):
    return ConditionEvaluator(fake_source, clock=lambda: NOW)


class TestCompare:
    """
    **Feature: token-alert-engine, Property 1: Operator Semantics**

    *For any* observed value, each operator compares it against the
    threshold as documented.
    """

    @given(
        observed=st.floats(min_value=-1e6, max_value=1e6, allow_nan=False),
        threshold=st.floats(min_value=-1e6, max_value=1e6, allow_nan=False),
    )
    @settings(max_examples=100)
    def test_greater_and_less_than(self, observed: float, threshold: float):
        assert compare("greater_than", observed, threshold) == (observed > threshold)
        assert compare("less_than", observed, threshold) == (observed < threshold)

    def test_percentage_change_uses_magnitude(self):
        assert compare("percentage_change", -60.0, 50.0)
        assert compare("percentage_change", 60.0, 50.0)
        assert not compare("percentage_change", -40.0, 50.0)

    def test_between_is_inclusive(self):
        assert compare("between", 10.0, (10.0, 20.0))
        assert compare("between", 20.0, (10.0, 20.0))
        assert not compare("between", 20.5, (10.0, 20.0))

    def test_equals(self):
        assert compare("equals", 50.0, 50.0)
        assert not compare("equals", 50.1, 50.0)


class TestPriceChange:
    """
    **Feature: token-alert-engine, Property 2: Price Change Detection**

    A consecutive move whose percentage change satisfies the condition
    triggers; anything else does not.
    """

    def test_surge_triggers(self, evaluator, fake_source):
        fake_source.prices = _prices([1.0, 1.6])
        condition = PriceChangeCondition(operator="greater_than", value=50)

        trigger = evaluator.evaluate(condition)

        assert trigger is not None
        assert trigger.condition_type == "price_change"
        assert trigger.current_value == pytest.approx(60.0)
        assert trigger.token_address == TOKEN
        assert trigger.token_symbol == "BONK"
        assert trigger.data["previous_price"] == 1.0
        assert trigger.data["current_price"] == 1.6
        assert trigger.data["timeframe"] == "1h"

    def test_below_threshold_does_not_trigger(self, evaluator, fake_source):
        fake_source.prices = _prices([1.0, 1.6])
        assert evaluator.evaluate(PriceChangeCondition(value=70)) is None

    def test_most_recent_move_wins(self, evaluator, fake_source):
        fake_source.prices = _prices([1.0, 2.0, 3.2])
        trigger = evaluator.evaluate(PriceChangeCondition(value=50))

        assert trigger is not None
        assert trigger.current_value == pytest.approx(60.0)
        assert trigger.data["previous_price"] == 2.0

    def test_drop_with_less_than(self, evaluator, fake_source):
        fake_source.prices = _prices([2.0, 1.0])
        trigger = evaluator.evaluate(PriceChangeCondition(operator="less_than", value=-30))

        assert trigger is not None
        assert trigger.current_value == pytest.approx(-50.0)

    def test_pairs_never_span_tokens(self, evaluator, fake_source):
        other = "So11111111111111111111111111111111111111112"
        fake_source.prices = _prices([1.0], token=TOKEN) + _prices([5.0], token=other)
        assert evaluator.evaluate(PriceChangeCondition(value=50)) is None

    def test_token_scope(self, evaluator, fake_source):
        other = "So11111111111111111111111111111111111111112"
        fake_source.prices = _prices([1.0, 2.0], token=other) + _prices([1.0, 1.01])
        condition = PriceChangeCondition(value=50, token_address=TOKEN)
        assert evaluator.evaluate(condition) is None

    @pytest.mark.parametrize("values", [[], [1.0]])
    def test_insufficient_samples(self, evaluator, fake_source, values):
        fake_source.prices = _prices(values)
        with pytest.raises(SampleUnavailable):
            evaluator._evaluate_price_change(PriceChangeCondition(value=50))
        assert evaluator.evaluate(PriceChangeCondition(value=50)) is None


class TestVolumeSpike:
    """
    **Feature: token-alert-engine, Property 3: Volume Spike Detection**

    A spike triggers when the peak volume exceeds the threshold multiple of
    the window average.
    """

    def test_spike_triggers(self, evaluator, fake_source):
        fake_source.volumes = _volumes([600, 0, 0, 0, 0, 0])
        trigger = evaluator.evaluate(VolumeSpikeCondition(value=5))

        assert trigger is not None
        assert trigger.current_value == pytest.approx(6.0)
        assert trigger.data["avg_volume"] == pytest.approx(100.0)
        assert trigger.data["max_volume"] == 600
        assert trigger.data["spike_ratio"] == pytest.approx(6.0)

    def test_higher_threshold_does_not_trigger(self, evaluator, fake_source):
        fake_source.volumes = _volumes([600, 0, 0, 0, 0, 0])
        assert evaluator.evaluate(VolumeSpikeCondition(value=10)) is None

    def test_flat_volume_does_not_trigger(self, evaluator, fake_source):
        fake_source.volumes = _volumes([100] * 6)
        assert evaluator.evaluate(VolumeSpikeCondition(value=1)) is None

    def test_strongest_spike_across_tokens(self):
        other = "So11111111111111111111111111111111111111112"
        samples = _volumes([300, 0, 0]) + _volumes([800, 0, 0, 0], token=other)
        token, _, _, ratio = find_volume_spike(samples, 2)

        assert token == other
        assert ratio == pytest.approx(4.0)

    def test_no_samples(self, evaluator, fake_source):
        assert evaluator.evaluate(VolumeSpikeCondition(value=5)) is None


class TestFailClosed:
    """
    **Feature: token-alert-engine, Property 4: Evaluation Never Raises**

    Unimplemented condition types and failing sources report no trigger.
    """

    @pytest.mark.parametrize(
        "condition",
        [
            SentimentChangeCondition(value=10),
            KOLActivityCondition(value=1),
            TechnicalIndicatorCondition(value=70),
            MarketCapChangeCondition(value=20),
        ],
    )
    def test_unwired_conditions_never_trigger(self, evaluator, fake_source, condition):
        fake_source.prices = _prices([1.0, 100.0])
        fake_source.volumes = _volumes([1000, 0, 0])
        assert evaluator.evaluate(condition) is None

    def test_source_failure_is_contained(self, evaluator, fake_source):
        fake_source.fail_with = RuntimeError("upstream down")
        assert evaluator.evaluate(PriceChangeCondition(value=50)) is None

    def test_unknown_condition_object(self, evaluator):
        class Custom:
            type = "custom"

        assert evaluator.evaluate(Custom()) is None
