"""Rule evaluation over recent time-series samples.

Each condition variant has exactly one handler. Only price change and
volume spike conditions read data; the remaining variants never trigger so
that configs using them fail closed.
"""

import logging
import math
from collections import defaultdict
from datetime import datetime
from typing import Callable, Optional, Union

from tokenwatch.errors import SampleUnavailable, UnknownConditionType
from tokenwatch.models import (
    KOLActivityCondition,
    MarketCapChangeCondition,
    PriceChangeCondition,
    PriceSample,
    SentimentChangeCondition,
    TechnicalIndicatorCondition,
    Trigger,
    VolumeSample,
    VolumeSpikeCondition,
)
from tokenwatch.sources.base import BaseSampleSource

logger = logging.getLogger(__name__)


def compare(operator: str, observed: float, value: Union[float, tuple[float, float]]) -> bool:
    """Compare an observed value against a condition threshold.

    Args:
        operator: Condition operator.
        observed: Observed value (e.g. percentage change).
        value: Scalar threshold or (low, high) range.

    Returns:
        True if the comparison holds.
    """
    threshold = value[0] if isinstance(value, tuple) else value

    if operator == "greater_than":
        return observed > threshold
    elif operator == "less_than":
        return observed < threshold
    elif operator == "percentage_change":
        return abs(observed) > abs(threshold)
    elif operator == "equals":
        return math.isclose(observed, threshold, rel_tol=1e-9, abs_tol=1e-9)
    elif operator == "between":
        low, high = value if isinstance(value, tuple) else (threshold, threshold)
        return low <= observed <= high

    return False


def find_price_change(
    condition: PriceChangeCondition, samples: list[PriceSample]
) -> Optional[tuple[PriceSample, PriceSample, float]]:
    """Find the most recent consecutive price move that satisfies a condition.

    Args:
        condition: Price change condition.
        samples: Price samples, oldest first, possibly spanning several tokens.

    Returns:
        (previous, current, change_percent) for the winning pair, or None.
    """
    by_token: dict[str, list[PriceSample]] = defaultdict(list)
    for sample in samples:
        by_token[sample.token_address].append(sample)

    pairs = []
    for token_samples in by_token.values():
        token_samples.sort(key=lambda s: s.timestamp)
        pairs.extend(zip(token_samples, token_samples[1:]))

    # Most recent move first
    pairs.sort(key=lambda pair: pair[1].timestamp, reverse=True)

    for previous, current in pairs:
        if previous.price <= 0:
            continue
        change_percent = (current.price - previous.price) / previous.price * 100
        if compare(condition.operator, change_percent, condition.value):
            return previous, current, change_percent
    return None


def find_volume_spike(
    samples: list[VolumeSample], multiple: float
) -> Optional[tuple[str, float, float, float]]:
    """Find the token whose peak volume exceeds a multiple of its average.

    Args:
        samples: Volume samples, possibly spanning several tokens.
        multiple: Threshold ratio of max to average volume.

    Returns:
        (token_address, avg_volume, max_volume, ratio) for the strongest
        spike above the threshold, or None.
    """
    by_token: dict[str, list[float]] = defaultdict(list)
    for sample in samples:
        by_token[sample.token_address].append(sample.volume)

    spikes = []
    for token_address, volumes in by_token.items():
        avg_volume = sum(volumes) / len(volumes)
        if avg_volume <= 0:
            continue
        max_volume = max(volumes)
        ratio = max_volume / avg_volume
        if ratio > multiple:
            spikes.append((token_address, avg_volume, max_volume, ratio))

    if not spikes:
        return None
    return max(spikes, key=lambda spike: spike[3])


class ConditionEvaluator:
    """Evaluates a single condition against recent samples.

    ``evaluate`` never raises: missing samples, unknown condition types and
    unexpected failures are logged and reported as no trigger.
    """

    def __init__(
        self,
        source: BaseSampleSource,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the evaluator.

        Args:
            source: Sample source to read time series from.
            clock: Returns the current time; injectable for tests.
        """
        self._source = source
        self._clock = clock
        self._handlers: dict[type, Callable] = {
            PriceChangeCondition: self._evaluate_price_change,
            VolumeSpikeCondition: self._evaluate_volume_spike,
            SentimentChangeCondition: self._never_triggers,
            KOLActivityCondition: self._never_triggers,
            TechnicalIndicatorCondition: self._never_triggers,
            MarketCapChangeCondition: self._never_triggers,
        }

    def evaluate(self, condition) -> Optional[Trigger]:
        """Evaluate a condition.

        Args:
            condition: Any condition variant.

        Returns:
            Trigger if the condition fired, None otherwise.
        """
        condition_type = getattr(condition, "type", type(condition).__name__)
        try:
            handler = self._handlers.get(type(condition))
            if handler is None:
                raise UnknownConditionType(condition_type)
            return handler(condition)
        except UnknownConditionType as e:
            logger.warning("%s; treating as never triggering", e)
        except SampleUnavailable as e:
            logger.debug("No trigger for %s: %s", condition_type, e)
        except Exception:
            logger.exception("Evaluating %s condition failed", condition_type)
        return None

    def _symbol(self, token_address: str) -> str:
        info = self._source.get_token_info(token_address)
        return info.symbol if info else "Unknown"

    def _evaluate_price_change(self, condition: PriceChangeCondition) -> Optional[Trigger]:
        samples = self._source.get_recent_price_samples(
            condition.token_address, condition.timeframe
        )
        if len(samples) < 2:
            raise SampleUnavailable(
                f"need at least two price samples in {condition.timeframe}, got {len(samples)}"
            )

        found = find_price_change(condition, samples)
        if found is None:
            return None

        previous, current, change_percent = found
        symbol = self._symbol(current.token_address)
        return Trigger(
            token_address=current.token_address,
            token_symbol=symbol,
            condition_type=condition.type,
            current_value=change_percent,
            threshold_value=condition.value,
            message=f"{symbol} price changed {change_percent:.2f}% in {condition.timeframe}",
            timestamp=self._clock(),
            data={
                "current_price": current.price,
                "previous_price": previous.price,
                "change_percent": change_percent,
                "timeframe": condition.timeframe,
            },
        )

    def _evaluate_volume_spike(self, condition: VolumeSpikeCondition) -> Optional[Trigger]:
        samples = self._source.get_recent_volume_samples(
            condition.token_address, condition.timeframe
        )
        if not samples:
            raise SampleUnavailable(f"no volume samples in {condition.timeframe}")

        found = find_volume_spike(samples, condition.threshold)
        if found is None:
            return None

        token_address, avg_volume, max_volume, ratio = found
        symbol = self._symbol(token_address)
        return Trigger(
            token_address=token_address,
            token_symbol=symbol,
            condition_type=condition.type,
            current_value=ratio,
            threshold_value=condition.value,
            message=f"{symbol} volume spiked {ratio:.2f}x in {condition.timeframe}",
            timestamp=self._clock(),
            data={
                "avg_volume": avg_volume,
                "max_volume": max_volume,
                "spike_ratio": ratio,
                "timeframe": condition.timeframe,
            },
        )

    def _never_triggers(self, condition) -> Optional[Trigger]:
        # Not wired to a data source yet
        return None
