"""Breakout scan over short-window market snapshots."""

import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Callable, Optional

from tokenwatch.broadcast import NEW_ALERT, BaseBroadcastSink
from tokenwatch.db.store import DataStore
from tokenwatch.errors import PersistenceFailure
from tokenwatch.models import Alert, MarketSnapshot
from tokenwatch.sources.base import BaseSampleSource

logger = logging.getLogger(__name__)


def breakout_score(snapshot: MarketSnapshot) -> float:
    """Score a breakout from 0 to 100.

    Price, volume and liquidity each contribute a banded component.
    """
    score = 0.0

    if snapshot.price_change_5m > 100:
        score += 40
    elif snapshot.price_change_5m > 50:
        score += 30
    else:
        score += 20

    if snapshot.volume_change > 500:
        score += 30
    elif snapshot.volume_change > 300:
        score += 20
    else:
        score += 10

    if snapshot.liquidity > 50:
        score += 30
    elif snapshot.liquidity > 20:
        score += 20
    elif snapshot.liquidity > 10:
        score += 10

    return min(score, 100.0)


class BreakoutDetector:
    """Flags tokens whose price, volume and liquidity all jump at once.

    A token is re-flagged only after ``cooldown_minutes`` have passed since
    its previous breakout alert.
    """

    def __init__(
        self,
        source: BaseSampleSource,
        data_store: DataStore,
        sink: BaseBroadcastSink,
        min_price_change_5m: float = 50.0,
        min_volume_change: float = 300.0,
        min_liquidity: float = 10.0,
        cooldown_minutes: int = 30,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._source = source
        self._data_store = data_store
        self._sink = sink
        self.min_price_change_5m = min_price_change_5m
        self.min_volume_change = min_volume_change
        self.min_liquidity = min_liquidity
        self.cooldown = timedelta(minutes=cooldown_minutes)
        self._clock = clock
        self._last_flagged: dict[str, datetime] = {}

    def is_breakout(self, snapshot: MarketSnapshot) -> bool:
        return (
            snapshot.price_change_5m > self.min_price_change_5m
            and snapshot.volume_change > self.min_volume_change
            and snapshot.liquidity > self.min_liquidity
        )

    def scan(self, now: Optional[datetime] = None) -> list[Alert]:
        """Check every snapshot and raise alerts for new breakouts.

        Returns:
            Breakout alerts raised in this scan.
        """
        now = now or self._clock()
        alerts = []
        for snapshot in self._source.get_market_snapshots():
            if not self.is_breakout(snapshot):
                continue
            last = self._last_flagged.get(snapshot.token_address)
            if last is not None and now - last < self.cooldown:
                continue

            self._last_flagged[snapshot.token_address] = now
            alerts.append(self._raise(snapshot, now))
        return alerts

    def _raise(self, snapshot: MarketSnapshot, now: datetime) -> Alert:
        alert = Alert(
            token_address=snapshot.token_address,
            type="breakout",
            title=f"Breakout: {snapshot.symbol}",
            message=(
                f"{snapshot.symbol} up {snapshot.price_change_5m:.1f}% in 5m, "
                f"volume {snapshot.volume_change:+.0f}%, liquidity {snapshot.liquidity:.1f} SOL"
            ),
            score=breakout_score(snapshot),
            conditions=[
                f"price_change_5m > {self.min_price_change_5m:g}",
                f"volume_change > {self.min_volume_change:g}",
                f"liquidity > {self.min_liquidity:g}",
            ],
            severity="high",
            data=snapshot.model_dump(mode="json"),
            timestamp=now,
        )

        try:
            alert_id = self._data_store.save_alert(alert)
            alert = alert.model_copy(update={"id": alert_id})
        except sqlite3.Error as e:
            logger.error("%s", PersistenceFailure(f"Failed to save breakout alert: {e}"))

        self._sink.emit(NEW_ALERT, alert.model_dump(mode="json"))
        logger.info("Breakout detected: %s (score %.0f)", snapshot.symbol, alert.score)
        return alert
