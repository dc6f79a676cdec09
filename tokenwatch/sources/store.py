"""Sample source backed by the local SQLite data store."""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Optional

from tokenwatch.db.store import DataStore
from tokenwatch.models import (
    KOLTransaction,
    MarketSnapshot,
    PriceSample,
    SentimentSample,
    TokenInfo,
    VolumeSample,
)
from tokenwatch.models.alert_config import TIMEFRAME_WINDOWS
from tokenwatch.sources.base import BaseSampleSource


class StoreSampleSource(BaseSampleSource):
    """Reads samples that collectors have written to the data store."""

    # Window used to pick "active" tokens
    ACTIVE_WINDOW = timedelta(hours=24)

    def __init__(
        self,
        data_store: DataStore,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the source.

        Args:
            data_store: DataStore to read from.
            clock: Returns the current time; injectable for tests.
        """
        self._data_store = data_store
        self._clock = clock

    def _window_start(self, timeframe: str) -> datetime:
        window = TIMEFRAME_WINDOWS.get(timeframe, TIMEFRAME_WINDOWS["1h"])
        return self._clock() - window

    def get_recent_price_samples(
        self, token_address: Optional[str], timeframe: str
    ) -> list[PriceSample]:
        return self._data_store.get_price_samples(
            since=self._window_start(timeframe), token_address=token_address
        )

    def get_recent_volume_samples(
        self, token_address: Optional[str], timeframe: str
    ) -> list[VolumeSample]:
        return self._data_store.get_volume_samples(
            since=self._window_start(timeframe), token_address=token_address
        )

    def get_sentiment_samples(self, token_address: str, hours: int = 24) -> list[SentimentSample]:
        since = self._clock() - timedelta(hours=hours)
        return self._data_store.get_sentiment_samples(token_address, since=since)

    def get_kol_transactions(self, wallet_address: str, limit: int = 50) -> list[KOLTransaction]:
        return self._data_store.get_kol_transactions(wallet_address, limit=limit)

    def get_token_kol_transactions(self, token_address: str, hours: int = 24) -> list[KOLTransaction]:
        since = self._clock() - timedelta(hours=hours)
        return self._data_store.get_token_kol_transactions(token_address, since=since)

    def get_token_info(self, token_address: str) -> Optional[TokenInfo]:
        return self._data_store.get_token(token_address)

    def get_active_tokens(self, limit: int = 20) -> list[str]:
        return self._data_store.get_active_tokens(
            since=self._clock() - self.ACTIVE_WINDOW, limit=limit
        )

    def get_market_snapshots(self) -> list[MarketSnapshot]:
        """Derive 5 minute / 1 hour movement per active token.

        Volume change compares the last 5 minutes against the average
        5 minute volume over the rest of the hour (11 buckets).
        """
        now = self._clock()
        five_min_ago = now - timedelta(minutes=5)
        hour_ago = now - timedelta(hours=1)

        prices: dict[str, list[PriceSample]] = defaultdict(list)
        for sample in self._data_store.get_price_samples(since=hour_ago):
            prices[sample.token_address].append(sample)

        volumes: dict[str, list[VolumeSample]] = defaultdict(list)
        for sample in self._data_store.get_volume_samples(since=now - self.ACTIVE_WINDOW):
            volumes[sample.token_address].append(sample)

        snapshots = []
        for address in self.get_active_tokens():
            token_prices = prices.get(address, [])
            token_volumes = volumes.get(address, [])
            if not token_prices or not token_volumes:
                continue

            latest = token_prices[-1].price
            before_5m = [s for s in token_prices if s.timestamp <= five_min_ago]
            ref_5m = before_5m[-1].price if before_5m else token_prices[0].price
            ref_1h = token_prices[0].price

            recent_volume = sum(s.volume for s in token_volumes if s.timestamp > five_min_ago)
            prior_volume = sum(
                s.volume for s in token_volumes if hour_ago < s.timestamp <= five_min_ago
            )
            baseline = prior_volume / 11
            volume_change = (recent_volume - baseline) / baseline * 100 if baseline > 0 else 0.0

            info = self.get_token_info(address)
            snapshots.append(
                MarketSnapshot(
                    token_address=address,
                    symbol=info.symbol if info else "Unknown",
                    name=info.name if info else "",
                    price_change_5m=_percent_change(ref_5m, latest),
                    price_change_1h=_percent_change(ref_1h, latest),
                    volume_24h=sum(s.volume for s in token_volumes),
                    volume_change=volume_change,
                    liquidity=token_volumes[-1].liquidity,
                )
            )
        return snapshots


def _percent_change(previous: float, current: float) -> float:
    if previous <= 0:
        return 0.0
    return (current - previous) / previous * 100
