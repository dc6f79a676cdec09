"""Demo sample source that fills the store with random data.

Only meant for bootstrapping a local setup and for demos. Real deployments
write samples from upstream collectors and read them with StoreSampleSource.
"""

import random
import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

from tokenwatch.db.store import DataStore
from tokenwatch.models import (
    KOLProfile,
    KOLTransaction,
    PriceSample,
    SentimentSample,
    TokenInfo,
    VolumeSample,
)
from tokenwatch.sources.store import StoreSampleSource


DEMO_TOKENS = [
    TokenInfo(address="So11111111111111111111111111111111111111112", symbol="WSOL", name="Wrapped SOL"),
    TokenInfo(address="DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", symbol="BONK", name="Bonk"),
    TokenInfo(address="EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm", symbol="WIF", name="dogwifhat"),
    TokenInfo(address="7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr", symbol="POPCAT", name="Popcat"),
    TokenInfo(address="MEW1gQWJ3nEXg2qgERiKu7FAFj79PHvQVREQUzScPP5", symbol="MEW", name="cat in a dogs world"),
]

DEMO_KOLS = [
    KOLProfile(
        wallet_address="7BgBvyjrZX1YKz4oh9mjb8ZScatkkwb8DzFx6LnRTsAD",
        name="Solana Whale #1",
        category="trader",
        influence_score=85,
        success_rate=72.5,
        total_trades=156,
        profitable_trades=113,
        avg_profit_rate=45.2,
        tags=["whale", "early-adopter", "defi"],
    ),
    KOLProfile(
        wallet_address="9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM",
        name="PumpFun Expert",
        category="influencer",
        influence_score=78,
        success_rate=68.3,
        total_trades=89,
        profitable_trades=61,
        avg_profit_rate=38.7,
        followers_count=15000,
        verified=True,
        tags=["pumpfun", "meme-coins", "alpha"],
    ),
]

SOURCES = ("twitter", "telegram", "discord", "pump_comments")


class MockSampleSource(StoreSampleSource):
    """Store-backed source that can seed itself with random samples."""

    def __init__(
        self,
        data_store: DataStore,
        clock: Callable[[], datetime] = datetime.now,
        seed: Optional[int] = None,
    ):
        """Initialize the mock source.

        Args:
            data_store: DataStore to seed and read from.
            clock: Returns the current time; injectable for tests.
            seed: Optional random seed for reproducible demo data.
        """
        super().__init__(data_store, clock=clock)
        self._random = random.Random(seed)

    def seed(self, tokens: Optional[list[TokenInfo]] = None, points: int = 60) -> dict:
        """Populate the store with demo tokens, samples and KOLs.

        Args:
            tokens: Tokens to seed. Defaults to DEMO_TOKENS.
            points: Price/volume samples per token, one per minute.

        Returns:
            Dictionary with counts of seeded records.
        """
        tokens = tokens or DEMO_TOKENS
        now = self._clock()
        counts = {"tokens": 0, "price_samples": 0, "sentiment_samples": 0, "kols": 0, "kol_transactions": 0}

        for token in tokens:
            self._data_store.save_token(token)
            counts["tokens"] += 1

            prices, volumes = self._random_walk(token.address, now, points)
            self._data_store.save_price_samples(prices)
            self._data_store.save_volume_samples(volumes)
            counts["price_samples"] += len(prices)

            for source in SOURCES:
                self._data_store.save_sentiment_sample(self._random_sentiment(token.address, source, now))
                counts["sentiment_samples"] += 1

        for profile in DEMO_KOLS:
            if self._data_store.get_kol(profile.wallet_address, active_only=False) is None:
                self._data_store.save_kol(profile)
                counts["kols"] += 1
            for _ in range(3):
                token = self._random.choice(tokens)
                self._data_store.save_kol_transaction(self._random_transaction(profile, token, now))
                counts["kol_transactions"] += 1

        return counts

    def _random_walk(
        self, token_address: str, now: datetime, points: int
    ) -> tuple[list[PriceSample], list[VolumeSample]]:
        price = self._random.uniform(0.0001, 2.0)
        liquidity = self._random.uniform(5, 200)
        prices, volumes = [], []
        for i in range(points):
            timestamp = now - timedelta(minutes=points - i)
            price = max(1e-9, price * (1 + self._random.uniform(-0.08, 0.1)))
            prices.append(PriceSample(token_address=token_address, price=price, timestamp=timestamp))
            volume = self._random.uniform(50, 150)
            if self._random.random() > 0.95:
                volume *= self._random.uniform(3, 8)
            volumes.append(
                VolumeSample(
                    token_address=token_address,
                    volume=volume,
                    liquidity=liquidity,
                    timestamp=timestamp,
                )
            )
        return prices, volumes

    def _random_sentiment(self, token_address: str, source: str, now: datetime) -> SentimentSample:
        rnd = self._random
        return SentimentSample(
            token_address=token_address,
            source=source,
            score=rnd.uniform(-100, 100),
            positive_count=rnd.randint(0, 49),
            negative_count=rnd.randint(0, 29),
            neutral_count=rnd.randint(0, 19),
            total_mentions=rnd.randint(10, 109),
            keyword_mentions={
                "bullish": rnd.randint(0, 9),
                "bearish": rnd.randint(0, 7),
                "moon": rnd.randint(0, 14),
                "dump": rnd.randint(0, 4),
                "hodl": rnd.randint(0, 11),
                "sell": rnd.randint(0, 5),
            },
            influencer_mentions=rnd.randint(0, 4),
            volume_spike=rnd.random() > 0.8,
            trending_score=rnd.randint(0, 99),
            timestamp=now - timedelta(seconds=rnd.uniform(0, 24 * 3600)),
        )

    def _random_transaction(
        self, profile: KOLProfile, token: TokenInfo, now: datetime
    ) -> KOLTransaction:
        rnd = self._random
        amount = rnd.uniform(1_000, 1_000_000)
        price = rnd.uniform(0.00001, 0.01)
        return KOLTransaction(
            wallet_address=profile.wallet_address,
            token_address=token.address,
            transaction_hash=uuid.UUID(int=rnd.getrandbits(128)).hex,
            action=rnd.choice(["buy", "sell"]),
            amount=amount,
            price=price,
            value_sol=rnd.uniform(1, 200),
            timestamp=now - timedelta(minutes=rnd.randint(0, 120)),
            profit_loss=rnd.uniform(-50, 80),
        )
