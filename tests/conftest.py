"""Shared fixtures for TokenWatch tests."""

import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest

from tokenwatch.db.store import DataStore
from tokenwatch.models import (
    KOLTransaction,
    MarketSnapshot,
    PriceSample,
    SentimentSample,
    TokenInfo,
    VolumeSample,
)
from tokenwatch.sources.base import BaseSampleSource


NOW = datetime(2024, 6, 1, 12, 0, 0)

TOKEN = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


class FakeSource(BaseSampleSource):
    """In-memory sample source with settable series."""

    def __init__(self):
        self.prices: list[PriceSample] = []
        self.volumes: list[VolumeSample] = []
        self.sentiment: dict[str, list[SentimentSample]] = {}
        self.transactions: dict[str, list[KOLTransaction]] = {}
        self.tokens: dict[str, TokenInfo] = {}
        self.snapshots: list[MarketSnapshot] = []
        self.fail_with: Optional[Exception] = None
        self.calls = 0

    def _check(self) -> None:
        self.calls += 1
        if self.fail_with is not None:
            raise self.fail_with

    def get_recent_price_samples(self, token_address, timeframe):
        self._check()
        return [s for s in self.prices if token_address is None or s.token_address == token_address]

    def get_recent_volume_samples(self, token_address, timeframe):
        self._check()
        return [s for s in self.volumes if token_address is None or s.token_address == token_address]

    def get_sentiment_samples(self, token_address, hours=24):
        return list(self.sentiment.get(token_address, []))

    def get_kol_transactions(self, wallet_address, limit=50):
        return list(self.transactions.get(wallet_address, []))[:limit]

    def get_token_kol_transactions(self, token_address, hours=24):
        txs = [tx for wallet_txs in self.transactions.values() for tx in wallet_txs]
        return sorted(
            (tx for tx in txs if tx.token_address == token_address),
            key=lambda tx: tx.timestamp,
            reverse=True,
        )

    def get_token_info(self, token_address):
        return self.tokens.get(token_address)

    def get_active_tokens(self, limit=20):
        return sorted(self.sentiment)[:limit]

    def get_market_snapshots(self):
        return list(self.snapshots)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        yield DataStore(db_path)


@pytest.fixture
def fake_source():
    source = FakeSource()
    source.tokens[TOKEN] = TokenInfo(address=TOKEN, symbol="BONK", name="Bonk")
    return source
