"""Tests for the store-backed and demo sample sources.

**Feature: token-alert-engine**
"""

from datetime import timedelta

import pytest

from conftest import NOW, TOKEN
from tokenwatch.models import KOLTransaction, PriceSample, TokenInfo, VolumeSample
from tokenwatch.sources import MockSampleSource, StoreSampleSource
from tokenwatch.sources.mock import DEMO_KOLS, DEMO_TOKENS


class TestStoreSampleSource:
    @pytest.fixture
    def source(self, temp_db):
        temp_db.save_token(TokenInfo(address=TOKEN, symbol="BONK", name="Bonk"))
        return StoreSampleSource(temp_db, clock=lambda: NOW)

    def test_timeframe_window(self, source, temp_db):
        temp_db.save_price_samples([
            PriceSample(token_address=TOKEN, price=1.0, timestamp=NOW - timedelta(minutes=10)),
            PriceSample(token_address=TOKEN, price=2.0, timestamp=NOW - timedelta(minutes=2)),
        ])

        assert [s.price for s in source.get_recent_price_samples(TOKEN, "5m")] == [2.0]
        assert [s.price for s in source.get_recent_price_samples(None, "15m")] == [1.0, 2.0]

    def test_market_snapshot(self, source, temp_db):
        # Flat hour of volume, then a burst in the last five minutes
        temp_db.save_price_samples([
            PriceSample(token_address=TOKEN, price=1.0, timestamp=NOW - timedelta(minutes=50)),
            PriceSample(token_address=TOKEN, price=1.0, timestamp=NOW - timedelta(minutes=6)),
            PriceSample(token_address=TOKEN, price=2.0, timestamp=NOW - timedelta(minutes=1)),
        ])
        temp_db.save_volume_samples(
            [
                VolumeSample(
                    token_address=TOKEN, volume=100, liquidity=40,
                    timestamp=NOW - timedelta(minutes=5 * i + 6),
                )
                for i in range(11)
            ]
            + [
                VolumeSample(
                    token_address=TOKEN, volume=500, liquidity=40,
                    timestamp=NOW - timedelta(minutes=1),
                )
            ]
        )

        [snapshot] = source.get_market_snapshots()

        assert snapshot.symbol == "BONK"
        assert snapshot.price_change_5m == pytest.approx(100.0)
        assert snapshot.price_change_1h == pytest.approx(100.0)
        assert snapshot.volume_change == pytest.approx(400.0)
        assert snapshot.liquidity == 40

    def test_token_kol_transactions_window(self, source, temp_db):
        def tx(tx_hash, wallet, token, hours_ago):
            return KOLTransaction(
                wallet_address=wallet,
                token_address=token,
                transaction_hash=tx_hash,
                action="buy",
                amount=1000,
                price=0.01,
                value_sol=10,
                timestamp=NOW - timedelta(hours=hours_ago),
            )

        temp_db.save_kol_transaction(tx("old", "wallet-a", TOKEN, 30))
        temp_db.save_kol_transaction(tx("a", "wallet-a", TOKEN, 3))
        temp_db.save_kol_transaction(tx("b", "wallet-b", TOKEN, 1))
        temp_db.save_kol_transaction(tx("other", "wallet-b", "other-token", 1))

        recent = source.get_token_kol_transactions(TOKEN, hours=24)

        assert [t.transaction_hash for t in recent] == ["b", "a"]


class TestMockSampleSource:
    def test_seed_is_readable(self, temp_db):
        source = MockSampleSource(temp_db, seed=7)
        counts = source.seed(points=30)

        assert counts["tokens"] == len(DEMO_TOKENS)
        assert counts["kols"] == len(DEMO_KOLS)
        assert counts["price_samples"] == 30 * len(DEMO_TOKENS)
        assert len(source.get_active_tokens(limit=50)) == len(DEMO_TOKENS)
        assert len(temp_db.get_kols()) == len(DEMO_KOLS)

    def test_seed_twice_keeps_single_profiles(self, temp_db):
        source = MockSampleSource(temp_db, seed=1)
        source.seed(points=5)
        counts = source.seed(points=5)

        assert counts["kols"] == 0
        assert len(temp_db.get_kols()) == len(DEMO_KOLS)
