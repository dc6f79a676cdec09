"""KOL wallet tracking and trade-signal scoring."""

import logging
import sqlite3
from typing import Optional

from tokenwatch.broadcast import KOL_SIGNAL, BaseBroadcastSink
from tokenwatch.db.store import DataStore
from tokenwatch.errors import PersistenceFailure
from tokenwatch.models import KOLProfile, KOLSignal, KOLTransaction
from tokenwatch.sources.base import BaseSampleSource

logger = logging.getLogger(__name__)


CATEGORY_BONUS = {
    "institution": 15.0,
    "trader": 5.0,
    "influencer": 0.0,
}
VERIFIED_BONUS = 10.0
LARGE_TRADE_BONUS = 10.0
MEDIUM_TRADE_BONUS = 5.0


class KOLSignalScorer:
    """Turns a KOL transaction into a confidence scored signal.

    confidence = 50 + 0.3 * influence + 0.2 * success rate
                 + trade size bonus + verified bonus + category bonus,
    clipped to [0, 100].
    """

    def __init__(self, large_trade_sol: float = 100.0, medium_trade_sol: float = 50.0):
        """Initialize the scorer.

        Args:
            large_trade_sol: Trades above this value get the large trade bonus.
            medium_trade_sol: Trades above this value get the medium trade bonus.
        """
        self.large_trade_sol = large_trade_sol
        self.medium_trade_sol = medium_trade_sol

    def confidence(self, profile: KOLProfile, tx: KOLTransaction) -> float:
        confidence = 50.0
        confidence += profile.influence_score * 0.3
        confidence += profile.success_rate * 0.2

        if tx.value_sol > self.large_trade_sol:
            confidence += LARGE_TRADE_BONUS
        elif tx.value_sol > self.medium_trade_sol:
            confidence += MEDIUM_TRADE_BONUS

        if profile.verified:
            confidence += VERIFIED_BONUS

        confidence += CATEGORY_BONUS.get(profile.category, 0.0)
        return min(100.0, max(0.0, confidence))

    def reasoning(self, profile: KOLProfile, tx: KOLTransaction) -> str:
        reasons = []
        if profile.influence_score > 80:
            reasons.append("high influence KOL")
        if profile.success_rate > 70:
            reasons.append(f"{profile.success_rate:.1f}% historical success rate")
        if profile.verified:
            reasons.append("verified identity")
        if tx.value_sol > self.large_trade_sol:
            reasons.append("large trade")
        if profile.category == "institution":
            reasons.append("institutional investor")
        return ", ".join(reasons) or "routine trade signal"

    def score(
        self, profile: KOLProfile, tx: KOLTransaction, token_symbol: str = "Unknown"
    ) -> KOLSignal:
        """Score a transaction against the profile of the wallet that made it.

        Args:
            profile: Profile of the trading wallet.
            tx: The transaction.
            token_symbol: Display symbol of the traded token.

        Returns:
            KOLSignal with confidence and reasoning.
        """
        return KOLSignal(
            wallet_address=tx.wallet_address,
            kol_name=profile.name or "Unknown KOL",
            token_address=tx.token_address,
            token_symbol=token_symbol,
            action=tx.action,
            amount=tx.amount,
            price=tx.price,
            value_sol=tx.value_sol,
            confidence=self.confidence(profile, tx),
            reasoning=self.reasoning(profile, tx),
            timestamp=tx.timestamp,
        )


class KOLTracker:
    """Tracks monitored KOL wallets and publishes their trade signals.

    Signals are always recorded; only those at or above
    ``broadcast_confidence`` are broadcast.
    """

    def __init__(
        self,
        source: BaseSampleSource,
        data_store: DataStore,
        sink: BaseBroadcastSink,
        scorer: Optional[KOLSignalScorer] = None,
        broadcast_confidence: float = 70.0,
        transactions_per_poll: int = 20,
    ):
        self._source = source
        self._data_store = data_store
        self._sink = sink
        self.scorer = scorer or KOLSignalScorer()
        self.broadcast_confidence = broadcast_confidence
        self.transactions_per_poll = transactions_per_poll
        self._monitored: set[str] = set()
        # Hashes from each wallet's latest fetch window
        self._seen: dict[str, set[str]] = {}

    @property
    def monitored(self) -> set[str]:
        return set(self._monitored)

    def load_active_kols(self) -> int:
        """Reload the monitored wallet set from the store.

        Transactions already known for newly monitored wallets are marked as
        seen so that the next poll only scores new activity.

        Returns:
            Number of monitored wallets.
        """
        wallets = {profile.wallet_address for profile in self._data_store.get_kols(limit=10_000)}
        for wallet in wallets - self._monitored:
            transactions = self._source.get_kol_transactions(wallet, limit=self.transactions_per_poll)
            self._seen[wallet] = {tx.transaction_hash for tx in transactions}
        for wallet in self._monitored - wallets:
            self._seen.pop(wallet, None)
        self._monitored = wallets
        logger.info("Monitoring %d KOL wallets", len(wallets))
        return len(wallets)

    def add_kol(self, profile: KOLProfile) -> int:
        """Start tracking a wallet.

        Raises:
            PersistenceFailure: If the wallet is already tracked or the write fails.
        """
        try:
            kol_id = self._data_store.save_kol(profile)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to add KOL {profile.wallet_address}: {e}") from e
        if profile.is_active:
            self._monitored.add(profile.wallet_address)
        logger.info("Added KOL %s (%s)", profile.name, profile.wallet_address)
        return kol_id

    def list_kols(self, limit: int = 50, offset: int = 0) -> list[KOLProfile]:
        return self._data_store.get_kols(limit=limit, offset=offset)

    def record_transaction(self, tx: KOLTransaction) -> Optional[KOLSignal]:
        """Append a transaction and score it.

        Transactions from unmonitored wallets and already recorded hashes
        are ignored.

        Returns:
            The scored signal, or None if the transaction was ignored.
        """
        if tx.wallet_address not in self._monitored:
            return None
        try:
            tx_id = self._data_store.save_kol_transaction(tx)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to record transaction {tx.transaction_hash}: {e}") from e
        if not tx_id:
            return None
        self._seen.setdefault(tx.wallet_address, set()).add(tx.transaction_hash)
        logger.info("Recorded KOL %s of %.2f tokens", tx.action, tx.amount)
        return self.generate_signal(tx)

    def generate_signal(self, tx: KOLTransaction) -> Optional[KOLSignal]:
        """Score a transaction, record the signal and broadcast it if confident.

        Returns:
            The signal, or None if the wallet has no active profile.
        """
        profile = self._data_store.get_kol(tx.wallet_address)
        if profile is None:
            return None

        info = self._source.get_token_info(tx.token_address)
        signal = self.scorer.score(profile, tx, token_symbol=info.symbol if info else "Unknown")

        try:
            signal_id = self._data_store.save_kol_signal(signal)
            signal = signal.model_copy(update={"id": signal_id})
        except sqlite3.Error as e:
            logger.error("%s", PersistenceFailure(f"Failed to save KOL signal: {e}"))

        if signal.confidence >= self.broadcast_confidence:
            self._sink.emit(KOL_SIGNAL, signal.model_dump(mode="json"))
            logger.info(
                "KOL signal: %s %s %s (%.0f)",
                signal.kol_name, signal.action, signal.token_symbol, signal.confidence,
            )
        return signal

    def poll(self) -> list[KOLSignal]:
        """Score transactions that appeared since the last poll.

        A wallet's latest ``transactions_per_poll`` hashes are remembered
        between polls; anything in the current window that was not in the
        previous one is new.

        Returns:
            Signals generated in this poll.
        """
        signals = []
        for wallet in sorted(self._monitored):
            try:
                transactions = self._source.get_kol_transactions(
                    wallet, limit=self.transactions_per_poll
                )
                seen = self._seen.get(wallet, set())
                self._seen[wallet] = {tx.transaction_hash for tx in transactions}
                for tx in sorted(transactions, key=lambda t: t.timestamp):
                    if tx.transaction_hash in seen:
                        continue
                    signal = self.generate_signal(tx)
                    if signal is not None:
                        signals.append(signal)
            except Exception:
                logger.exception("Polling KOL wallet %s failed", wallet)
        return signals

    def update_statistics(self) -> int:
        """Recompute trade statistics of every monitored wallet.

        Returns:
            Number of profiles updated.
        """
        updated = 0
        for profile in self._data_store.get_kols(limit=10_000):
            try:
                stats = self._data_store.get_kol_trade_stats(profile.wallet_address)
                if stats["total_trades"] == 0:
                    continue
                self._data_store.update_kol_statistics(
                    profile.wallet_address,
                    total_trades=stats["total_trades"],
                    profitable_trades=stats["profitable_trades"],
                    success_rate=stats["profitable_trades"] / stats["total_trades"] * 100,
                    avg_profit_rate=stats["avg_profit"],
                )
                updated += 1
            except sqlite3.Error as e:
                logger.error("%s", PersistenceFailure(f"Failed to update {profile.wallet_address}: {e}"))
        logger.debug("Updated statistics for %d KOLs", updated)
        return updated

    def run_cycle(self) -> list[KOLSignal]:
        """Poll new transactions, then refresh statistics."""
        signals = self.poll()
        self.update_statistics()
        return signals
