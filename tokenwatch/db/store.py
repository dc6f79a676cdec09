"""SQLite data store for TokenWatch."""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from tokenwatch.models import (
    Alert,
    AlertConfig,
    KOLProfile,
    KOLSignal,
    KOLTransaction,
    PriceSample,
    SentimentAnalysis,
    SentimentSample,
    TokenInfo,
    VolumeSample,
)

logger = logging.getLogger(__name__)


def _iso(value: datetime) -> str:
    """Serialize a timestamp so that string order matches time order."""
    return value.isoformat(timespec="microseconds")


class DataStore:
    """SQLite-based data store for TokenWatch."""

    REQUIRED_TABLES = [
        "tokens",
        "price_samples",
        "volume_samples",
        "sentiment_samples",
        "sentiment_analyses",
        "kol_profiles",
        "kol_transactions",
        "kol_signals",
        "alert_configs",
        "alerts",
    ]

    def __init__(self, db_path: Path):
        """Initialize the data store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS tokens (
                    address TEXT PRIMARY KEY,
                    symbol TEXT NOT NULL,
                    name TEXT NOT NULL DEFAULT ''
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS price_samples (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    token_address TEXT NOT NULL,
                    price REAL NOT NULL,
                    timestamp TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS volume_samples (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    token_address TEXT NOT NULL,
                    volume REAL NOT NULL,
                    liquidity REAL NOT NULL DEFAULT 0,
                    timestamp TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS sentiment_samples (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    token_address TEXT NOT NULL,
                    source TEXT NOT NULL,
                    score REAL NOT NULL,
                    positive_count INTEGER NOT NULL,
                    negative_count INTEGER NOT NULL,
                    neutral_count INTEGER NOT NULL,
                    total_mentions INTEGER NOT NULL,
                    keyword_mentions TEXT NOT NULL,
                    influencer_mentions INTEGER NOT NULL,
                    volume_spike INTEGER NOT NULL DEFAULT 0,
                    trending_score REAL NOT NULL,
                    timestamp TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS sentiment_analyses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    token_address TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    timestamp TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS kol_profiles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    wallet_address TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL DEFAULT '',
                    category TEXT NOT NULL,
                    influence_score REAL NOT NULL,
                    success_rate REAL NOT NULL,
                    total_trades INTEGER NOT NULL DEFAULT 0,
                    profitable_trades INTEGER NOT NULL DEFAULT 0,
                    avg_profit_rate REAL NOT NULL DEFAULT 0,
                    followers_count INTEGER NOT NULL DEFAULT 0,
                    verified INTEGER NOT NULL DEFAULT 0,
                    tags TEXT NOT NULL DEFAULT '[]',
                    is_active INTEGER NOT NULL DEFAULT 1
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS kol_transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    wallet_address TEXT NOT NULL,
                    token_address TEXT NOT NULL,
                    transaction_hash TEXT NOT NULL UNIQUE,
                    action TEXT NOT NULL,
                    amount REAL NOT NULL,
                    price REAL NOT NULL,
                    value_sol REAL NOT NULL,
                    timestamp TEXT NOT NULL,
                    profit_loss REAL,
                    holding_period INTEGER
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS kol_signals (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    wallet_address TEXT NOT NULL,
                    token_address TEXT NOT NULL,
                    action TEXT NOT NULL,
                    confidence REAL NOT NULL,
                    payload TEXT NOT NULL,
                    timestamp TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS alert_configs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    conditions TEXT NOT NULL,
                    actions TEXT NOT NULL,
                    cooldown_minutes INTEGER NOT NULL,
                    priority TEXT NOT NULL,
                    tags TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT,
                    last_triggered_at TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS alerts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    token_address TEXT NOT NULL,
                    type TEXT NOT NULL,
                    title TEXT NOT NULL,
                    message TEXT NOT NULL,
                    score REAL NOT NULL,
                    conditions TEXT NOT NULL,
                    severity TEXT NOT NULL,
                    config_id INTEGER,
                    data TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    is_read INTEGER NOT NULL DEFAULT 0
                )
            """)

            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_price_token_time "
                "ON price_samples (token_address, timestamp)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_volume_token_time "
                "ON volume_samples (token_address, timestamp)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_sentiment_token_time "
                "ON sentiment_samples (token_address, timestamp)"
            )

            conn.commit()
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Tokens ====================

    def save_token(self, token: TokenInfo) -> None:
        """Save or update token display information.

        Args:
            token: Token to save.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT OR REPLACE INTO tokens (address, symbol, name) VALUES (?, ?, ?)",
                (token.address, token.symbol, token.name),
            )
            conn.commit()
        finally:
            conn.close()

    def get_token(self, address: str) -> Optional[TokenInfo]:
        """Get token display information.

        Args:
            address: Token address.

        Returns:
            TokenInfo if known, None otherwise.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT address, symbol, name FROM tokens WHERE address = ?",
                (address,),
            )
            row = cursor.fetchone()
            if row:
                return TokenInfo(address=row["address"], symbol=row["symbol"], name=row["name"])
            return None
        finally:
            conn.close()

    def get_tokens(self) -> list[TokenInfo]:
        """Get all known tokens."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT address, symbol, name FROM tokens ORDER BY symbol")
            return [
                TokenInfo(address=row["address"], symbol=row["symbol"], name=row["name"])
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    def get_active_tokens(self, since: datetime, limit: int = 20) -> list[str]:
        """Get tokens that traded since a point in time, busiest first.

        Args:
            since: Only consider volume samples after this timestamp.
            limit: Maximum number of tokens.

        Returns:
            Token addresses ordered by traded volume, descending.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT token_address, SUM(volume) AS total_volume
                FROM volume_samples
                WHERE timestamp > ?
                GROUP BY token_address
                ORDER BY total_volume DESC
                LIMIT ?
                """,
                (_iso(since), limit),
            )
            return [row["token_address"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Price / Volume ====================

    def save_price_samples(self, samples: list[PriceSample]) -> None:
        """Save price samples.

        Args:
            samples: Samples to save.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.executemany(
                "INSERT INTO price_samples (token_address, price, timestamp) VALUES (?, ?, ?)",
                [(s.token_address, s.price, _iso(s.timestamp)) for s in samples],
            )
            conn.commit()
        finally:
            conn.close()

    def get_price_samples(
        self, since: datetime, token_address: Optional[str] = None
    ) -> list[PriceSample]:
        """Get price samples newer than ``since``, oldest first.

        Args:
            since: Window start (exclusive).
            token_address: Optional token filter. If None, returns all tokens.

        Returns:
            Price samples ordered by timestamp.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            if token_address:
                cursor.execute(
                    """
                    SELECT token_address, price, timestamp FROM price_samples
                    WHERE token_address = ? AND timestamp > ?
                    ORDER BY timestamp, id
                    """,
                    (token_address, _iso(since)),
                )
            else:
                cursor.execute(
                    """
                    SELECT token_address, price, timestamp FROM price_samples
                    WHERE timestamp > ?
                    ORDER BY timestamp, id
                    """,
                    (_iso(since),),
                )
            return [
                PriceSample(
                    token_address=row["token_address"],
                    price=row["price"],
                    timestamp=datetime.fromisoformat(row["timestamp"]),
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    def save_volume_samples(self, samples: list[VolumeSample]) -> None:
        """Save volume samples.

        Args:
            samples: Samples to save.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.executemany(
                """
                INSERT INTO volume_samples (token_address, volume, liquidity, timestamp)
                VALUES (?, ?, ?, ?)
                """,
                [
                    (s.token_address, s.volume, s.liquidity, _iso(s.timestamp))
                    for s in samples
                ],
            )
            conn.commit()
        finally:
            conn.close()

    def get_volume_samples(
        self, since: datetime, token_address: Optional[str] = None
    ) -> list[VolumeSample]:
        """Get volume samples newer than ``since``, oldest first.

        Args:
            since: Window start (exclusive).
            token_address: Optional token filter. If None, returns all tokens.

        Returns:
            Volume samples ordered by timestamp.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            if token_address:
                cursor.execute(
                    """
                    SELECT token_address, volume, liquidity, timestamp FROM volume_samples
                    WHERE token_address = ? AND timestamp > ?
                    ORDER BY timestamp, id
                    """,
                    (token_address, _iso(since)),
                )
            else:
                cursor.execute(
                    """
                    SELECT token_address, volume, liquidity, timestamp FROM volume_samples
                    WHERE timestamp > ?
                    ORDER BY timestamp, id
                    """,
                    (_iso(since),),
                )
            return [
                VolumeSample(
                    token_address=row["token_address"],
                    volume=row["volume"],
                    liquidity=row["liquidity"],
                    timestamp=datetime.fromisoformat(row["timestamp"]),
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    # ==================== Sentiment ====================

    def save_sentiment_sample(self, sample: SentimentSample) -> int:
        """Save a sentiment sample.

        Args:
            sample: Sample to save.

        Returns:
            The ID of the saved sample.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO sentiment_samples (
                    token_address, source, score, positive_count, negative_count,
                    neutral_count, total_mentions, keyword_mentions, influencer_mentions,
                    volume_spike, trending_score, timestamp
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    sample.token_address,
                    sample.source,
                    sample.score,
                    sample.positive_count,
                    sample.negative_count,
                    sample.neutral_count,
                    sample.total_mentions,
                    json.dumps(sample.keyword_mentions),
                    sample.influencer_mentions,
                    1 if sample.volume_spike else 0,
                    sample.trending_score,
                    _iso(sample.timestamp),
                ),
            )
            conn.commit()
            return cursor.lastrowid or 0
        finally:
            conn.close()

    def get_sentiment_samples(
        self, token_address: str, since: datetime
    ) -> list[SentimentSample]:
        """Get sentiment samples for a token, newest first.

        Args:
            token_address: Token address.
            since: Window start (exclusive).

        Returns:
            Sentiment samples ordered by timestamp, descending.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM sentiment_samples
                WHERE token_address = ? AND timestamp > ?
                ORDER BY timestamp DESC, id DESC
                """,
                (token_address, _iso(since)),
            )
            return [
                SentimentSample(
                    id=row["id"],
                    token_address=row["token_address"],
                    source=row["source"],
                    score=row["score"],
                    positive_count=row["positive_count"],
                    negative_count=row["negative_count"],
                    neutral_count=row["neutral_count"],
                    total_mentions=row["total_mentions"],
                    keyword_mentions=json.loads(row["keyword_mentions"] or "{}"),
                    influencer_mentions=row["influencer_mentions"],
                    volume_spike=bool(row["volume_spike"]),
                    trending_score=row["trending_score"],
                    timestamp=datetime.fromisoformat(row["timestamp"]),
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    def save_sentiment_analysis(self, analysis: SentimentAnalysis) -> int:
        """Save a sentiment analysis snapshot.

        Args:
            analysis: Analysis to save.

        Returns:
            The ID of the saved analysis.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO sentiment_analyses (token_address, payload, timestamp)
                VALUES (?, ?, ?)
                """,
                (
                    analysis.token_address,
                    analysis.model_dump_json(),
                    _iso(analysis.timestamp),
                ),
            )
            conn.commit()
            return cursor.lastrowid or 0
        finally:
            conn.close()

    def get_latest_sentiment_analysis(self, token_address: str) -> Optional[SentimentAnalysis]:
        """Get the most recent analysis for a token.

        Args:
            token_address: Token address.

        Returns:
            SentimentAnalysis if found, None otherwise.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT payload FROM sentiment_analyses
                WHERE token_address = ?
                ORDER BY timestamp DESC, id DESC
                LIMIT 1
                """,
                (token_address,),
            )
            row = cursor.fetchone()
            if row:
                return SentimentAnalysis.model_validate_json(row["payload"])
            return None
        finally:
            conn.close()

    # ==================== KOL ====================

    def save_kol(self, profile: KOLProfile) -> int:
        """Save a new KOL profile.

        Args:
            profile: Profile to save.

        Returns:
            The ID of the saved profile.

        Raises:
            sqlite3.IntegrityError: If the wallet is already tracked.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO kol_profiles (
                    wallet_address, name, category, influence_score, success_rate,
                    total_trades, profitable_trades, avg_profit_rate, followers_count,
                    verified, tags, is_active
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    profile.wallet_address,
                    profile.name,
                    profile.category,
                    profile.influence_score,
                    profile.success_rate,
                    profile.total_trades,
                    profile.profitable_trades,
                    profile.avg_profit_rate,
                    profile.followers_count,
                    1 if profile.verified else 0,
                    json.dumps(profile.tags),
                    1 if profile.is_active else 0,
                ),
            )
            conn.commit()
            return cursor.lastrowid or 0
        finally:
            conn.close()

    def _row_to_kol(self, row: sqlite3.Row) -> KOLProfile:
        return KOLProfile(
            id=row["id"],
            wallet_address=row["wallet_address"],
            name=row["name"],
            category=row["category"],
            influence_score=row["influence_score"],
            success_rate=row["success_rate"],
            total_trades=row["total_trades"],
            profitable_trades=row["profitable_trades"],
            avg_profit_rate=row["avg_profit_rate"],
            followers_count=row["followers_count"],
            verified=bool(row["verified"]),
            tags=json.loads(row["tags"] or "[]"),
            is_active=bool(row["is_active"]),
        )

    def get_kol(self, wallet_address: str, active_only: bool = True) -> Optional[KOLProfile]:
        """Get a KOL profile by wallet.

        Args:
            wallet_address: Wallet address.
            active_only: Ignore deactivated profiles.

        Returns:
            KOLProfile if found, None otherwise.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            query = "SELECT * FROM kol_profiles WHERE wallet_address = ?"
            if active_only:
                query += " AND is_active = 1"
            cursor.execute(query, (wallet_address,))
            row = cursor.fetchone()
            return self._row_to_kol(row) if row else None
        finally:
            conn.close()

    def get_kols(
        self, limit: int = 50, offset: int = 0, active_only: bool = True
    ) -> list[KOLProfile]:
        """Get KOL profiles, most influential first.

        Args:
            limit: Maximum number of profiles.
            offset: Number of profiles to skip.
            active_only: Ignore deactivated profiles.

        Returns:
            List of profiles.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            where = "WHERE is_active = 1" if active_only else ""
            cursor.execute(
                f"""
                SELECT * FROM kol_profiles {where}
                ORDER BY influence_score DESC, success_rate DESC
                LIMIT ? OFFSET ?
                """,
                (limit, offset),
            )
            return [self._row_to_kol(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def update_kol_statistics(
        self,
        wallet_address: str,
        total_trades: int,
        profitable_trades: int,
        success_rate: float,
        avg_profit_rate: float,
    ) -> None:
        """Update the trading statistics of a KOL.

        Args:
            wallet_address: Wallet address.
            total_trades: Number of recorded trades.
            profitable_trades: Number of trades with positive P&L.
            success_rate: Profitable trade percentage.
            avg_profit_rate: Average P&L per trade.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE kol_profiles
                SET total_trades = ?, profitable_trades = ?, success_rate = ?, avg_profit_rate = ?
                WHERE wallet_address = ?
                """,
                (total_trades, profitable_trades, success_rate, avg_profit_rate, wallet_address),
            )
            conn.commit()
        finally:
            conn.close()

    def save_kol_transaction(self, tx: KOLTransaction) -> int:
        """Append a KOL transaction.

        Args:
            tx: Transaction to save.

        Returns:
            The ID of the saved transaction, or 0 if its hash was already recorded.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR IGNORE INTO kol_transactions (
                    wallet_address, token_address, transaction_hash, action,
                    amount, price, value_sol, timestamp, profit_loss, holding_period
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    tx.wallet_address,
                    tx.token_address,
                    tx.transaction_hash,
                    tx.action,
                    tx.amount,
                    tx.price,
                    tx.value_sol,
                    _iso(tx.timestamp),
                    tx.profit_loss,
                    tx.holding_period,
                ),
            )
            conn.commit()
            return cursor.lastrowid if cursor.rowcount else 0
        finally:
            conn.close()

    def get_kol_transactions(self, wallet_address: str, limit: int = 50) -> list[KOLTransaction]:
        """Get a wallet's transactions, newest first.

        Args:
            wallet_address: Wallet address.
            limit: Maximum number of transactions.

        Returns:
            List of transactions.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM kol_transactions
                WHERE wallet_address = ?
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
                """,
                (wallet_address, limit),
            )
            return [self._row_to_kol_transaction(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def _row_to_kol_transaction(self, row: sqlite3.Row) -> KOLTransaction:
        return KOLTransaction(
            id=row["id"],
            wallet_address=row["wallet_address"],
            token_address=row["token_address"],
            transaction_hash=row["transaction_hash"],
            action=row["action"],
            amount=row["amount"],
            price=row["price"],
            value_sol=row["value_sol"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            profit_loss=row["profit_loss"],
            holding_period=row["holding_period"],
        )

    def get_token_kol_transactions(self, token_address: str, since: datetime) -> list[KOLTransaction]:
        """Get every KOL transaction in a token since ``since``, newest first."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM kol_transactions
                WHERE token_address = ? AND timestamp >= ?
                ORDER BY timestamp DESC, id DESC
                """,
                (token_address, _iso(since)),
            )
            return [self._row_to_kol_transaction(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def get_kol_trade_stats(self, wallet_address: str) -> dict:
        """Aggregate a wallet's transaction history.

        Args:
            wallet_address: Wallet address.

        Returns:
            Dictionary with total_trades, profitable_trades and avg_profit.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT
                    COUNT(*) AS total_trades,
                    SUM(CASE WHEN profit_loss > 0 THEN 1 ELSE 0 END) AS profitable_trades,
                    AVG(COALESCE(profit_loss, 0)) AS avg_profit
                FROM kol_transactions
                WHERE wallet_address = ?
                """,
                (wallet_address,),
            )
            row = cursor.fetchone()
            return {
                "total_trades": row["total_trades"] or 0,
                "profitable_trades": row["profitable_trades"] or 0,
                "avg_profit": row["avg_profit"] or 0.0,
            }
        finally:
            conn.close()

    def save_kol_signal(self, signal: KOLSignal) -> int:
        """Save a scored KOL signal.

        Args:
            signal: Signal to save.

        Returns:
            The ID of the saved signal.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO kol_signals (
                    wallet_address, token_address, action, confidence, payload, timestamp
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    signal.wallet_address,
                    signal.token_address,
                    signal.action,
                    signal.confidence,
                    signal.model_dump_json(),
                    _iso(signal.timestamp),
                ),
            )
            conn.commit()
            return cursor.lastrowid or 0
        finally:
            conn.close()

    def get_kol_signals(self, limit: int = 50, min_confidence: float = 0.0) -> list[KOLSignal]:
        """Get recorded KOL signals, newest first.

        Args:
            limit: Maximum number of signals.
            min_confidence: Only return signals at or above this confidence.

        Returns:
            List of signals.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, payload FROM kol_signals
                WHERE confidence >= ?
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
                """,
                (min_confidence, limit),
            )
            return [
                KOLSignal.model_validate_json(row["payload"]).model_copy(update={"id": row["id"]})
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    # ==================== Alert Configs ====================

    def _config_params(self, config: AlertConfig) -> tuple:
        return (
            config.owner_id,
            config.name,
            config.description,
            1 if config.is_active else 0,
            json.dumps([c.model_dump(mode="json") for c in config.conditions]),
            json.dumps([a.model_dump(mode="json") for a in config.actions]),
            config.cooldown_minutes,
            config.priority,
            json.dumps(config.tags),
            _iso(config.created_at),
            _iso(config.updated_at) if config.updated_at else None,
            _iso(config.last_triggered_at) if config.last_triggered_at else None,
        )

    def save_alert_config(self, config: AlertConfig) -> int:
        """Save a new alert config.

        Args:
            config: Config to save.

        Returns:
            The ID of the saved config.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO alert_configs (
                    owner_id, name, description, is_active, conditions, actions,
                    cooldown_minutes, priority, tags, created_at, updated_at, last_triggered_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._config_params(config),
            )
            conn.commit()
            return cursor.lastrowid or 0
        finally:
            conn.close()

    def update_alert_config(self, config: AlertConfig) -> bool:
        """Overwrite a stored alert config.

        Args:
            config: Config with its database ID set.

        Returns:
            True if a row was updated, False if the ID is unknown.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE alert_configs SET
                    owner_id = ?, name = ?, description = ?, is_active = ?, conditions = ?,
                    actions = ?, cooldown_minutes = ?, priority = ?, tags = ?, created_at = ?,
                    updated_at = ?, last_triggered_at = ?
                WHERE id = ?
                """,
                self._config_params(config) + (config.id,),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def update_alert_config_triggered(self, config_id: int, triggered_at: datetime) -> None:
        """Record when a config last triggered.

        Args:
            config_id: Config ID.
            triggered_at: Trigger timestamp.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE alert_configs SET last_triggered_at = ? WHERE id = ?",
                (_iso(triggered_at), config_id),
            )
            conn.commit()
        finally:
            conn.close()

    def delete_alert_config(self, config_id: int) -> bool:
        """Delete an alert config.

        Args:
            config_id: ID of the config to delete.

        Returns:
            True if a row was deleted.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM alert_configs WHERE id = ?", (config_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def _row_to_config(self, row: sqlite3.Row) -> AlertConfig:
        return AlertConfig(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            description=row["description"],
            is_active=bool(row["is_active"]),
            conditions=json.loads(row["conditions"] or "[]"),
            actions=json.loads(row["actions"] or "[]"),
            cooldown_minutes=row["cooldown_minutes"],
            priority=row["priority"],
            tags=json.loads(row["tags"] or "[]"),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else None,
            last_triggered_at=(
                datetime.fromisoformat(row["last_triggered_at"])
                if row["last_triggered_at"]
                else None
            ),
        )

    def get_alert_config(self, config_id: int) -> Optional[AlertConfig]:
        """Get an alert config by ID.

        Args:
            config_id: Config ID.

        Returns:
            AlertConfig if found and valid, None otherwise.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM alert_configs WHERE id = ?", (config_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            try:
                return self._row_to_config(row)
            except (ValidationError, json.JSONDecodeError) as e:
                logger.warning("Stored alert config %s is invalid: %s", config_id, e)
                return None
        finally:
            conn.close()

    def get_alert_configs(
        self, owner_id: Optional[str] = None, active_only: bool = False
    ) -> list[AlertConfig]:
        """Get alert configs, newest first.

        Rows that no longer validate are logged and skipped.

        Args:
            owner_id: Optional owner filter.
            active_only: Only return active configs.

        Returns:
            List of configs.
        """
        clauses = []
        params: list[Any] = []
        if owner_id is not None:
            clauses.append("owner_id = ?")
            params.append(owner_id)
        if active_only:
            clauses.append("is_active = 1")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT * FROM alert_configs {where} ORDER BY created_at DESC, id DESC",
                params,
            )
            configs = []
            for row in cursor.fetchall():
                try:
                    configs.append(self._row_to_config(row))
                except (ValidationError, json.JSONDecodeError) as e:
                    logger.warning("Skipping invalid alert config %s: %s", row["id"], e)
            return configs
        finally:
            conn.close()

    # ==================== Alerts ====================

    def save_alert(self, alert: Alert) -> int:
        """Save an alert to the database.

        Args:
            alert: Alert to save.

        Returns:
            The ID of the saved alert.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO alerts (
                    token_address, type, title, message, score, conditions,
                    severity, config_id, data, timestamp, is_read
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    alert.token_address,
                    alert.type,
                    alert.title,
                    alert.message,
                    alert.score,
                    json.dumps(alert.conditions),
                    alert.severity,
                    alert.config_id,
                    json.dumps(alert.data, default=str),
                    _iso(alert.timestamp),
                    1 if alert.is_read else 0,
                ),
            )
            conn.commit()
            return cursor.lastrowid or 0
        finally:
            conn.close()

    def _row_to_alert(self, row: sqlite3.Row) -> Alert:
        return Alert(
            id=row["id"],
            token_address=row["token_address"],
            type=row["type"],
            title=row["title"],
            message=row["message"],
            score=row["score"],
            conditions=json.loads(row["conditions"] or "[]"),
            severity=row["severity"],
            config_id=row["config_id"],
            data=json.loads(row["data"] or "{}"),
            timestamp=datetime.fromisoformat(row["timestamp"]),
            is_read=bool(row["is_read"]),
        )

    def get_alerts(
        self,
        unread_only: bool = False,
        config_id: Optional[int] = None,
        limit: int = 100,
    ) -> list[Alert]:
        """Get alerts, newest first.

        Args:
            unread_only: Only return unread alerts.
            config_id: Optional filter on the originating config.
            limit: Maximum number of alerts.

        Returns:
            List of alerts.
        """
        clauses = []
        params: list[Any] = []
        if unread_only:
            clauses.append("is_read = 0")
        if config_id is not None:
            clauses.append("config_id = ?")
            params.append(config_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT * FROM alerts {where} ORDER BY timestamp DESC, id DESC LIMIT ?",
                params,
            )
            return [self._row_to_alert(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def get_alert_by_id(self, alert_id: int) -> Optional[Alert]:
        """Get an alert by ID.

        Args:
            alert_id: Alert ID.

        Returns:
            Alert if found, None otherwise.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM alerts WHERE id = ?", (alert_id,))
            row = cursor.fetchone()
            if row:
                return self._row_to_alert(row)
            return None
        finally:
            conn.close()

    def mark_alert_read(self, alert_id: int, is_read: bool = True) -> None:
        """Update the read status of an alert.

        Args:
            alert_id: Alert ID.
            is_read: New read status.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE alerts SET is_read = ? WHERE id = ?",
                (1 if is_read else 0, alert_id),
            )
            conn.commit()
        finally:
            conn.close()

    # ==================== Stats ====================

    def get_stats(self) -> dict:
        """Get database statistics.

        Returns:
            Dictionary with table record counts.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            stats = {}
            for table in self.REQUIRED_TABLES:
                cursor.execute(f"SELECT COUNT(*) as count FROM {table}")
                stats[table] = cursor.fetchone()["count"]
            return stats
        finally:
            conn.close()
