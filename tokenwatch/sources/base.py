"""Base sample source interface for TokenWatch."""

from abc import ABC, abstractmethod
from typing import Optional

from tokenwatch.models import (
    KOLTransaction,
    MarketSnapshot,
    PriceSample,
    SentimentSample,
    TokenInfo,
    VolumeSample,
)


class BaseSampleSource(ABC):
    """Abstract base class for time-series sample providers.

    The engine only reads market, social and on-chain data through this
    interface. Implementations decide where the samples come from (the local
    store, an upstream feed, a demo fixture).
    """

    @abstractmethod
    def get_recent_price_samples(
        self, token_address: Optional[str], timeframe: str
    ) -> list[PriceSample]:
        """Get price samples inside a timeframe window.

        Args:
            token_address: Token address, or None for every token.
            timeframe: Window (1m, 5m, 15m, 1h, 4h, 24h).

        Returns:
            Samples ordered by timestamp, oldest first.
        """
        pass

    @abstractmethod
    def get_recent_volume_samples(
        self, token_address: Optional[str], timeframe: str
    ) -> list[VolumeSample]:
        """Get volume samples inside a timeframe window.

        Args:
            token_address: Token address, or None for every token.
            timeframe: Window (1m, 5m, 15m, 1h, 4h, 24h).

        Returns:
            Samples ordered by timestamp, oldest first.
        """
        pass

    @abstractmethod
    def get_sentiment_samples(self, token_address: str, hours: int = 24) -> list[SentimentSample]:
        """Get sentiment samples for the last ``hours`` hours.

        Args:
            token_address: Token address.
            hours: Lookback in hours.

        Returns:
            Samples ordered by timestamp, newest first.
        """
        pass

    @abstractmethod
    def get_kol_transactions(self, wallet_address: str, limit: int = 50) -> list[KOLTransaction]:
        """Get a wallet's most recent transactions.

        Args:
            wallet_address: KOL wallet address.
            limit: Maximum number of transactions.

        Returns:
            Transactions ordered by timestamp, newest first.
        """
        pass

    @abstractmethod
    def get_token_kol_transactions(self, token_address: str, hours: int = 24) -> list[KOLTransaction]:
        """Get every KOL transaction in a token for the last ``hours`` hours.

        Returns:
            Transactions ordered by timestamp, newest first.
        """
        pass

    @abstractmethod
    def get_token_info(self, token_address: str) -> Optional[TokenInfo]:
        """Get display information for a token.

        Returns:
            TokenInfo if known, None otherwise.
        """
        pass

    @abstractmethod
    def get_active_tokens(self, limit: int = 20) -> list[str]:
        """Get tokens with recent trading activity, busiest first."""
        pass

    @abstractmethod
    def get_market_snapshots(self) -> list[MarketSnapshot]:
        """Get short-window movement snapshots for active tokens."""
        pass
