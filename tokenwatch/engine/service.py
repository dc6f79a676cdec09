"""Engine wiring: builds every component from Settings and schedules them."""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from tokenwatch.broadcast import BaseBroadcastSink, MemorySink
from tokenwatch.config import Settings
from tokenwatch.db.store import DataStore
from tokenwatch.engine.analysis import TokenAnalyzer
from tokenwatch.engine.breakout import BreakoutDetector
from tokenwatch.engine.conditions import ConditionEvaluator
from tokenwatch.engine.dispatcher import (
    ActionHandler,
    AlertDispatcher,
    ConfigRepository,
    install_default_configs,
)
from tokenwatch.engine.kol import KOLSignalScorer, KOLTracker
from tokenwatch.engine.scheduler import Scheduler
from tokenwatch.engine.sentiment import SentimentAggregator, SentimentMonitor
from tokenwatch.models import Alert
from tokenwatch.sources.base import BaseSampleSource
from tokenwatch.sources.store import StoreSampleSource

logger = logging.getLogger(__name__)


class TokenWatchEngine:
    """The alert, sentiment, KOL and analysis services behind one start/stop surface."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        data_store: Optional[DataStore] = None,
        source: Optional[BaseSampleSource] = None,
        sink: Optional[BaseBroadcastSink] = None,
        action_handler: Optional[ActionHandler] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the engine.

        Args:
            settings: Engine settings. Defaults to built-in defaults.
            data_store: Store to use. Defaults to the configured database.
            source: Sample source. Defaults to reading from the store.
            sink: Broadcast sink. Defaults to an in-memory sink.
            action_handler: Handler for email, webhook and auto_trade actions.
            clock: Returns the current time; injectable for tests.
        """
        self.settings = settings or Settings()
        self.data_store = data_store or DataStore(self.settings.engine.db_path)
        self.source = source or StoreSampleSource(self.data_store, clock=clock)
        self.sink = sink or MemorySink()

        self.repository = ConfigRepository(self.data_store)
        self.evaluator = ConditionEvaluator(self.source, clock=clock)
        self.dispatcher = AlertDispatcher(
            self.repository,
            self.evaluator,
            self.data_store,
            self.sink,
            action_handler=action_handler,
            clock=clock,
        )

        breakout = self.settings.breakout
        self.breakout = None
        if breakout.enabled:
            self.breakout = BreakoutDetector(
                self.source,
                self.data_store,
                self.sink,
                min_price_change_5m=breakout.min_price_change_5m,
                min_volume_change=breakout.min_volume_change,
                min_liquidity=breakout.min_liquidity,
                clock=clock,
            )

        sentiment = self.settings.sentiment
        self.sentiment = SentimentMonitor(
            self.source,
            self.data_store,
            self.sink,
            aggregator=SentimentAggregator(
                source_weights=sentiment.source_weights,
                decay_hours=sentiment.decay_hours,
                clock=clock,
            ),
            lookback_hours=sentiment.lookback_hours,
            token_limit=self.settings.engine.active_token_limit,
        )

        kol = self.settings.kol
        self.kol = KOLTracker(
            self.source,
            self.data_store,
            self.sink,
            scorer=KOLSignalScorer(
                large_trade_sol=kol.large_trade_sol,
                medium_trade_sol=kol.medium_trade_sol,
            ),
            broadcast_confidence=kol.broadcast_confidence,
            transactions_per_poll=kol.transactions_per_poll,
        )

        self.analyzer = TokenAnalyzer(
            self.source,
            self.data_store,
            self.sink,
            self.sentiment,
            token_limit=self.settings.engine.active_token_limit,
            clock=clock,
        )

        self.scheduler = Scheduler()
        self._prepared = False

    def prepare(self) -> None:
        """Load configs and monitored wallets; install defaults if enabled."""
        if self.settings.engine.install_default_configs:
            created = install_default_configs(self.repository)
            if created:
                logger.info("Installed %d default alert configs", len(created))
        self.repository.refresh()
        self.kol.load_active_kols()
        self._prepared = True

    def run_alert_cycle(self) -> list[Alert]:
        """One alert tick: config evaluation, then the breakout scan."""
        alerts = self.dispatcher.run_cycle()
        if self.breakout is not None:
            try:
                alerts.extend(self.breakout.scan())
            except Exception:
                logger.exception("Breakout scan failed")
        return alerts

    def run_once(self) -> dict:
        """Run every tick once, synchronously.

        Returns:
            Dictionary with the results of each tick.
        """
        if not self._prepared:
            self.prepare()
        return {
            "alerts": self.run_alert_cycle(),
            "analyses": self.sentiment.run_cycle(),
            "signals": self.kol.run_cycle(),
            "token_analyses": self.analyzer.run_cycle(),
        }

    def start(self) -> None:
        """Schedule the periodic ticks. Must be called from a running event loop."""
        if not self._prepared:
            self.prepare()
        engine = self.settings.engine
        if not self.scheduler.tasks:
            self.scheduler.add("alerts", engine.alert_interval_seconds, self.run_alert_cycle, run_immediately=True)
            self.scheduler.add("sentiment", engine.sentiment_interval_seconds, self.sentiment.run_cycle)
            self.scheduler.add("kol", engine.kol_interval_seconds, self.kol.run_cycle)
            self.scheduler.add("analysis", engine.analysis_interval_seconds, self.analyzer.run_cycle)
        self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()

    async def serve(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run until ``stop_event`` is set or the task is cancelled."""
        stop_event = stop_event or asyncio.Event()
        self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()
