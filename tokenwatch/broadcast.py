"""Real-time broadcast sinks.

The engine publishes five events. Their payloads are JSON-compatible dicts
so a transport (websocket, queue) can forward them unchanged.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape

logger = logging.getLogger(__name__)

NEW_ALERT = "new_alert"
SENTIMENT_ANALYSIS = "sentiment_analysis"
KOL_SIGNAL = "kol_signal"
ALERT_NOTIFICATION = "alert_notification"
SMART_ANALYSIS = "smart_analysis"

EVENTS = (NEW_ALERT, SENTIMENT_ANALYSIS, KOL_SIGNAL, ALERT_NOTIFICATION, SMART_ANALYSIS)


class BaseBroadcastSink(ABC):
    """Receives engine events."""

    @abstractmethod
    def emit(self, event: str, payload: dict[str, Any]) -> None:
        """Publish an event.

        Args:
            event: Event name, one of EVENTS.
            payload: JSON-compatible event body.
        """
        pass


class MemorySink(BaseBroadcastSink):
    """Keeps every event in memory."""

    def __init__(self):
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))

    def of_type(self, event: str) -> list[dict[str, Any]]:
        """Payloads of all recorded events with the given name."""
        return [payload for name, payload in self.events if name == event]

    def counts(self) -> dict[str, int]:
        """Number of recorded events per event name."""
        totals: dict[str, int] = {}
        for name, _ in self.events:
            totals[name] = totals.get(name, 0) + 1
        return totals


class ConsoleSink(BaseBroadcastSink):
    """Prints events to the terminal."""

    STYLES = {
        NEW_ALERT: "bold red",
        ALERT_NOTIFICATION: "yellow",
        KOL_SIGNAL: "cyan",
        SENTIMENT_ANALYSIS: "dim",
        SMART_ANALYSIS: "magenta",
    }

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        style = self.STYLES.get(event, "")
        if event == NEW_ALERT:
            text = f"{payload.get('title')} (score {payload.get('score', 0):.0f})"
        elif event == ALERT_NOTIFICATION:
            text = f"[{payload.get('priority')}] {payload.get('message')}"
        elif event == KOL_SIGNAL:
            text = (
                f"{payload.get('kol_name')} {payload.get('action')} "
                f"{payload.get('token_symbol')} (confidence {payload.get('confidence', 0):.0f})"
            )
        elif event == SENTIMENT_ANALYSIS:
            text = (
                f"{payload.get('token_symbol')}: {payload.get('overall_sentiment')} "
                f"{payload.get('sentiment_score', 0):.1f}, {payload.get('recommendation')}"
            )
        elif event == SMART_ANALYSIS:
            recommendation = payload.get("recommendation") or {}
            text = (
                f"{payload.get('token_symbol')}: overall {payload.get('overall_score', 0):.0f}, "
                f"risk {payload.get('risk_score', 0):.0f}, {recommendation.get('action')}"
            )
        else:
            text = str(payload)
        text = escape(text)
        self._console.print(f"[{style}]{event}[/{style}] {text}" if style else f"{event} {text}")


class FanoutSink(BaseBroadcastSink):
    """Forwards events to several sinks.

    A failing sink is logged and does not stop delivery to the others.
    """

    def __init__(self, sinks: list[BaseBroadcastSink]):
        self._sinks = list(sinks)

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event, payload)
            except Exception:
                logger.exception("Broadcast sink %s failed on %s", type(sink).__name__, event)
