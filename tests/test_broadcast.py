"""Tests for broadcast sinks.

**Feature: token-alert-engine**
"""

import logging

from rich.console import Console

from tokenwatch.broadcast import (
    KOL_SIGNAL,
    NEW_ALERT,
    SMART_ANALYSIS,
    BaseBroadcastSink,
    ConsoleSink,
    FanoutSink,
    MemorySink,
)


class BrokenSink(BaseBroadcastSink):
    def emit(self, event, payload):
        raise RuntimeError("transport down")


class TestMemorySink:
    def test_of_type_and_counts(self):
        sink = MemorySink()
        sink.emit(NEW_ALERT, {"title": "a"})
        sink.emit(KOL_SIGNAL, {"action": "buy"})
        sink.emit(NEW_ALERT, {"title": "b"})

        assert [p["title"] for p in sink.of_type(NEW_ALERT)] == ["a", "b"]
        assert sink.counts() == {NEW_ALERT: 2, KOL_SIGNAL: 1}
        assert MemorySink().counts() == {}


class TestFanoutSink:
    """
    **Feature: token-alert-engine, Property 21: Fanout Isolation**

    A sink that raises is logged and the remaining sinks still receive
    every event.
    """

    def test_delivers_to_every_sink(self):
        first, second = MemorySink(), MemorySink()
        FanoutSink([first, second]).emit(NEW_ALERT, {"title": "a"})

        assert first.events == second.events == [(NEW_ALERT, {"title": "a"})]

    def test_failing_sink_does_not_block_others(self, caplog):
        before, after = MemorySink(), MemorySink()
        fanout = FanoutSink([before, BrokenSink(), after])

        with caplog.at_level(logging.ERROR, logger="tokenwatch.broadcast"):
            fanout.emit(NEW_ALERT, {"title": "a"})
            fanout.emit(KOL_SIGNAL, {"action": "buy"})

        assert before.counts() == after.counts() == {NEW_ALERT: 1, KOL_SIGNAL: 1}
        assert sum("BrokenSink" in r.getMessage() for r in caplog.records) == 2


class TestConsoleSink:
    def test_formats_known_events(self):
        console = Console(record=True, width=200)
        sink = ConsoleSink(console)

        sink.emit(NEW_ALERT, {"title": "Price surge: BONK", "score": 72.4})
        sink.emit(SMART_ANALYSIS, {
            "token_symbol": "BONK",
            "overall_score": 61.0,
            "risk_score": 40.0,
            "recommendation": {"action": "buy"},
        })

        text = console.export_text()
        assert "Price surge: BONK (score 72)" in text
        assert "BONK: overall 61, risk 40, buy" in text
