"""Tests for periodic tasks and the engine service.

**Feature: token-alert-engine**
"""

import asyncio
import threading
from datetime import timedelta

import pytest

from conftest import NOW, TOKEN
from tokenwatch.broadcast import MemorySink
from tokenwatch.config import Settings
from tokenwatch.engine.scheduler import PeriodicTask, Scheduler
from tokenwatch.engine.service import TokenWatchEngine
from tokenwatch.models import PriceSample


class TestPeriodicTask:
    """
    **Feature: token-alert-engine, Property 14: Single Flight Ticks**

    A tick that comes due while the previous run is still in progress is
    skipped, never run concurrently.
    """

    def test_overlapping_ticks_skipped(self):
        release = threading.Event()
        lock = threading.Lock()
        state = {"active": 0, "max_active": 0}

        def slow():
            with lock:
                state["active"] += 1
                state["max_active"] = max(state["max_active"], state["active"])
            release.wait(timeout=5)
            with lock:
                state["active"] -= 1

        async def scenario():
            task = PeriodicTask("slow", 0.01, slow, run_immediately=True)
            task.start()
            await asyncio.sleep(0.1)
            release.set()
            await task.stop()
            return task

        task = asyncio.run(scenario())

        assert state["max_active"] == 1
        assert task.runs == 1
        assert task.skipped > 0

    def test_failures_logged_and_loop_continues(self):
        calls = []

        def failing():
            calls.append(1)
            raise RuntimeError("tick failed")

        async def scenario():
            task = PeriodicTask("failing", 0.01, failing, run_immediately=True)
            task.start()
            await asyncio.sleep(0.1)
            await task.stop()
            return task

        task = asyncio.run(scenario())

        assert len(calls) > 1
        assert task.failures == len(calls)
        assert task.runs == 0

    def test_stop_waits_for_inflight_run(self):
        finished = threading.Event()

        def work():
            threading.Event().wait(0.05)
            finished.set()

        async def scenario():
            task = PeriodicTask("work", 10, work, run_immediately=True)
            task.start()
            await asyncio.sleep(0.01)
            await task.stop()
            assert not task.running

        asyncio.run(scenario())
        assert finished.is_set()

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            PeriodicTask("bad", 0, lambda: None)


class TestScheduler:
    def test_duplicate_names_rejected(self):
        scheduler = Scheduler()
        scheduler.add("alerts", 30, lambda: None)
        with pytest.raises(ValueError):
            scheduler.add("alerts", 30, lambda: None)

    def test_start_and_stop_all(self):
        counts = {"a": 0, "b": 0}

        async def scenario():
            scheduler = Scheduler()
            scheduler.add("a", 0.01, lambda: counts.__setitem__("a", counts["a"] + 1))
            scheduler.add("b", 0.01, lambda: counts.__setitem__("b", counts["b"] + 1))
            scheduler.start()
            await asyncio.sleep(0.1)
            await scheduler.stop()
            return scheduler

        scheduler = asyncio.run(scenario())

        assert counts["a"] > 0 and counts["b"] > 0
        assert not any(task.running for task in scheduler.tasks.values())


class TestTokenWatchEngine:
    """
    **Feature: token-alert-engine, Property 15: Engine Wiring**
    """

    def test_run_once_installs_defaults_and_triggers(self, temp_db, fake_source):
        fake_source.prices = [
            PriceSample(token_address=TOKEN, price=1.0, timestamp=NOW - timedelta(minutes=2)),
            PriceSample(token_address=TOKEN, price=2.0, timestamp=NOW - timedelta(minutes=1)),
        ]
        sink = MemorySink()
        engine = TokenWatchEngine(
            Settings(), data_store=temp_db, source=fake_source, sink=sink, clock=lambda: NOW
        )

        results = engine.run_once()

        assert {c.name for c in engine.repository.snapshot()} == {"Price surge", "Volume spike"}
        assert [a.title for a in results["alerts"]] == ["Price surge: BONK"]
        assert results["analyses"] == []
        assert results["signals"] == []
        assert results["token_analyses"] == []

    def test_defaults_can_be_disabled(self, temp_db, fake_source):
        settings = Settings.model_validate({"engine": {"install_default_configs": False}})
        engine = TokenWatchEngine(settings, data_store=temp_db, source=fake_source)

        engine.run_once()
        assert engine.repository.snapshot() == []

    def test_serve_schedules_every_tick(self, temp_db, fake_source):
        engine = TokenWatchEngine(Settings(), data_store=temp_db, source=fake_source)

        async def scenario():
            stop = asyncio.Event()
            server = asyncio.create_task(engine.serve(stop))
            await asyncio.sleep(0.05)
            names = sorted(engine.scheduler.tasks)
            stop.set()
            await server
            return names

        assert asyncio.run(scenario()) == ["alerts", "analysis", "kol", "sentiment"]
