"""
Tests for core/scheduler.py

Timers, their cancellation tokens, and both clocks.
"""

import asyncio
import logging

import pytest

from afk_rotator.core.scheduler import LoopScheduler, ManualScheduler


class TestManualScheduler:
    """Tests for the virtual-time scheduler."""

    def test_call_later_fires_once(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(2.0, lambda: calls.append(scheduler.now()))

        scheduler.advance(1.9)
        assert calls == []
        scheduler.advance(0.1)
        assert calls == [2.0]
        scheduler.advance(10.0)
        assert calls == [2.0]
        assert scheduler.pending() == 0

    def test_call_every_repeats(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_every(1.0, lambda: calls.append(scheduler.now()))

        scheduler.advance(3.5)
        assert calls == [1.0, 2.0, 3.0]
        assert scheduler.pending() == 1

    def test_zero_delay_fires_on_advance(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(0.0, lambda: calls.append("x"))
        assert calls == []
        scheduler.advance()
        assert calls == ["x"]

    def test_same_instant_fires_in_creation_order(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(1.0, lambda: calls.append("first"))
        scheduler.call_later(1.0, lambda: calls.append("second"))
        scheduler.advance(1.0)
        assert calls == ["first", "second"]

    def test_cancel_is_idempotent(self):
        scheduler = ManualScheduler()
        calls = []
        timer = scheduler.call_every(1.0, lambda: calls.append("x"))

        timer.cancel()
        timer.cancel()
        scheduler.advance(5.0)

        assert calls == []
        assert not timer.active
        assert scheduler.pending() == 0

    def test_cancel_after_fire_is_noop(self):
        scheduler = ManualScheduler()
        timer = scheduler.call_later(1.0, lambda: None)
        scheduler.advance(1.0)
        timer.cancel()
        assert scheduler.pending() == 0

    def test_callback_may_cancel_own_repeating_timer(self):
        scheduler = ManualScheduler()
        calls = []

        def tick():
            calls.append(scheduler.now())
            if len(calls) == 2:
                timer.cancel()

        timer = scheduler.call_every(1.0, tick)
        scheduler.advance(10.0)

        assert calls == [1.0, 2.0]
        assert scheduler.pending() == 0

    def test_failing_callback_does_not_stop_repeating(self, caplog):
        """A raising tick is logged; the interval keeps going."""
        scheduler = ManualScheduler()
        calls = []

        def tick():
            calls.append(scheduler.now())
            raise RuntimeError("boom")

        scheduler.call_every(1.0, tick)
        with caplog.at_level(logging.ERROR):
            scheduler.advance(3.0)

        assert len(calls) == 3
        assert "failed" in caplog.text

    def test_timers_scheduled_during_advance_fire_if_due(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(1.0, lambda: scheduler.call_later(1.0, lambda: calls.append(scheduler.now())))
        scheduler.advance(5.0)
        assert calls == [2.0]

    def test_cancel_all(self):
        scheduler = ManualScheduler()
        scheduler.call_later(1.0, lambda: None)
        scheduler.call_every(1.0, lambda: None)
        assert scheduler.pending() == 2
        scheduler.cancel_all()
        assert scheduler.pending() == 0

    def test_non_positive_interval_rejected(self):
        scheduler = ManualScheduler()
        with pytest.raises(ValueError):
            scheduler.call_every(0, lambda: None)


class TestLoopScheduler:
    """Tests for the asyncio-backed scheduler."""

    def test_call_later_and_every(self):
        async def scenario():
            scheduler = LoopScheduler()
            once, ticks = [], []
            scheduler.call_later(0.01, lambda: once.append(True))
            timer = scheduler.call_every(0.01, lambda: ticks.append(True))
            await asyncio.sleep(0.1)
            timer.cancel()
            return scheduler, once, ticks

        scheduler, once, ticks = asyncio.run(scenario())
        assert once == [True]
        assert len(ticks) >= 2
        assert scheduler.pending() == 0

    def test_cancel_prevents_fire(self):
        async def scenario():
            scheduler = LoopScheduler()
            calls = []
            timer = scheduler.call_later(0.01, lambda: calls.append(True))
            timer.cancel()
            await asyncio.sleep(0.05)
            return scheduler, calls

        scheduler, calls = asyncio.run(scenario())
        assert calls == []
        assert scheduler.pending() == 0
