"""
Tests for Short Sileo Store - Timer schedulers
"""

import asyncio
import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from store.scheduler import AsyncioScheduler, ManualScheduler


class TestManualScheduler:
    """Tests for the virtual-clock scheduler."""

    @pytest.mark.unit
    def test_nothing_runs_until_advanced(self):
        """Test callbacks wait for the clock to advance."""
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(1.0, lambda: calls.append("a"))

        assert calls == []
        assert scheduler.pending == 1

    @pytest.mark.unit
    def test_advance_runs_due_callbacks_in_time_order(self):
        """Test due callbacks run in time order."""
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(2.0, lambda: calls.append("late"))
        scheduler.call_later(1.0, lambda: calls.append("early"))
        scheduler.call_later(5.0, lambda: calls.append("future"))

        ran = scheduler.advance(2.0)

        assert ran == 2
        assert calls == ["early", "late"]
        assert scheduler.now == 2.0

    @pytest.mark.unit
    def test_same_time_runs_in_scheduling_order(self):
        """Test callbacks due together run in scheduling order."""
        scheduler = ManualScheduler()
        calls = []
        for name in ("x", "y", "z"):
            scheduler.call_later(1.0, lambda n=name: calls.append(n))

        scheduler.advance(1.0)
        assert calls == ["x", "y", "z"]

    @pytest.mark.unit
    def test_cancelled_callback_skipped(self):
        """Test a cancelled callback never runs."""
        scheduler = ManualScheduler()
        calls = []
        handle = scheduler.call_later(1.0, lambda: calls.append("a"))
        handle.cancel()

        assert handle.cancelled is True
        assert scheduler.advance(5.0) == 0
        assert calls == []

    @pytest.mark.unit
    def test_callbacks_can_reschedule(self):
        """Test a callback can schedule the next one."""
        scheduler = ManualScheduler()
        calls = []

        def tick():
            calls.append(scheduler.now)
            if len(calls) < 3:
                scheduler.call_later(0.5, tick)

        scheduler.call_later(0.5, tick)
        scheduler.run_until_idle()

        assert calls == [0.5, 1.0, 1.5]

    @pytest.mark.unit
    def test_run_until_idle_guards_against_endless_loops(self):
        """Test run_until_idle stops an endless chain."""
        scheduler = ManualScheduler()

        def forever():
            scheduler.call_later(1.0, forever)

        scheduler.call_later(1.0, forever)
        with pytest.raises(RuntimeError):
            scheduler.run_until_idle(max_callbacks=50)


class TestAsyncioScheduler:
    """Tests for the asyncio-backed scheduler."""

    @pytest.mark.unit
    def test_callback_runs_on_loop(self):
        """Test a callback runs on the asyncio loop."""
        calls = []

        async def scenario():
            scheduler = AsyncioScheduler()
            done = asyncio.Event()
            scheduler.call_later(0.01, lambda: (calls.append("ran"), done.set()))
            await asyncio.wait_for(done.wait(), timeout=2)

        asyncio.run(scenario())
        assert calls == ["ran"]

    @pytest.mark.unit
    def test_cancel(self):
        """Test cancelling a pending asyncio callback."""
        calls = []

        async def scenario():
            handle = AsyncioScheduler().call_later(0.01, lambda: calls.append("ran"))
            handle.cancel()
            await asyncio.sleep(0.05)
            return handle

        handle = asyncio.run(scenario())
        assert calls == []
        assert handle.cancelled is True

    @pytest.mark.unit
    def test_requires_running_loop_when_unbound(self):
        """Test scheduling without a running loop fails."""
        with pytest.raises(RuntimeError):
            AsyncioScheduler().call_later(0.01, lambda: None)


class TestGLibScheduler:
    """Tests for the GLib main-loop scheduler."""

    @pytest.mark.unit
    def test_callback_runs_on_main_loop(self):
        """Test a callback runs on the GLib main loop."""
        pytest.importorskip("gi")
        from store.scheduler import GLIB_AVAILABLE, GLibScheduler
        if not GLIB_AVAILABLE:
            pytest.skip("GLib not available")
        from gi.repository import GLib

        loop = GLib.MainLoop()
        calls = []

        def callback():
            calls.append("ran")
            loop.quit()

        handle = GLibScheduler().call_later(0.01, callback)
        GLib.timeout_add(2000, lambda: loop.quit() or False)
        loop.run()

        assert calls == ["ran"]
        assert handle.cancelled is False
