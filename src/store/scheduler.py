"""
Scheduler - Single-threaded timer callbacks.

Install runs advance on timer ticks delivered by the host event loop.
Callbacks never run in parallel; they are interleaved by the loop.

Backends:
    AsyncioScheduler  asyncio event loop (CLI, services)
    GLibScheduler     GLib main loop (GTK front ends)
    ManualScheduler   virtual clock advanced explicitly
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

try:
    from gi.repository import GLib
    GLIB_AVAILABLE = True
except (ImportError, ValueError):
    GLIB_AVAILABLE = False
    GLib = None


class TaskHandle(ABC):
    """Handle of a scheduled callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running. No-op if it already ran."""
        pass

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        pass


class Scheduler(ABC):
    """Base class for timer schedulers."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TaskHandle:
        """Run callback once after delay seconds."""
        pass


class _AsyncioHandle(TaskHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler(Scheduler):
    """
    Timers on an asyncio event loop.

    The loop is looked up when a timer is scheduled, so the scheduler can
    be created before the loop starts running.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TaskHandle:
        loop = self._loop or asyncio.get_running_loop()
        return _AsyncioHandle(loop.call_later(delay, callback))


class _GLibHandle(TaskHandle):
    def __init__(self):
        self.source_id: Optional[int] = None
        self.fired = False
        self._cancelled = False

    def cancel(self) -> None:
        if self._cancelled or self.fired:
            return
        self._cancelled = True
        if self.source_id is not None:
            GLib.source_remove(self.source_id)

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class GLibScheduler(Scheduler):
    """Timers on the GLib main loop."""

    def __init__(self):
        if not GLIB_AVAILABLE:
            raise RuntimeError("GLib is not available (install PyGObject)")

    def call_later(self, delay: float, callback: Callable[[], None]) -> TaskHandle:
        handle = _GLibHandle()

        def _fire():
            handle.fired = True
            callback()
            return False  # one-shot

        handle.source_id = GLib.timeout_add(int(delay * 1000), _fire)
        return handle


class _ManualHandle(TaskHandle):
    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """
    Scheduler driven by a virtual clock.

    Nothing runs until advance() or run_until_idle() is called. Callbacks
    due at the same time run in scheduling order.
    """

    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, _ManualHandle, Callable[[], None]]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TaskHandle:
        handle = _ManualHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._counter), handle, callback))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    def _run_next(self) -> bool:
        while self._queue:
            due, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = max(self.now, due)
            callback()
            return True
        return False

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running every callback that falls due.

        Returns:
            Number of callbacks run.
        """
        target = self.now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = due
            callback()
            ran += 1
        self.now = target
        return ran

    def run_until_idle(self, max_callbacks: int = 10000) -> int:
        """Run callbacks until none are pending."""
        ran = 0
        while self._run_next():
            ran += 1
            if ran >= max_callbacks:
                raise RuntimeError(f"Scheduler still busy after {max_callbacks} callbacks")
        return ran
