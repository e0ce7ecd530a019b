"""
core/scheduler.py

The single cooperative scheduler everything runs on.

Every delayed or repeating action returns a TimerHandle, which is the
cancellation token for it. Two clocks are provided:
- LoopScheduler: production, backed by an asyncio event loop
- ManualScheduler: virtual time, advanced explicitly (tests, dry runs)
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable
import asyncio
import heapq
import itertools
import logging

logger = logging.getLogger(__name__)


class TimerHandle:
    """Cancellation token for one scheduled callback."""

    def __init__(self, callback: Callable[[], None], interval: float | None = None):
        self.callback = callback
        self.interval = interval
        self.when = 0.0
        self._active = True
        self._on_cancel: Callable[["TimerHandle"], None] | None = None

    @property
    def active(self) -> bool:
        return self._active

    @property
    def repeating(self) -> bool:
        return self.interval is not None

    def cancel(self) -> None:
        """Cancel the callback. Safe to call any number of times."""
        if not self._active:
            return
        self._active = False
        if self._on_cancel is not None:
            self._on_cancel(self)

    def __repr__(self) -> str:
        state = "active" if self._active else "inactive"
        kind = f"every {self.interval}s" if self.repeating else "once"
        return f"<TimerHandle {kind} at {self.when:.3f} {state}>"


class Scheduler(ABC):
    """
    Abstract base for schedulers.

    Subclasses supply a clock and the arm/disarm primitives; bookkeeping
    of outstanding timers lives here so pending() is uniform.
    """

    def __init__(self):
        self._live: set[TimerHandle] = set()

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""
        pass

    @abstractmethod
    def _arm(self, timer: TimerHandle, delay: float) -> None:
        pass

    @abstractmethod
    def _disarm(self, timer: TimerHandle) -> None:
        pass

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay seconds."""
        timer = TimerHandle(callback)
        self._schedule(timer, delay)
        return timer

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback every interval seconds, first run after one interval."""
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        timer = TimerHandle(callback, interval=interval)
        self._schedule(timer, interval)
        return timer

    def pending(self) -> int:
        """Number of scheduled callbacks that have not fired or been cancelled."""
        return len(self._live)

    def cancel_all(self) -> None:
        for timer in list(self._live):
            timer.cancel()

    def _schedule(self, timer: TimerHandle, delay: float) -> None:
        delay = max(0.0, float(delay))
        timer._on_cancel = self._cancel
        timer.when = self.now() + delay
        self._live.add(timer)
        self._arm(timer, delay)

    def _cancel(self, timer: TimerHandle) -> None:
        self._live.discard(timer)
        self._disarm(timer)

    def _fire(self, timer: TimerHandle) -> None:
        if not timer.active:
            return
        if timer.repeating:
            # Re-arm first so the callback may cancel its own timer
            timer.when = self.now() + timer.interval
            self._arm(timer, timer.interval)
        else:
            timer._active = False
            self._live.discard(timer)
        try:
            timer.callback()
        except Exception:
            logger.exception(f"Scheduled callback {timer.callback!r} failed")


class LoopScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        super().__init__()
        self._loop = loop or asyncio.get_running_loop()
        self._handles: dict[TimerHandle, asyncio.TimerHandle] = {}

    def now(self) -> float:
        return self._loop.time()

    def _arm(self, timer: TimerHandle, delay: float) -> None:
        self._handles[timer] = self._loop.call_later(delay, self._fire, timer)

    def _disarm(self, timer: TimerHandle) -> None:
        handle = self._handles.pop(timer, None)
        if handle is not None:
            handle.cancel()

    def _fire(self, timer: TimerHandle) -> None:
        self._handles.pop(timer, None)
        super()._fire(timer)


class ManualScheduler(Scheduler):
    """
    Virtual-time scheduler.

    Nothing fires until advance() is called. Due timers fire in time
    order; timers due at the same instant fire in the order they were armed.
    """

    def __init__(self, start: float = 0.0):
        super().__init__()
        self._now = float(start)
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def _arm(self, timer: TimerHandle, delay: float) -> None:
        heapq.heappush(self._queue, (timer.when, next(self._seq), timer))

    def _disarm(self, timer: TimerHandle) -> None:
        # Cancelled entries are skipped when popped
        pass

    def advance(self, seconds: float = 0.0) -> None:
        """Move the clock forward, firing everything due on the way."""
        target = self._now + max(0.0, seconds)
        while self._queue and self._queue[0][0] <= target:
            when, _, timer = heapq.heappop(self._queue)
            if not timer.active or timer.when != when:
                continue
            self._now = when
            self._fire(timer)
        self._now = target
