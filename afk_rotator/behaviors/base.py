"""
behaviors/base.py

The attach/detach contract shared by every behavior.

A BehaviorUnit holds no per-session state. attach() creates a
BehaviorHandle that owns every timer, subscription and cleanup made for
that one session, so detach() can release all of it without knowing
which behavior it was.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, ClassVar
import logging

from afk_rotator.core.scheduler import Scheduler, TimerHandle
from afk_rotator.core.session import SessionHandle

from .descriptors import BehaviorDescriptor

logger = logging.getLogger(__name__)


class BehaviorHandle:
    """Cancellation tokens for one behavior on one session."""

    def __init__(self, name: str, session: SessionHandle):
        self.name = name
        self.session = session
        self.detached = False
        self._timers: list[TimerHandle] = []
        self._unsubscribers: list[Callable[[], None]] = []
        self._cleanups: list[Callable[[], None]] = []

    def track_timer(self, timer: TimerHandle) -> TimerHandle:
        self._timers.append(timer)
        return timer

    def track_subscription(self, unsubscribe: Callable[[], None]) -> None:
        self._unsubscribers.append(unsubscribe)

    def on_detach(self, cleanup: Callable[[], None]) -> None:
        self._cleanups.append(cleanup)

    @property
    def active_timers(self) -> int:
        return sum(1 for timer in self._timers if timer.active)

    def detach(self) -> None:
        """
        Release everything. Idempotent.

        Timers and subscriptions cannot fail to release. A failing cleanup
        is logged and the rest still run.
        """
        if self.detached:
            return
        self.detached = True

        for timer in self._timers:
            timer.cancel()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        for cleanup in self._cleanups:
            try:
                cleanup()
            except Exception as e:
                logger.warning(f"Cleanup for {self.name} failed: {e}")

        self._timers.clear()
        self._unsubscribers.clear()
        self._cleanups.clear()


class BehaviorUnit(ABC):
    """
    Abstract base for behaviors.

    Subclasses implement _start(), registering everything they create on
    the handle.
    """

    name: ClassVar[str] = "behavior"

    def __init__(self, descriptor: BehaviorDescriptor, scheduler: Scheduler):
        self.descriptor = descriptor
        self.scheduler = scheduler

    def attach(self, session: SessionHandle) -> BehaviorHandle:
        handle = BehaviorHandle(self.name, session)
        try:
            self._start(handle, session)
        except Exception:
            handle.detach()
            raise
        return handle

    def detach(self, handle: BehaviorHandle) -> None:
        handle.detach()

    @abstractmethod
    def _start(self, handle: BehaviorHandle, session: SessionHandle) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.descriptor!r}>"
