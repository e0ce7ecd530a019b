"""
afk_rotator/services/simulated.py

In-memory session backend.

Implements the session and navigator capabilities without a server:
- every command is recorded for inspection
- lifecycle events are driven by hooks (join, end, kick, fail, die)
- optional timers make sessions join and end on their own

Used by the tests and by `--backend simulated` dry runs. Every timer a
simulated session owns is cancelled when it closes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

import numpy as np

from afk_rotator.core.credentials import Credential
from afk_rotator.core.scheduler import Scheduler, TimerHandle
from afk_rotator.core.session import (
    Entity,
    Goal,
    GoalBlock,
    Navigator,
    ServerAddress,
    SessionEvent,
    SessionFactory,
    SessionHandle,
)

logger = logging.getLogger(__name__)


class SimulatedNavigator(Navigator):
    """Records goals; reach_goal() teleports and emits GOAL_REACHED."""

    def __init__(self, session: "SimulatedSession"):
        super().__init__()
        self._session = session
        self.goals: list[Goal] = []
        self.goal: Goal | None = None

    def set_goal(self, goal: Goal) -> None:
        if self._session.closed:
            return
        self.goal = goal
        self.goals.append(goal)
        if self._session.travel_time is not None:
            self._session._own(
                self._session.scheduler.call_later(self._session.travel_time, self.reach_goal)
            )

    def reach_goal(self) -> None:
        if self.goal is None or self._session.closed:
            return
        goal, self.goal = self.goal, None
        position = self._session.position
        if isinstance(goal, GoalBlock):
            position = np.array([goal.x, goal.y, goal.z], dtype=np.float64)
        else:
            position = np.array([goal.x, position[1], goal.z], dtype=np.float64)
        self._session.teleport(position)
        self.emit(SessionEvent.GOAL_REACHED, goal)


class SimulatedSession(SessionHandle):
    """A session handle with no network behind it."""

    def __init__(
        self,
        credential: Credential,
        address: ServerAddress | None = None,
        scheduler: Scheduler | None = None,
        position: Any = (0.0, 64.0, 0.0),
        entities: list[Entity] | None = None,
        travel_time: float | None = None,
    ):
        super().__init__(credential)
        self.address = address
        self.scheduler = scheduler
        self.travel_time = travel_time if scheduler is not None else None
        self.entities: list[Entity] = list(entities or [])

        self._navigator = SimulatedNavigator(self)
        self._position = np.asarray(position, dtype=np.float64)
        self._yaw = 0.0
        self._pitch = 0.0
        self._closed = False
        self._joined = False
        self._timers: list[TimerHandle] = []

        # Command log
        self.chat_sent: list[str] = []
        self.control_states: dict[str, bool] = {}
        self.attacked: list[Entity] = []
        self.swings: list[str] = []
        self.looks: list[tuple[float, float]] = []
        self.end_reason: str | None = None

    # ==================== Queries ====================

    @property
    def navigator(self) -> SimulatedNavigator:
        return self._navigator

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def joined(self) -> bool:
        return self._joined

    @property
    def position(self) -> np.ndarray:
        return self._position.copy()

    @property
    def yaw(self) -> float:
        return self._yaw

    @property
    def pitch(self) -> float:
        return self._pitch

    def nearest_entity(self, predicate: Callable[[Entity], bool]) -> Entity | None:
        best: Entity | None = None
        best_distance = np.inf
        for entity in self.entities:
            if not predicate(entity):
                continue
            distance = float(np.linalg.norm(entity.position - self._position))
            if distance < best_distance:
                best, best_distance = entity, distance
        return best

    # ==================== Commands ====================

    def send_chat(self, text: str) -> None:
        if not self._closed:
            self.chat_sent.append(text)

    def set_control_state(self, control: str, state: bool) -> None:
        if not self._closed:
            self.control_states[control] = state

    def attack(self, entity: Entity) -> None:
        if not self._closed:
            self.attacked.append(entity)

    def swing_arm(self, hand: str = "right") -> None:
        if not self._closed:
            self.swings.append(hand)

    def look(self, yaw: float, pitch: float, force: bool = True) -> None:
        if not self._closed:
            self._yaw, self._pitch = yaw, pitch
            self.looks.append((yaw, pitch))

    def end(self, reason: str | None = None) -> None:
        if self._close():
            self.end_reason = reason
            self.emit(SessionEvent.ENDED)

    # ==================== Simulation hooks ====================

    def join(self) -> None:
        if self._closed or self._joined:
            return
        self._joined = True
        self.emit(SessionEvent.JOINED)

    def kick(self, payload: Any) -> None:
        """Server kick: KICKED then ENDED, as a real client reports it."""
        if self._close():
            self.emit(SessionEvent.KICKED, payload)
            self.emit(SessionEvent.ENDED)

    def fail(self, message: Any) -> None:
        """Transport error. The connection is considered gone."""
        if self._close():
            self.emit(SessionEvent.ERROR, message)

    def die(self) -> None:
        if not self._closed:
            self.emit(SessionEvent.DIED)

    def receive_chat(self, sender: str, text: str) -> None:
        if not self._closed:
            self.emit(SessionEvent.CHAT, sender, text)

    def teleport(self, position: Any) -> None:
        self._position = np.asarray(position, dtype=np.float64)

    def pending_timers(self) -> int:
        return sum(1 for timer in self._timers if timer.active)

    def _own(self, timer: TimerHandle) -> TimerHandle:
        self._timers.append(timer)
        return timer

    def _close(self) -> bool:
        if self._closed:
            return False
        self._closed = True
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        return True


@dataclass
class SimulatedSessionFactory:
    """
    Opens SimulatedSessions.

    join_delay=None means sessions never join. session_lifetime, when set,
    ends each session that long after it joined.
    """
    scheduler: Scheduler
    join_delay: float | None = 0.0
    session_lifetime: float | None = None
    travel_time: float | None = None
    position: tuple = (0.0, 64.0, 0.0)
    entities: list = field(default_factory=list)
    fail_open: bool = False
    opened: list = field(default_factory=list)

    def __call__(self, address: ServerAddress, credential: Credential) -> SimulatedSession:
        if self.fail_open:
            raise ConnectionRefusedError(f"Connection refused by {address}")

        session = SimulatedSession(
            credential,
            address=address,
            scheduler=self.scheduler,
            position=self.position,
            entities=self.entities,
            travel_time=self.travel_time,
        )
        self.opened.append(session)

        if self.join_delay is not None:
            session._own(self.scheduler.call_later(self.join_delay, lambda: self._join(session)))
        return session

    def _join(self, session: SimulatedSession) -> None:
        session.join()
        if self.session_lifetime is not None and not session.closed:
            session._own(self.scheduler.call_later(self.session_lifetime, session.end))


def create_session_factory(
    backend: str = "simulated",
    scheduler: Scheduler | None = None,
    **kwargs,
) -> SessionFactory:
    """
    Factory function to create a session factory.

    Args:
        backend: "simulated"
        scheduler: Scheduler for the backend's own timers
        **kwargs: Additional backend-specific options

    Returns:
        Callable opening a SessionHandle for (address, credential)
    """
    if backend == "simulated":
        if scheduler is None:
            raise ValueError("simulated backend requires a scheduler")
        return SimulatedSessionFactory(scheduler=scheduler, **kwargs)
    else:
        raise ValueError(f"Unknown backend: {backend}")
