"""
core/session.py

Capabilities consumed from the outside world.

A SessionHandle is one live connection to the game server. It emits
lifecycle and world events and accepts a handful of commands. The
Navigator accepts movement goals and reports when one is reached.
Neither knows anything about credentials rotation or behaviors.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol
import contextlib
import logging

import numpy as np

from .credentials import Credential

logger = logging.getLogger(__name__)

EventHandler = Callable[..., Any]


class SessionEvent(Enum):
    """Events a session handle or navigator can emit."""
    JOINED = "joined"
    ENDED = "ended"
    KICKED = "kicked"
    ERROR = "error"
    CHAT = "chat"
    DIED = "died"
    GOAL_REACHED = "goal_reached"


class EntityKind(Enum):
    """Coarse entity classification exposed by the world model."""
    PLAYER = "player"
    MOB = "mob"
    HOSTILE = "hostile"
    ANIMAL = "animal"
    OBJECT = "object"    # dropped items, projectiles
    GLOBAL = "global"    # environmental markers (lightning)
    ORB = "orb"          # experience orbs
    OTHER = "other"


@dataclass
class Entity:
    """An entity visible to the session."""
    entity_id: int
    kind: EntityKind
    position: np.ndarray
    name: str = ""

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=np.float64)


@dataclass(frozen=True)
class GoalBlock:
    """Stand on an exact block."""
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class GoalXZ:
    """Reach a column in the horizontal plane, any height."""
    x: float
    z: float


Goal = GoalBlock | GoalXZ


@dataclass(frozen=True)
class ServerAddress:
    host: str
    port: int = 25565
    version: str | None = None

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class EventEmitter:
    """
    Minimal listener registry.

    on() returns an unsubscribe callable; calling it twice, or after the
    emitter is gone, does nothing.
    """

    def __init__(self):
        self._listeners: dict[SessionEvent, list[EventHandler]] = defaultdict(list)

    def on(self, event: SessionEvent, handler: EventHandler) -> Callable[[], None]:
        self._listeners[event].append(handler)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners[event].remove(handler)

        return _unsubscribe

    def emit(self, event: SessionEvent, *args: Any) -> None:
        for handler in list(self._listeners[event]):
            # A handler earlier in this dispatch may have unsubscribed it
            if handler not in self._listeners[event]:
                continue
            try:
                handler(*args)
            except Exception:
                logger.exception(f"Listener for {event.value} failed")

    def listener_count(self, event: SessionEvent | None = None) -> int:
        if event is not None:
            return len(self._listeners[event])
        return sum(len(handlers) for handlers in self._listeners.values())


class Navigator(EventEmitter, ABC):
    """Path planning capability. Emits GOAL_REACHED(goal)."""

    @abstractmethod
    def set_goal(self, goal: Goal) -> None:
        pass


class SessionHandle(EventEmitter, ABC):
    """
    One live connection to the remote server.

    Emits JOINED, ENDED, KICKED(payload), ERROR(message),
    CHAT(sender, text) and DIED.
    """

    def __init__(self, credential: Credential):
        super().__init__()
        self.credential = credential

    @property
    @abstractmethod
    def navigator(self) -> Navigator:
        pass

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once the connection is gone; commands become no-ops."""
        pass

    @property
    @abstractmethod
    def position(self) -> np.ndarray:
        pass

    @property
    @abstractmethod
    def yaw(self) -> float:
        pass

    @property
    @abstractmethod
    def pitch(self) -> float:
        pass

    @abstractmethod
    def send_chat(self, text: str) -> None:
        pass

    @abstractmethod
    def set_control_state(self, control: str, state: bool) -> None:
        pass

    @abstractmethod
    def attack(self, entity: Entity) -> None:
        pass

    @abstractmethod
    def swing_arm(self, hand: str = "right") -> None:
        pass

    @abstractmethod
    def look(self, yaw: float, pitch: float, force: bool = True) -> None:
        pass

    @abstractmethod
    def nearest_entity(self, predicate: Callable[[Entity], bool]) -> Entity | None:
        """Closest entity matching predicate; the first found wins ties."""
        pass

    @abstractmethod
    def end(self, reason: str | None = None) -> None:
        """Close the connection. Emits ENDED once."""
        pass


class SessionFactory(Protocol):
    def __call__(self, address: ServerAddress, credential: Credential) -> SessionHandle:
        ...
