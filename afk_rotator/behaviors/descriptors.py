"""
behaviors/descriptors.py

Static configuration for each behavior kind.

A closed set: one frozen dataclass per kind, each tagged with `kind`.
Times are in seconds. Loaded once at startup, read-only afterwards.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import ClassVar


@dataclass(frozen=True)
class BehaviorDescriptor:
    """Base for all descriptors."""
    kind: ClassVar[str] = ""
    enabled: bool = True


@dataclass(frozen=True)
class AutoAuthDescriptor(BehaviorDescriptor):
    """Register and log in shortly after joining."""
    kind: ClassVar[str] = "auto-auth"
    password: str = field(default="", repr=False)
    delay: float = 0.5             # Server needs a moment before accepting commands


@dataclass(frozen=True)
class ChatMessagesDescriptor(BehaviorDescriptor):
    """Scripted chat, sent once in order or cycled on an interval."""
    kind: ClassVar[str] = "chat-messages"
    messages: tuple[str, ...] = ()
    repeat: bool = False
    repeat_delay: float = 60.0


@dataclass(frozen=True)
class PositionGoalDescriptor(BehaviorDescriptor):
    """Walk to a fixed block once per session."""
    kind: ClassVar[str] = "position"
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class HoldControlDescriptor(BehaviorDescriptor):
    """Hold a control state (sneak or jump) for the whole session."""
    kind: ClassVar[str] = "hold-control"
    control: str = "sneak"


@dataclass(frozen=True)
class StrikeDescriptor(BehaviorDescriptor):
    """Periodically hit the nearest hostile, or swing at the air."""
    kind: ClassVar[str] = "hit"
    delay: float = 1.0
    attack_mobs: bool = False


@dataclass(frozen=True)
class LookRotationDescriptor(BehaviorDescriptor):
    """Slow continuous yaw rotation."""
    kind: ClassVar[str] = "rotate"
    interval: float = 0.1
    yaw_step: float = 1.0


@dataclass(frozen=True)
class CircleWalkDescriptor(BehaviorDescriptor):
    """Patrol four cardinal points around the join position."""
    kind: ClassVar[str] = "circle-walk"
    radius: float = 2.0
    interval: float = 1.0


DESCRIPTOR_TYPES = (
    AutoAuthDescriptor,
    ChatMessagesDescriptor,
    PositionGoalDescriptor,
    HoldControlDescriptor,
    StrikeDescriptor,
    LookRotationDescriptor,
    CircleWalkDescriptor,
)
