"""
behaviors/factory.py

Descriptor to behavior dispatch.
"""

from __future__ import annotations
from typing import Iterable

from afk_rotator.core.scheduler import Scheduler

from .anti_idle import HoldControlBehavior, LookRotationBehavior, StrikeBehavior
from .base import BehaviorUnit
from .chat import AutoAuthBehavior, ChatMessagesBehavior
from .descriptors import (
    AutoAuthDescriptor,
    BehaviorDescriptor,
    ChatMessagesDescriptor,
    CircleWalkDescriptor,
    HoldControlDescriptor,
    LookRotationDescriptor,
    PositionGoalDescriptor,
    StrikeDescriptor,
)
from .movement import CircleWalkBehavior, PositionGoalBehavior


def create_behavior(descriptor: BehaviorDescriptor, scheduler: Scheduler) -> BehaviorUnit:
    """
    Factory function to create a behavior unit.

    Args:
        descriptor: One of the descriptor dataclasses
        scheduler: Scheduler the behavior's timers run on

    Returns:
        BehaviorUnit instance
    """
    if isinstance(descriptor, AutoAuthDescriptor):
        return AutoAuthBehavior(descriptor, scheduler)
    elif isinstance(descriptor, ChatMessagesDescriptor):
        return ChatMessagesBehavior(descriptor, scheduler)
    elif isinstance(descriptor, PositionGoalDescriptor):
        return PositionGoalBehavior(descriptor, scheduler)
    elif isinstance(descriptor, HoldControlDescriptor):
        return HoldControlBehavior(descriptor, scheduler)
    elif isinstance(descriptor, StrikeDescriptor):
        return StrikeBehavior(descriptor, scheduler)
    elif isinstance(descriptor, LookRotationDescriptor):
        return LookRotationBehavior(descriptor, scheduler)
    elif isinstance(descriptor, CircleWalkDescriptor):
        return CircleWalkBehavior(descriptor, scheduler)
    else:
        raise TypeError(f"Unknown behavior descriptor: {type(descriptor).__name__}")


def create_behaviors(
    descriptors: Iterable[BehaviorDescriptor],
    scheduler: Scheduler,
) -> list[BehaviorUnit]:
    """Units for the enabled descriptors, in configuration order."""
    return [create_behavior(d, scheduler) for d in descriptors if d.enabled]
