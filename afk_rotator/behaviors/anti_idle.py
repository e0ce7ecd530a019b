"""
behaviors/anti_idle.py

Keeping the character visibly busy so the server does not mark it idle.
"""

from __future__ import annotations
import logging

from afk_rotator.core.session import Entity, EntityKind, SessionHandle

from .base import BehaviorHandle, BehaviorUnit
from .descriptors import HoldControlDescriptor, LookRotationDescriptor, StrikeDescriptor

logger = logging.getLogger(__name__)

# Never strike players, items, markers or orbs
NON_HOSTILE_KINDS = frozenset({
    EntityKind.OBJECT,
    EntityKind.PLAYER,
    EntityKind.GLOBAL,
    EntityKind.ORB,
    EntityKind.OTHER,
})


def is_hostile(entity: Entity) -> bool:
    return entity.kind not in NON_HOSTILE_KINDS


class HoldControlBehavior(BehaviorUnit):
    """Holds sneak or jump until detached."""

    name = "hold-control"
    descriptor: HoldControlDescriptor

    def _start(self, handle: BehaviorHandle, session: SessionHandle) -> None:
        control = self.descriptor.control
        session.set_control_state(control, True)

        def release() -> None:
            if not session.closed:
                session.set_control_state(control, False)

        handle.on_detach(release)


class StrikeBehavior(BehaviorUnit):
    """Every delay: hit the nearest hostile if allowed, else swing at the air."""

    name = "hit"
    descriptor: StrikeDescriptor

    def _start(self, handle: BehaviorHandle, session: SessionHandle) -> None:
        attack_mobs = self.descriptor.attack_mobs

        def strike() -> None:
            if attack_mobs:
                target = session.nearest_entity(is_hostile)
                if target is not None:
                    session.attack(target)
                    return
            session.swing_arm("right")

        handle.track_timer(self.scheduler.call_every(self.descriptor.delay, strike))


class LookRotationBehavior(BehaviorUnit):
    """Turns a little every tick; pitch is left alone."""

    name = "rotate"
    descriptor: LookRotationDescriptor

    def _start(self, handle: BehaviorHandle, session: SessionHandle) -> None:
        step = self.descriptor.yaw_step

        def turn() -> None:
            session.look(session.yaw + step, session.pitch, force=True)

        handle.track_timer(self.scheduler.call_every(self.descriptor.interval, turn))
