"""
behaviors/movement.py

Navigation behaviors: walk to a fixed block, or patrol a small square.

Both only hand goals to the navigator; how the path is found is not
their concern.
"""

from __future__ import annotations
import logging

import numpy as np

from afk_rotator.core.session import GoalBlock, GoalXZ, SessionEvent, SessionHandle

from .base import BehaviorHandle, BehaviorUnit
from .descriptors import CircleWalkDescriptor, PositionGoalDescriptor

logger = logging.getLogger(__name__)

# +x, +z, -x, -z
CARDINAL_OFFSETS = np.array([
    [1.0, 0.0, 0.0],
    [0.0, 0.0, 1.0],
    [-1.0, 0.0, 0.0],
    [0.0, 0.0, -1.0],
])


def patrol_points(origin: np.ndarray, radius: float) -> np.ndarray:
    """Four points at radius around origin in the horizontal plane, shape (4, 3)."""
    origin = np.asarray(origin, dtype=np.float64)
    return origin + radius * CARDINAL_OFFSETS


class PositionGoalBehavior(BehaviorUnit):
    """Sets one GoalBlock per session. Arrival is logged, failure is not retried."""

    name = "position"
    descriptor: PositionGoalDescriptor

    def _start(self, handle: BehaviorHandle, session: SessionHandle) -> None:
        d = self.descriptor
        goal = GoalBlock(d.x, d.y, d.z)
        navigator = session.navigator

        def on_goal_reached(reached=None) -> None:
            if reached is not None and reached != goal:
                return
            logger.info(f"Bot arrived at target location. {_format_position(session.position)}")

        handle.track_subscription(navigator.on(SessionEvent.GOAL_REACHED, on_goal_reached))
        logger.info(f"Starting moving to target location ({d.x}, {d.y}, {d.z})")
        navigator.set_goal(goal)


class CircleWalkBehavior(BehaviorUnit):
    """
    Walks a square around where the session was when attached.

    Points are computed once; each tick targets the next one, wrapping
    after the fourth.
    """

    name = "circle-walk"
    descriptor: CircleWalkDescriptor

    def _start(self, handle: BehaviorHandle, session: SessionHandle) -> None:
        points = patrol_points(session.position, self.descriptor.radius)
        navigator = session.navigator
        index = 0

        def step() -> None:
            nonlocal index
            x, _, z = points[index]
            navigator.set_goal(GoalXZ(float(x), float(z)))
            index = (index + 1) % len(points)

        handle.track_timer(self.scheduler.call_every(self.descriptor.interval, step))


def _format_position(position: np.ndarray) -> str:
    x, y, z = (float(v) for v in position)
    return f"({x:.2f}, {y:.2f}, {z:.2f})"
