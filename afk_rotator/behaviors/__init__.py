"""
Scripted behaviors attached to each session.

- chat: auto-authentication, scripted chat
- movement: goal seeking, circular patrol
- anti_idle: held controls, periodic strikes, look rotation
"""

from .base import BehaviorHandle, BehaviorUnit
from .descriptors import BehaviorDescriptor
from .factory import create_behavior, create_behaviors

__all__ = [
    "BehaviorDescriptor",
    "BehaviorHandle",
    "BehaviorUnit",
    "create_behavior",
    "create_behaviors",
]
