"""
Core building blocks of the session lifecycle.

- credentials: the cyclic credential ring
- scheduler: timers with explicit cancellation tokens
- session: the external session handle and navigator capabilities
- termination: classifying why a session ended
"""

from .credentials import Credential, CredentialRing
from .errors import ConfigError
from .scheduler import LoopScheduler, ManualScheduler, Scheduler, TimerHandle

__all__ = [
    "ConfigError",
    "Credential",
    "CredentialRing",
    "LoopScheduler",
    "ManualScheduler",
    "Scheduler",
    "TimerHandle",
]
