"""
afk_rotator/services/

Long-running services.

Architecture:
- Controller: owns one session at a time, attaches behaviors, rotates credentials
- Simulated: in-memory session backend for tests and dry runs
- Liveness: static HTTP probe for uptime monitors

The controller opens a session for the current credential, waits for it
to join, and attaches behaviors. When the session ends for any reason it
detaches everything, advances the credential ring and reconnects after a
back-off.
"""

from .controller import ControllerConfig, SessionController, SessionRecord, SessionState
from .liveness import LivenessConfig, create_app
from .simulated import SimulatedSession, SimulatedSessionFactory, create_session_factory

__all__ = [
    "ControllerConfig",
    "SessionController",
    "SessionRecord",
    "SessionState",
    "LivenessConfig",
    "create_app",
    "SimulatedSession",
    "SimulatedSessionFactory",
    "create_session_factory",
]
