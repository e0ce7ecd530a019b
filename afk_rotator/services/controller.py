"""
afk_rotator/services/controller.py

Session controller service.

The controller keeps exactly one session alive at a time:
1. Takes the current credential from the ring and opens a session
2. Waits for the session to join
3. Attaches every enabled behavior and arms the forced-rotation timer
4. Waits for the session to end, be kicked, or fail
5. Detaches everything, classifies the cause, advances the ring
6. Waits the back-off delay and starts over

It is driven entirely by session events and scheduler timers; nothing
here blocks or polls.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import sys
from collections import Counter, deque
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Callable

from afk_rotator.behaviors.base import BehaviorHandle, BehaviorUnit
from afk_rotator.core.credentials import Credential, CredentialRing
from afk_rotator.core.errors import ConfigError
from afk_rotator.core.scheduler import LoopScheduler, Scheduler, TimerHandle
from afk_rotator.core.session import (
    ServerAddress,
    SessionEvent,
    SessionFactory,
    SessionHandle,
)
from afk_rotator.core.termination import (
    Termination,
    TerminationCause,
    classify_ended,
    classify_error,
    classify_kicked,
)

from .liveness import LivenessConfig, load_liveness_config

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

FORCED_ROTATION_REASON = "forced rotation"


class SessionState(Enum):
    """Lifecycle of the controller's current session."""
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    ACTIVE = "active"
    TERMINATING = "terminating"


@dataclass
class ControllerConfig:
    """Configuration for the session controller."""
    # Remote server
    host: str = "localhost"
    port: int = 25565
    version: str | None = None

    # Rotation
    reconnect_delay: float = 5.0  # Back-off between sessions (seconds)
    max_session_lifetime: float = 6 * 60 * 60  # Forced rotation (seconds)

    # Observability
    chat_log: bool = False
    history_limit: int = 100  # Session records kept for status

    @property
    def address(self) -> ServerAddress:
        return ServerAddress(self.host, self.port, self.version)


@dataclass
class Session:
    """One connection attempt under one credential."""
    sequence: int
    credential: Credential
    started_at: float
    state: SessionState = SessionState.CONNECTING
    handle: SessionHandle | None = None
    behaviors: list[BehaviorHandle] = field(default_factory=list)
    subscriptions: list[Callable[[], None]] = field(default_factory=list)
    rotation_timer: TimerHandle | None = None
    termination: Termination | None = None

    @property
    def username(self) -> str:
        return self.credential.username


@dataclass(frozen=True)
class SessionRecord:
    """What happened to a finished session."""
    sequence: int
    username: str
    cause: TerminationCause
    reason: str
    started_at: float
    ended_at: float

    @property
    def duration(self) -> float:
        return self.ended_at - self.started_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "username": self.username,
            "cause": self.cause.value,
            "reason": self.reason,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "duration": self.duration,
        }


class SessionController:
    """
    Drives sessions through IDLE -> CONNECTING -> READY -> ACTIVE ->
    TERMINATING -> IDLE, forever, one at a time.
    """

    def __init__(
        self,
        config: ControllerConfig,
        ring: CredentialRing,
        behaviors: list[BehaviorUnit],
        session_factory: SessionFactory,
        scheduler: Scheduler,
    ):
        self.config = config
        self.ring = ring
        self.behaviors = list(behaviors)
        self.session_factory = session_factory
        self.scheduler = scheduler

        # State tracking
        self.running = False
        self.sequence = 0
        self.history: deque[SessionRecord] = deque(maxlen=config.history_limit)
        self.termination_counts: Counter[TerminationCause] = Counter()

        self._session: Session | None = None
        self._backoff_timer: TimerHandle | None = None

        logger.info(
            f"Controller initialized with {len(ring)} credentials "
            f"and {len(self.behaviors)} behaviors"
        )

    # ==================== Lifecycle ====================

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.IDLE
        return self._session.state

    @property
    def attached_behaviors(self) -> int:
        if self._session is None:
            return 0
        return sum(1 for handle in self._session.behaviors if not handle.detached)

    def start(self) -> None:
        """Begin the lifecycle loop. Returns immediately."""
        if self.running:
            return
        self.running = True
        logger.info(f"Starting session rotation against {self.config.address}")
        self._connect()

    def stop(self) -> None:
        """Tear down the current session and cancel the pending reconnect."""
        if not self.running:
            return
        self.running = False
        logger.info("Stopping session controller...")

        if self._backoff_timer is not None:
            self._backoff_timer.cancel()
            self._backoff_timer = None

        session = self._session
        if session is not None:
            session.state = SessionState.TERMINATING
            self._teardown(session)
            self._session = None

    # ==================== Transitions ====================

    def _connect(self) -> None:
        credential = self.ring.current()
        self.sequence += 1
        session = Session(
            sequence=self.sequence,
            credential=credential,
            started_at=self.scheduler.now(),
        )
        self._session = session
        logger.info(
            f"Session {session.sequence}: connecting {credential.username} "
            f"to {self.config.address}"
        )

        try:
            handle = self.session_factory(self.config.address, credential)
        except Exception as e:
            logger.error(f"An error occurred: {e}")
            self._terminate(session, classify_error(e))
            return

        session.handle = handle
        session.subscriptions = [
            handle.on(SessionEvent.JOINED, partial(self._on_joined, session)),
            handle.on(SessionEvent.ENDED, partial(self._on_ended, session)),
            handle.on(SessionEvent.KICKED, partial(self._on_kicked, session)),
            handle.on(SessionEvent.ERROR, partial(self._on_error, session)),
            handle.on(SessionEvent.DIED, partial(self._on_died, session)),
            handle.on(SessionEvent.CHAT, partial(self._on_chat, session)),
        ]

    def _on_joined(self, session: Session) -> None:
        if session is not self._session or session.state is not SessionState.CONNECTING:
            return
        session.state = SessionState.READY
        logger.info(f"{session.username} joined the server")
        self._activate(session)

    def _activate(self, session: Session) -> None:
        session.state = SessionState.ACTIVE
        for unit in self.behaviors:
            try:
                behavior = unit.attach(session.handle)
            except Exception as e:
                logger.error(f"Failed to attach {unit.name} to {session.username}: {e}")
                behavior = None

            # The handle may have ended the session from inside attach
            if session is not self._session or session.state is not SessionState.ACTIVE:
                if behavior is not None:
                    self._release_behavior(session, behavior)
                logger.info(f"Session {session.sequence} ended while attaching {unit.name}")
                return
            if behavior is not None:
                session.behaviors.append(behavior)

        session.rotation_timer = self.scheduler.call_later(
            self.config.max_session_lifetime,
            partial(self._force_rotation, session),
        )
        logger.info(
            f"Session {session.sequence} active with "
            f"{len(session.behaviors)}/{len(self.behaviors)} behaviors"
        )

    def _force_rotation(self, session: Session) -> None:
        if session is not self._session or session.state is not SessionState.ACTIVE:
            return
        session.rotation_timer = None
        logger.info(f"{session.username} disconnecting for auto-reconnect cycle.")
        # Teardown unsubscribes before ending the handle, so the ENDED it
        # emits is not counted as a second termination
        self._terminate(session, classify_ended(FORCED_ROTATION_REASON))

    def _on_ended(self, session: Session) -> None:
        self._terminate(session, classify_ended())

    def _on_kicked(self, session: Session, payload: Any = None) -> None:
        if session is not self._session:
            return
        termination = classify_kicked(payload)
        logger.warning(f"Bot was kicked from the server. Reason: {termination.reason}")
        self._terminate(session, termination)

    def _on_error(self, session: Session, error: Any = None) -> None:
        if session is not self._session:
            return
        termination = classify_error(error)
        logger.error(f"An error occurred: {termination.reason}")
        self._terminate(session, termination)

    def _on_died(self, session: Session) -> None:
        if session is not self._session or session.handle is None:
            return
        position = ", ".join(f"{v:.2f}" for v in session.handle.position)
        logger.warning(f"Bot has died and was respawned at ({position})")

    def _on_chat(self, session: Session, sender: str, text: str) -> None:
        if self.config.chat_log and session is self._session:
            logger.info(f"<{sender}> {text}")

    def _terminate(self, session: Session, termination: Termination) -> None:
        if session is not self._session:
            return
        if session.state in (SessionState.TERMINATING, SessionState.IDLE):
            return

        session.state = SessionState.TERMINATING
        session.termination = termination
        self._teardown(session)
        self._record(session, termination)

        previous = session.username
        self.ring.advance()
        logger.info(f"Rotating credentials: {previous} -> {self.ring.current().username}")

        session.state = SessionState.IDLE
        self._session = None
        if self.running:
            self._backoff_timer = self.scheduler.call_later(
                self.config.reconnect_delay, self._on_backoff_elapsed
            )

    def _on_backoff_elapsed(self) -> None:
        self._backoff_timer = None
        if self.running:
            self._connect()

    def _teardown(self, session: Session) -> None:
        """Release everything the session owns. Never raises."""
        if session.rotation_timer is not None:
            session.rotation_timer.cancel()
            session.rotation_timer = None

        for behavior in session.behaviors:
            self._release_behavior(session, behavior)

        for unsubscribe in session.subscriptions:
            unsubscribe()
        session.subscriptions = []

        handle = session.handle
        if handle is not None and not handle.closed:
            reason = session.termination.reason if session.termination else None
            try:
                handle.end(reason or None)
            except Exception as e:
                logger.warning(f"Failed to release session {session.sequence}: {e}")

    def _release_behavior(self, session: Session, behavior: BehaviorHandle) -> None:
        try:
            behavior.detach()
        except Exception as e:
            logger.warning(f"Failed to detach {behavior.name} from {session.username}: {e}")

    def _record(self, session: Session, termination: Termination) -> None:
        self.termination_counts[termination.cause] += 1
        self.history.append(SessionRecord(
            sequence=session.sequence,
            username=session.username,
            cause=termination.cause,
            reason=termination.reason,
            started_at=session.started_at,
            ended_at=self.scheduler.now(),
        ))
        logger.info(f"Session {session.sequence} ({session.username}) {termination.describe()}")

    # ==================== Status ====================

    def get_status(self) -> dict[str, Any]:
        """Get current controller status."""
        session = self._session
        return {
            "running": self.running,
            "state": self.state.value,
            "sequence": self.sequence,
            "username": session.username if session else None,
            "cursor": self.ring.cursor,
            "next_username": self.ring.current().username,
            "attached_behaviors": self.attached_behaviors,
            "pending_timers": self.scheduler.pending(),
            "terminations": {
                cause.value: self.termination_counts[cause] for cause in TerminationCause
            },
            "history": [record.to_dict() for record in list(self.history)[-10:]],
        }


async def run_service(
    settings: Any,
    backend: str = "simulated",
    liveness: LivenessConfig | None = None,
) -> None:
    """
    Run the controller, and the liveness endpoint if configured, until interrupted.
    """
    from afk_rotator.behaviors.factory import create_behaviors

    from .liveness import serve
    from .simulated import create_session_factory

    scheduler = LoopScheduler(asyncio.get_running_loop())
    controller = SessionController(
        config=settings.controller,
        ring=settings.ring(),
        behaviors=create_behaviors(settings.behaviors, scheduler),
        session_factory=create_session_factory(backend, scheduler=scheduler),
        scheduler=scheduler,
    )
    controller.start()

    try:
        if liveness is not None:
            # uvicorn owns SIGINT/SIGTERM while serving and returns on shutdown
            await serve(liveness)
        else:
            stop = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError):
                    loop.add_signal_handler(sig, stop.set)
            await stop.wait()
    finally:
        logger.info("Received shutdown signal")
        controller.stop()
        scheduler.cancel_all()


def run_controller() -> None:
    """
    Run the controller as a standalone service.

    This is the entry point for the afk-rotator command.
    """
    import argparse

    from afk_rotator.settings import load_settings

    parser = argparse.ArgumentParser(description="Session rotation controller")
    parser.add_argument(
        "--config",
        default=os.environ.get("AFK_ROTATOR_CONFIG", "settings.yaml"),
        help="Path to the YAML (or JSON) settings file",
    )
    parser.add_argument("--backend", default="simulated", choices=["simulated"])
    parser.add_argument("--port", type=int, default=None, help="Liveness port (default: $PORT or 3000)")
    parser.add_argument("--no-liveness", action="store_true", help="Do not serve the liveness endpoint")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    try:
        settings = load_settings(args.config)
        liveness = None if args.no_liveness else load_liveness_config(args.port)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    try:
        asyncio.run(run_service(settings, backend=args.backend, liveness=liveness))
    except KeyboardInterrupt:
        logger.info("Controller interrupted by user")


if __name__ == "__main__":
    run_controller()
