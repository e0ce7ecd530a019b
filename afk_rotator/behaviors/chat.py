"""
behaviors/chat.py

Chat-driven behaviors: auto-authentication and scripted messages.
"""

from __future__ import annotations
import logging

from afk_rotator.core.session import SessionHandle

from .base import BehaviorHandle, BehaviorUnit
from .descriptors import AutoAuthDescriptor, ChatMessagesDescriptor

logger = logging.getLogger(__name__)


class AutoAuthBehavior(BehaviorUnit):
    """Sends /register then /login once, a short delay after joining."""

    name = "auto-auth"
    descriptor: AutoAuthDescriptor

    def _start(self, handle: BehaviorHandle, session: SessionHandle) -> None:
        logger.info("Started auto-auth module")
        password = self.descriptor.password

        def authenticate() -> None:
            session.send_chat(f"/register {password} {password}")
            session.send_chat(f"/login {password}")
            logger.info("Authentication commands executed")

        handle.track_timer(self.scheduler.call_later(self.descriptor.delay, authenticate))


class ChatMessagesBehavior(BehaviorUnit):
    """
    Scripted chat.

    Without repeat every message goes out immediately, in order. With
    repeat one message goes out per interval, wrapping around the list.
    The position in the list belongs to the session and starts at 0.
    """

    name = "chat-messages"
    descriptor: ChatMessagesDescriptor

    def _start(self, handle: BehaviorHandle, session: SessionHandle) -> None:
        logger.info("Started chat-messages module")
        messages = list(self.descriptor.messages)
        if not messages:
            return

        if not self.descriptor.repeat:
            for message in messages:
                session.send_chat(message)
            return

        index = 0

        def send_next() -> None:
            nonlocal index
            session.send_chat(messages[index])
            index = (index + 1) % len(messages)

        handle.track_timer(self.scheduler.call_every(self.descriptor.repeat_delay, send_next))
