"""
core/termination.py

Why a session ended.

Classification is for the logs only; every cause leads to the same
rotation. Kick payloads come from the server and are not trusted to be
well formed.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any
import json
import logging
import re

logger = logging.getLogger(__name__)

UNKNOWN_REASON = "Unknown reason"

# Section-sign color and formatting codes, e.g. "§c" or "§l"
_FORMATTING_CODE = re.compile(r"§.")


class TerminationCause(Enum):
    ENDED = "ended"
    KICKED = "kicked"
    ERRORED = "errored"


@dataclass(frozen=True)
class Termination:
    cause: TerminationCause
    reason: str = ""

    def describe(self) -> str:
        if self.reason:
            return f"{self.cause.value}: {self.reason}"
        return self.cause.value


def strip_formatting(text: str) -> str:
    return _FORMATTING_CODE.sub("", text)


def extract_kick_reason(payload: Any) -> str:
    """
    Human-readable text of a kick reason.

    Accepts a JSON string, bytes, or an already decoded mapping. Takes the
    top-level "text", else the first "extra" entry's "text". Never raises.
    """
    text = ""
    try:
        if isinstance(payload, (bytes, bytearray)):
            payload = payload.decode("utf-8")
        parsed = json.loads(payload) if isinstance(payload, str) else payload
        text = _text_component(parsed)
    except (TypeError, ValueError) as e:
        logger.warning(f"Failed to parse kick reason: {e}")
        text = ""

    return strip_formatting(text) or UNKNOWN_REASON


def _text_component(parsed: Any) -> str:
    if not isinstance(parsed, dict):
        return ""
    text = parsed.get("text")
    if isinstance(text, str) and text:
        return text
    extra = parsed.get("extra")
    if isinstance(extra, list) and extra and isinstance(extra[0], dict):
        first = extra[0].get("text")
        if isinstance(first, str):
            return first
    return ""


def classify_ended(reason: str | None = None) -> Termination:
    return Termination(TerminationCause.ENDED, reason or "")


def classify_kicked(payload: Any) -> Termination:
    return Termination(TerminationCause.KICKED, extract_kick_reason(payload))


def classify_error(error: Any) -> Termination:
    message = str(error) if error is not None else ""
    return Termination(TerminationCause.ERRORED, message or "unknown error")
