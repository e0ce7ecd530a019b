"""
afk_rotator/settings.py

Loads the settings file into typed configuration.

The file is YAML (JSON works too) and keeps the key layout of the
earlier settings.json files. Units follow those files: `repeat-delay` is in
seconds, `hit.delay` and `auto-reconnect-delay` are in milliseconds,
`max-session-lifetime` is in seconds. Everything is converted to
seconds here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from afk_rotator.behaviors.descriptors import (
    AutoAuthDescriptor,
    BehaviorDescriptor,
    ChatMessagesDescriptor,
    CircleWalkDescriptor,
    HoldControlDescriptor,
    LookRotationDescriptor,
    PositionGoalDescriptor,
    StrikeDescriptor,
)
from afk_rotator.core.credentials import Credential, CredentialRing
from afk_rotator.core.errors import ConfigError
from afk_rotator.services.controller import ControllerConfig

logger = logging.getLogger(__name__)

DEFAULT_POOL_PREFIX = "WatchDog"
DEFAULT_POOL_SIZE = 4


@dataclass
class BotSettings:
    """Everything loaded from the settings file."""
    controller: ControllerConfig
    credentials: list[Credential]
    behaviors: list[BehaviorDescriptor] = field(default_factory=list)

    def ring(self) -> CredentialRing:
        return CredentialRing(self.credentials)

    @property
    def enabled_behaviors(self) -> list[BehaviorDescriptor]:
        return [d for d in self.behaviors if d.enabled]


def load_settings(path: str | Path) -> BotSettings:
    """Read and validate a settings file. Raises ConfigError."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read settings file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed settings file {path}: {e}") from e

    settings = parse_settings(data)
    logger.info(
        f"Loaded settings from {path}: {len(settings.credentials)} credentials, "
        f"{len(settings.enabled_behaviors)} enabled behaviors"
    )
    return settings


def parse_settings(data: Any) -> BotSettings:
    """Build BotSettings from an already parsed document."""
    if not isinstance(data, dict):
        raise ConfigError("Settings document must be a mapping")

    utils = _section(data, "utils")
    controller = _parse_controller(data, utils)
    credentials = _parse_credentials(data)
    behaviors = _parse_behaviors(data, utils)

    # Validates the ring up front so a bad pool never reaches the loop
    CredentialRing(credentials)

    return BotSettings(controller=controller, credentials=credentials, behaviors=behaviors)


# ==================== Sections ====================

def _parse_controller(data: dict, utils: dict) -> ControllerConfig:
    server = _section(data, "server", required=True)
    host = server.get("ip")
    if not isinstance(host, str) or not host.strip():
        raise ConfigError("server.ip is required")

    version = server.get("version")
    return ControllerConfig(
        host=host.strip(),
        port=int(_number(server.get("port", 25565), "server.port", minimum=1)),
        version=str(version) if version not in (None, "", False) else None,
        reconnect_delay=_number(
            utils.get("auto-reconnect-delay", 5000), "utils.auto-reconnect-delay", minimum=0
        ) / 1000.0,
        max_session_lifetime=_number(
            utils.get("max-session-lifetime", 6 * 60 * 60), "utils.max-session-lifetime", positive=True
        ),
        chat_log=_parse_chat_log(utils.get("chat-log", False)),
    )


def _parse_chat_log(value: Any) -> bool:
    # Either `chat-log: true` or `chat-log: {enabled: true}`
    if isinstance(value, dict):
        return _flag(value.get("enabled", False), "utils.chat-log.enabled")
    return _flag(value, "utils.chat-log")


def _parse_credentials(data: dict) -> list[Credential]:
    account = _section(data, "bot-account")
    password = str(account.get("password") or "")
    auth = str(account.get("type") or "offline")

    accounts = data.get("accounts")
    if accounts is not None:
        if not isinstance(accounts, list) or not accounts:
            raise ConfigError("accounts must be a non-empty list")
        credentials = []
        for i, entry in enumerate(accounts):
            if not isinstance(entry, dict):
                raise ConfigError(f"accounts[{i}] must be a mapping")
            credentials.append(Credential(
                username=entry.get("username", ""),
                password=str(entry.get("password", password) or ""),
                auth=str(entry.get("type", auth) or auth),
            ))
        for credential in credentials:
            credential.validate()
        return credentials

    prefix = account.get("username-prefix", account.get("username", DEFAULT_POOL_PREFIX))
    if not isinstance(prefix, str) or not prefix.strip():
        raise ConfigError("bot-account.username-prefix is required")
    size = _number(account.get("pool-size", DEFAULT_POOL_SIZE), "bot-account.pool-size", minimum=1)
    if int(size) != size:
        raise ConfigError(f"bot-account.pool-size must be a whole number, got {size}")
    return list(CredentialRing.from_pool(prefix.strip(), int(size), password, auth))


def _parse_behaviors(data: dict, utils: dict) -> list[BehaviorDescriptor]:
    """Descriptors in configuration order; disabled ones are kept, flagged."""
    behaviors: list[BehaviorDescriptor] = []

    auto_auth = _section(utils, "auto-auth")
    auth_enabled = _flag(auto_auth.get("enabled", False), "auto-auth.enabled")
    auth_password = str(auto_auth.get("password") or "")
    if auth_enabled and not auth_password:
        raise ConfigError("auto-auth.password is required when auto-auth is enabled")
    behaviors.append(AutoAuthDescriptor(enabled=auth_enabled, password=auth_password))

    chat = _section(utils, "chat-messages")
    chat_enabled = _flag(chat.get("enabled", False), "chat-messages.enabled")
    messages = chat.get("messages", [])
    if not isinstance(messages, list):
        raise ConfigError("chat-messages.messages must be a list")
    if chat_enabled and not messages:
        raise ConfigError("chat-messages.messages must not be empty when enabled")
    behaviors.append(ChatMessagesDescriptor(
        enabled=chat_enabled,
        messages=tuple(str(m) for m in messages),
        repeat=_flag(chat.get("repeat", False), "chat-messages.repeat"),
        repeat_delay=_number(chat.get("repeat-delay", 60), "chat-messages.repeat-delay", positive=True),
    ))

    position = _section(data, "position")
    behaviors.append(PositionGoalDescriptor(
        enabled=_flag(position.get("enabled", False), "position.enabled"),
        x=_number(position.get("x", 0), "position.x"),
        y=_number(position.get("y", 0), "position.y"),
        z=_number(position.get("z", 0), "position.z"),
    ))

    anti_afk = _section(utils, "anti-afk")
    afk_enabled = _flag(anti_afk.get("enabled", False), "anti-afk.enabled")
    hit = _section(anti_afk, "hit")
    circle = _section(anti_afk, "circle-walk")

    behaviors.append(HoldControlDescriptor(
        enabled=afk_enabled and _flag(anti_afk.get("sneak", False), "anti-afk.sneak"),
        control="sneak",
    ))
    behaviors.append(HoldControlDescriptor(
        enabled=afk_enabled and _flag(anti_afk.get("jump", False), "anti-afk.jump"),
        control="jump",
    ))
    behaviors.append(StrikeDescriptor(
        enabled=afk_enabled and _flag(hit.get("enabled", False), "anti-afk.hit.enabled"),
        delay=_number(hit.get("delay", 1000), "anti-afk.hit.delay", positive=True) / 1000.0,
        attack_mobs=_flag(hit.get("attack-mobs", False), "anti-afk.hit.attack-mobs"),
    ))
    behaviors.append(LookRotationDescriptor(
        enabled=afk_enabled and _flag(anti_afk.get("rotate", False), "anti-afk.rotate"),
    ))
    behaviors.append(CircleWalkDescriptor(
        enabled=afk_enabled and _flag(circle.get("enabled", False), "anti-afk.circle-walk.enabled"),
        radius=_number(circle.get("radius", 2), "anti-afk.circle-walk.radius", positive=True),
    ))

    return behaviors


# ==================== Helpers ====================

def _section(data: dict, key: str, required: bool = False) -> dict:
    value = data.get(key)
    if value is None:
        if required:
            raise ConfigError(f"Missing required section: {key}")
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section {key} must be a mapping")
    return value


def _number(value: Any, name: str, minimum: float | None = None, positive: bool = False) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    value = float(value)
    if positive and value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    if minimum is not None and value < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {value}")
    return value


def _flag(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{name} must be true or false, got {value!r}")
    return value
