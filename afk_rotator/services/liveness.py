"""
afk_rotator/services/liveness.py

Liveness endpoint for external uptime monitors.

One route, one static answer. It reads nothing from the controller.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from afk_rotator.core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
RUNNING_MESSAGE = "Bot is running"


def parse_port(value: Any, source: str = "PORT") -> int:
    """A TCP port number. Raises ConfigError."""
    try:
        port = int(str(value).strip())
    except ValueError:
        raise ConfigError(f"{source} must be a port number, got {value!r}") from None
    if not 1 <= port <= 65535:
        raise ConfigError(f"{source} must be between 1 and 65535, got {port}")
    return port


def _port_from_env() -> int:
    return parse_port(os.environ.get("PORT", DEFAULT_PORT))


@dataclass
class LivenessConfig:
    """Configuration for the liveness service."""

    host: str = "0.0.0.0"
    port: int = field(default_factory=_port_from_env)


def load_liveness_config(port: Any = None) -> LivenessConfig:
    """Liveness config from an explicit port, else $PORT. Raises ConfigError."""
    if port is not None:
        return LivenessConfig(port=parse_port(port, source="--port"))
    return LivenessConfig()


def create_app(config: LivenessConfig) -> Any:
    """Create the FastAPI application."""
    from fastapi import FastAPI
    from fastapi.responses import PlainTextResponse

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Server is running on port {config.port}")
        yield
        logger.info("Liveness endpoint shutting down")

    app = FastAPI(
        title="afk-rotator",
        description="Liveness probe for the session rotation controller",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return RUNNING_MESSAGE

    return app


async def serve(config: LivenessConfig) -> None:
    """Serve the liveness app on the running event loop until shutdown."""
    import uvicorn

    app = create_app(config)
    server = uvicorn.Server(uvicorn.Config(app, host=config.host, port=config.port, log_level="warning"))
    await server.serve()
