# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Server configuration.

:class:`ServerConfig` is a plain dataclass so it can be built in code, from
the environment (:meth:`ServerConfig.from_env`) or from CLI flags layered on
top of the environment.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
import os
from typing import Any, Final

from .capabilities import DEFAULT_SERVER_CAPABILITIES
from .errors import ServerConfigError


PROTOCOL_VERSION: Final[str] = "2025-06-18"

TRANSPORTS: Final[tuple[str, ...]] = ("stdio", "http", "sse")

DEFAULT_ALLOWED_HOSTS: Final[tuple[str, ...]] = (
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "localhost:*",
    "127.0.0.1:*",
    "0.0.0.0:*",
)


@dataclass(slots=True)
class AuthConfig:
    """HTTP Basic credentials guarding the HTTP transports."""

    enabled: bool = False
    username: str = "admin"
    password: str = "secret"


@dataclass(slots=True)
class ServerConfig:
    name: str = "capmcp-server"
    version: str = "1.0.0"
    protocol_version: str = PROTOCOL_VERSION
    instructions: str | None = None
    transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = 8080
    cors_enabled: bool = False
    idle_timeout: float = 300.0
    sweep_interval: float = 60.0
    request_timeout: float | None = 30.0
    http_session_id: str = "http-default"
    stdio_session_id: str = "stdio"
    stream_buffer_size: int = 64
    server_capabilities: Mapping[str, Any] = field(default_factory=lambda: dict(DEFAULT_SERVER_CAPABILITIES))
    allowed_hosts: tuple[str, ...] = DEFAULT_ALLOWED_HOSTS
    dns_rebinding_protection: bool = True
    auth: AuthConfig = field(default_factory=AuthConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServerConfig:
        """Build a config from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()

        try:
            config = cls(
                name=env.get("SERVER_NAME", defaults.name),
                version=env.get("SERVER_VERSION", defaults.version),
                protocol_version=env.get("PROTOCOL_VERSION", defaults.protocol_version),
                instructions=env.get("SERVER_INSTRUCTIONS") or None,
                transport=env.get("TRANSPORT_TYPE", defaults.transport).lower(),
                host=env.get("HTTP_HOST", defaults.host),
                port=int(env.get("HTTP_PORT", defaults.port)),
                cors_enabled=_flag(env.get("ENABLE_CORS")),
                idle_timeout=float(env.get("SESSION_TIMEOUT", defaults.idle_timeout)),
                sweep_interval=float(env.get("SWEEP_INTERVAL", defaults.sweep_interval)),
                request_timeout=_optional_float(env.get("REQUEST_TIMEOUT"), defaults.request_timeout),
                auth=AuthConfig(
                    enabled=_flag(env.get("AUTH_ENABLED")),
                    username=env.get("AUTH_USERNAME", defaults.auth.username),
                    password=env.get("AUTH_PASSWORD", defaults.auth.password),
                ),
            )
        except ValueError as exc:
            raise ServerConfigError(f"Invalid environment configuration: {exc}") from exc

        config.validate()
        return config

    def with_overrides(self, **overrides: Any) -> ServerConfig:
        """Return a copy with every non-``None`` override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        updated = replace(self, **changes)
        updated.validate()
        return updated

    def validate(self) -> None:
        errors: list[str] = []
        if self.transport not in TRANSPORTS:
            errors.append(f"transport must be one of {', '.join(TRANSPORTS)} (got {self.transport!r})")
        if self.idle_timeout <= 0:
            errors.append("idle_timeout must be positive")
        if self.sweep_interval <= 0:
            errors.append("sweep_interval must be positive")
        if self.request_timeout is not None and self.request_timeout <= 0:
            errors.append("request_timeout must be positive or None")
        if not 0 < self.port < 65536:
            errors.append(f"port out of range: {self.port}")
        if self.stream_buffer_size < 0:
            errors.append("stream_buffer_size must not be negative")
        if errors:
            bullet_list = "\n - ".join(errors)
            raise ServerConfigError(f"ServerConfig is invalid:\n - {bullet_list}")


def _flag(value: str | None) -> bool:
    return value is not None and value.strip().lower() in {"1", "true", "yes", "on"}


def _optional_float(value: str | None, default: float | None) -> float | None:
    if value is None or value == "":
        return default
    if value.strip().lower() in {"none", "off", "0"}:
        return None
    return float(value)


__all__ = ["PROTOCOL_VERSION", "TRANSPORTS", "AuthConfig", "ServerConfig"]
