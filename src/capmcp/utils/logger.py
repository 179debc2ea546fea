# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Process logging setup for capmcp.

Plain-text output is colored when attached to a terminal-friendly stream.
Structured JSON output (``CAPMCP_LOG_JSON=1``) serializes each record with
orjson, folding ``extra={"event": ...}`` fields into a ``context`` object so
session lifecycle events stay machine readable.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
import os
from typing import Any, ClassVar, Final

import orjson


RESET: Final[str] = "\033[0m"
DEBUG_COLOR: Final[str] = "\033[36m"
INFO_COLOR: Final[str] = "\033[32m"
WARNING_COLOR: Final[str] = "\033[33m"
ERROR_COLOR: Final[str] = "\033[1;31m"
CRITICAL_COLOR: Final[str] = "\033[1;35m"
LOGGER_COLOR: Final[str] = "\033[94m"

DEFAULT_LOGGER_NAME: Final[str] = "capmcp"
ENV_LOG_LEVEL: Final[str] = "CAPMCP_LOG_LEVEL"
ENV_LOG_JSON: Final[str] = "CAPMCP_LOG_JSON"
ENV_NO_COLOR: Final[str] = "NO_COLOR"
DEFAULT_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEFAULT_DATEFMT: Final[str] = "%Y-%m-%d %H:%M:%S"

JsonSerializer = Callable[[dict[str, Any]], str]

# Attributes present on every LogRecord; anything else arrived via ``extra``.
_RECORD_ATTRS: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys() | {"message", "asctime", "context", "taskName"}
)


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level and logger name."""

    LEVEL_COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": DEBUG_COLOR,
        "INFO": INFO_COLOR,
        "WARNING": WARNING_COLOR,
        "ERROR": ERROR_COLOR,
        "CRITICAL": CRITICAL_COLOR,
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname, name = record.levelname, record.name
        record.levelname = f"{self.LEVEL_COLORS.get(levelname, '')}{levelname}{RESET}"
        record.name = f"{LOGGER_COLOR}{name}{RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname, record.name = levelname, name


class CapMCPHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Marker handler so repeated setup calls do not stack handlers."""


class StructuredJSONFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def __init__(self, serializer: JsonSerializer | None = None, *, datefmt: str | None = None) -> None:
        super().__init__(datefmt=datefmt)
        self._serializer = serializer or _orjson_serializer

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        context: dict[str, Any] = {}
        explicit = getattr(record, "context", None)
        if isinstance(explicit, dict):
            context.update(explicit)
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and key not in context:
                context[key] = value
        if context:
            payload["context"] = context
        return self._serializer(payload)


def _orjson_serializer(payload: dict[str, Any]) -> str:
    return orjson.dumps(payload, default=str).decode()


def _env_flag(key: str) -> bool:
    value = os.getenv(key)
    return value is not None and value.strip().lower() in {"1", "true", "yes", "on"}


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv(ENV_LOG_LEVEL) or logging.INFO
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _installed_handler(root: logging.Logger) -> CapMCPHandler | None:
    for handler in root.handlers:
        if isinstance(handler, CapMCPHandler):
            return handler
    return None


def setup_logger(
    *,
    level: int | str | None = None,
    use_json: bool | None = None,
    use_color: bool | None = None,
    json_serializer: JsonSerializer | None = None,
    fmt: str | None = None,
    datefmt: str | None = DEFAULT_DATEFMT,
    force: bool = False,
) -> None:
    """Configure the root logger.

    Args:
        level: Log level; falls back to ``CAPMCP_LOG_LEVEL`` then ``INFO``.
        use_json: Emit JSON lines; defaults to ``CAPMCP_LOG_JSON``.
        use_color: Colorize plain output; off when ``NO_COLOR`` is set or JSON
            output is selected.
        json_serializer: Replacement for the orjson serializer.
        fmt: Format string for plain output.
        datefmt: Date format for both outputs.
        force: Replace a previously installed capmcp handler.
    """
    root = logging.getLogger()
    existing = _installed_handler(root)
    if existing is not None:
        if not force:
            return
        root.removeHandler(existing)
        existing.close()

    resolved_level = _resolve_level(level)
    root.setLevel(resolved_level)

    json_output = use_json if use_json is not None else _env_flag(ENV_LOG_JSON)
    if use_color is None:
        use_color = not json_output and not os.getenv(ENV_NO_COLOR)

    formatter: logging.Formatter
    if json_output:
        formatter = StructuredJSONFormatter(json_serializer, datefmt=datefmt)
    elif use_color:
        formatter = ColoredFormatter(fmt or DEFAULT_FORMAT, datefmt=datefmt)
    else:
        formatter = logging.Formatter(fmt or DEFAULT_FORMAT, datefmt=datefmt)

    handler = CapMCPHandler()
    handler.setLevel(resolved_level)
    handler.setFormatter(formatter)
    root.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a package logger, installing the default handler on first use."""
    if _installed_handler(logging.getLogger()) is None:
        setup_logger()
    return logging.getLogger(name or DEFAULT_LOGGER_NAME)


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "CapMCPHandler",
    "ColoredFormatter",
    "StructuredJSONFormatter",
    "get_logger",
    "setup_logger",
]
