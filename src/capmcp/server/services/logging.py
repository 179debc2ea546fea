# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Logging capability service.

Implements the logging capability of the Model Context Protocol:

- https://modelcontextprotocol.io/specification/2025-06-18/server/utilities/logging
  (logging capability, setLevel request, message notifications)

Each session keeps its own threshold in session metadata under
``log_level``.  Messages are pushed as ``notifications/message`` to every
session that has a bound stream, negotiated ``logging`` and whose threshold
the message level meets.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from typing import Any

from mcp import types

from ...errors import INVALID_PARAMS, rpc_error
from ...utils import get_logger
from ..sessions import SessionStore


_LOGGING_LEVEL_MAP = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "notice": logging.INFO + 5,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "alert": logging.CRITICAL + 5,
    "emergency": logging.CRITICAL + 10,
}

LEVEL_METADATA_KEY = "log_level"

Sender = Callable[[str, dict[str, Any]], Awaitable[bool]]


class LoggingService:
    def __init__(
        self,
        store: SessionStore,
        sender: Sender | None = None,
        *,
        default_level: types.LoggingLevel = "info",
        logger=None,
    ) -> None:
        self._store = store
        self._sender = sender
        self._default_level = default_level
        self._logger = logger or get_logger("capmcp.logging")

    def attach_sender(self, sender: Sender) -> None:
        self._sender = sender

    def set_level(self, session_id: str, level: str) -> None:
        self._resolve(level)
        if self._store.update_metadata(session_id, {LEVEL_METADATA_KEY: level}) is None:
            raise rpc_error(INVALID_PARAMS, f"Unknown session: {session_id}")
        self._logger.debug("Session %s log level set to %s", session_id, level)

    def level_for(self, session_id: str) -> str:
        session = self._store.peek(session_id)
        if session is None:
            return self._default_level
        return str(session.metadata.get(LEVEL_METADATA_KEY, self._default_level))

    async def emit(self, level: types.LoggingLevel, data: Any, logger_name: str | None = None) -> int:
        """Deliver a log message to every interested session; return the delivery count."""
        numeric = self._resolve(level)
        if self._sender is None:
            return 0

        params = types.LoggingMessageNotificationParams(level=level, logger=logger_name, data=data)
        notification = {
            "jsonrpc": "2.0",
            "method": "notifications/message",
            "params": params.model_dump(by_alias=True, mode="json", exclude_none=True),
        }

        delivered = 0
        for session in self._store.list_active():
            if session.stream is None or not session.negotiated.logging:
                continue
            threshold = _LOGGING_LEVEL_MAP.get(self.level_for(session.id), logging.INFO)
            if numeric < threshold:
                continue
            if await self._sender(session.id, notification):
                delivered += 1
        return delivered

    def _resolve(self, level: str) -> int:
        try:
            return _LOGGING_LEVEL_MAP[level]
        except KeyError as exc:
            raise rpc_error(INVALID_PARAMS, f"Unsupported logging level '{level}'") from exc


__all__ = ["LEVEL_METADATA_KEY", "LoggingService"]
