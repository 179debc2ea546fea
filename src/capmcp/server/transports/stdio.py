# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""STDIO transport adapter built on the reference MCP SDK.

Delegates framing to the SDK's ``stdio_server`` helper, which handles
newline-delimited JSON-RPC traffic over ``stdin``/``stdout``.  All traffic on
the pipe belongs to one session whose id is ``config.stdio_session_id``.
"""

from __future__ import annotations

from typing import Any

import anyio
from mcp import types
from mcp.server.stdio import stdio_server
from mcp.shared.message import SessionMessage
from pydantic import ValidationError

from .base import BaseTransport
from ...errors import INVALID_REQUEST, PARSE_ERROR, error_response
from ...utils import get_logger


def get_stdio_server():
    """Return the SDK's stdio context manager.

    Separated into a helper so tests can patch it with in-memory transports.
    """
    return stdio_server


def _error_for(exc: Exception) -> dict[str, Any]:
    if isinstance(exc, ValidationError) and any(error["type"] == "json_invalid" for error in exc.errors()):
        return error_response(None, PARSE_ERROR, "Parse error")
    return error_response(None, INVALID_REQUEST, "Invalid Request")


class StdioTransport(BaseTransport):
    """Run a :class:`capmcp.server.CapabilityServer` over STDIO."""

    TRANSPORT = ("stdio", "STDIO", "Standard IO")

    async def run(self, **_: Any) -> None:
        logger = get_logger("capmcp.transports.stdio")
        session_id = self.server.config.stdio_session_id
        stdio_ctx = get_stdio_server()

        async with self.server.running(), stdio_ctx() as (read_stream, write_stream):
            async with anyio.create_task_group() as tg:
                async for message in read_stream:
                    if isinstance(message, Exception):
                        logger.warning("Rejected malformed message: %s", message)
                        await self._write(write_stream, _error_for(message), logger)
                        continue
                    payload = message.message.model_dump(by_alias=True, mode="json", exclude_none=True)
                    tg.start_soon(self._respond, payload, session_id, write_stream, logger)

    async def _respond(self, payload: dict[str, Any], session_id: str, write_stream, logger) -> None:
        response = await self.server.handle(payload, session_id)
        if response is not None:
            await self._write(write_stream, response, logger)

    async def _write(self, write_stream, response: dict[str, Any], logger) -> None:
        try:
            message = types.JSONRPCMessage.model_validate(response)
        except ValidationError:
            logger.warning("Response cannot be framed as JSON-RPC and was not sent: %s", response)
            return
        await write_stream.send(SessionMessage(message))


__all__ = ["StdioTransport", "get_stdio_server"]
