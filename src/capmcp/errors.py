# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""JSON-RPC error codes and envelope builders.

Protocol-level failures are raised as :class:`mcp.shared.exceptions.McpError`
carrying :class:`mcp.types.ErrorData`; the router catches them and renders an
error envelope with :func:`error_response`.  Tool failures never take this
path: they are delivered as successful envelopes with ``isError`` set.
"""

from __future__ import annotations

from typing import Any, Final

from mcp import types
from mcp.shared.exceptions import McpError


JSONRPC_VERSION: Final[str] = "2.0"

PARSE_ERROR: Final[int] = types.PARSE_ERROR
INVALID_REQUEST: Final[int] = types.INVALID_REQUEST
METHOD_NOT_FOUND: Final[int] = types.METHOD_NOT_FOUND
INVALID_PARAMS: Final[int] = types.INVALID_PARAMS
INTERNAL_ERROR: Final[int] = types.INTERNAL_ERROR
SESSION_NOT_FOUND: Final[int] = -32000

RequestId = str | int | None


class ServerConfigError(ValueError):
    """Raised when a :class:`~capmcp.config.ServerConfig` is unusable."""


def rpc_error(code: int, message: str, data: Any | None = None) -> McpError:
    """Build an :class:`McpError` ready to be raised from a handler."""
    return McpError(types.ErrorData(code=code, message=message, data=data))


def success_response(request_id: RequestId, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(request_id: RequestId, code: int, message: str, data: Any | None = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def error_response_from(request_id: RequestId, exc: McpError) -> dict[str, Any]:
    return error_response(request_id, exc.error.code, exc.error.message, exc.error.data)


__all__ = [
    "JSONRPC_VERSION",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "SESSION_NOT_FOUND",
    "RequestId",
    "ServerConfigError",
    "rpc_error",
    "success_response",
    "error_response",
    "error_response_from",
]
