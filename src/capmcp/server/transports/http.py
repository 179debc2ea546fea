# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Single-shot HTTP endpoints.

``POST /mcp`` carries one JSON-RPC message per request and answers it in the
response body.  Requests name their session with the ``Mcp-Session-Id``
header; without it they share the configured default session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import orjson
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ...errors import INTERNAL_ERROR, METHOD_NOT_FOUND, PARSE_ERROR, error_response


if TYPE_CHECKING:
    from ..core import CapabilityServer

SESSION_HEADER = "Mcp-Session-Id"


class ORJSONResponse(JSONResponse):
    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content)


def status_for(response: dict[str, Any]) -> int:
    """Map a response envelope to the HTTP status it is sent with."""
    error = response.get("error")
    if error is None:
        return 200
    code = error.get("code")
    if code == METHOD_NOT_FOUND:
        return 404
    if code == INTERNAL_ERROR:
        return 500
    return 400


async def decode_json(request: Request) -> tuple[Any, Response | None]:
    """Return ``(payload, None)`` or ``(None, parse-error response)``."""
    body = await request.body()
    try:
        return orjson.loads(body), None
    except orjson.JSONDecodeError:
        return None, ORJSONResponse(error_response(None, PARSE_ERROR, "Parse error"), status_code=400)


class SingleShotEndpoint:
    """Starlette endpoint for ``POST /mcp``."""

    def __init__(self, server: CapabilityServer) -> None:
        self._server = server

    async def handle(self, request: Request) -> Response:
        payload, failure = await decode_json(request)
        if failure is not None:
            return failure

        session_id = request.headers.get(SESSION_HEADER) or self._server.config.http_session_id
        response = await self._server.handle(payload, session_id)
        headers = {SESSION_HEADER: session_id}
        if response is None:
            return Response(status_code=202, headers=headers)
        return ORJSONResponse(response, status_code=status_for(response), headers=headers)


class HealthEndpoint:
    """``GET /health``: liveness plus a session count."""

    def __init__(self, server: CapabilityServer) -> None:
        self._server = server

    async def handle(self, request: Request) -> Response:
        config = self._server.config
        return ORJSONResponse(
            {
                "status": "healthy",
                "server": config.name,
                "version": config.version,
                "protocol": config.protocol_version,
                "sessions": len(self._server.store),
            }
        )


__all__ = ["HealthEndpoint", "ORJSONResponse", "SESSION_HEADER", "SingleShotEndpoint", "decode_json", "status_for"]
