# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Streaming (SSE) endpoints.

``GET /sse`` opens a ``text/event-stream``.  Its first event is ``endpoint``,
whose data is the URL the client posts its messages to
(``/messages?sessionId=<id>``); every response and server notification
afterwards is an ``event: message`` carrying one JSON-RPC envelope.  Closing
the stream removes the session.

Both endpoints are guarded by the SDK's :class:`TransportSecurityMiddleware`
against DNS rebinding.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from mcp.server.transport_security import TransportSecurityMiddleware, TransportSecuritySettings
import orjson
from starlette.requests import Request
from starlette.responses import Response, StreamingResponse

from .http import ORJSONResponse, decode_json
from ...errors import INVALID_REQUEST, error_response
from ...utils import get_logger


if TYPE_CHECKING:
    from ..core import CapabilityServer
    from ..streaming import SessionStream

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


def format_event(event: str, data: str) -> str:
    lines = "".join(f"data: {line}\n" for line in data.splitlines() or [""])
    return f"event: {event}\n{lines}\n"


class StreamingEndpoints:
    """Starlette endpoints for the ``/sse`` + ``/messages`` pair."""

    def __init__(
        self,
        server: CapabilityServer,
        *,
        messages_path: str = "/messages",
        security_settings: TransportSecuritySettings | None = None,
    ) -> None:
        self._server = server
        self._messages_path = messages_path
        self._security = TransportSecurityMiddleware(security_settings) if security_settings is not None else None
        self._logger = get_logger("capmcp.transports.sse")

    async def open_stream(self, request: Request) -> Response:
        rejection = await self._check(request, is_post=False)
        if rejection is not None:
            return rejection

        session = self._server.streaming.create_session()
        endpoint = f"{self._messages_path}?sessionId={session.id}"
        return StreamingResponse(
            self._events(session.stream, endpoint), media_type="text/event-stream", headers=SSE_HEADERS
        )

    async def post_message(self, request: Request) -> Response:
        rejection = await self._check(request, is_post=True)
        if rejection is not None:
            return rejection

        session_id = request.query_params.get("sessionId")
        if not session_id:
            return ORJSONResponse(error_response(None, INVALID_REQUEST, "Session ID is required"), status_code=400)

        payload, failure = await decode_json(request)
        if failure is not None:
            return failure

        outcome = await self._server.streaming.handle_message(session_id, payload)
        if outcome.body is None:
            return Response("Accepted", status_code=outcome.status_code, media_type="text/plain")
        return ORJSONResponse(outcome.body, status_code=outcome.status_code)

    async def _events(self, stream: SessionStream, endpoint: str) -> AsyncIterator[str]:
        try:
            yield format_event("endpoint", endpoint)
            async for message in stream.messages():
                yield format_event("message", orjson.dumps(message).decode())
        finally:
            self._logger.debug("Stream for session %s ended", stream.session_id)
            stream.disconnect()

    async def _check(self, request: Request, *, is_post: bool) -> Response | None:
        if self._security is None:
            return None
        return await self._security.validate_request(request, is_post=is_post)


__all__ = ["SSE_HEADERS", "StreamingEndpoints", "format_event"]
