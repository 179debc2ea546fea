# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Streaming transport sessions.

Each streaming client holds one long-lived outbound stream (served as
``text/event-stream`` by :mod:`capmcp.server.transports.sse`) and submits
requests out of band.  :class:`StreamingTransportManager` owns the binding
between a session record and its :class:`SessionStream`:

* the stream is created together with the session and bound into it;
* a peer disconnect and an explicit removal (idle sweep, shutdown) both end
  in :meth:`StreamingTransportManager.remove_session`, and whichever runs
  second finds nothing left to do;
* responses to submitted messages are pushed onto the stream in the order
  their handling completes.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import anyio

from ..errors import INTERNAL_ERROR, SESSION_NOT_FOUND, error_response
from ..utils import get_logger
from .sessions import ClientInfo, Session, SessionStore


if TYPE_CHECKING:
    from .lifecycle import SessionLifecycleManager

MessageHandler = Callable[[Any, str], Awaitable["dict[str, Any] | None"]]


class SessionStream:
    """Outbound message channel for one streaming session.

    Backed by an anyio memory object stream.  :meth:`close` is idempotent and
    reports whether the call actually closed the stream.
    """

    def __init__(
        self,
        session_id: str,
        *,
        buffer_size: int = 64,
        send_timeout: float | None = 5.0,
        on_disconnect: Callable[[], Any] | None = None,
    ) -> None:
        self.session_id = session_id
        self._send, self._receive = anyio.create_memory_object_stream[dict[str, Any]](buffer_size)
        self._send_timeout = send_timeout
        self._on_disconnect = on_disconnect
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, message: dict[str, Any]) -> bool:
        """Queue *message* for the peer; ``False`` when it cannot be delivered."""
        if self._closed:
            return False
        with anyio.move_on_after(self._send_timeout):
            try:
                await self._send.send(message)
            except (anyio.ClosedResourceError, anyio.BrokenResourceError):
                return False
            return True
        return False

    async def messages(self) -> AsyncIterator[dict[str, Any]]:
        """Yield queued messages until the stream is closed."""
        async with self._receive:
            async for message in self._receive:
                yield message

    def close(self) -> bool:
        if self._closed:
            return False
        self._closed = True
        self._close_transport()
        return True

    def disconnect(self) -> None:
        """Signal that the peer went away; runs the disconnect callback once."""
        self.close()
        callback, self._on_disconnect = self._on_disconnect, None
        if callback is not None:
            callback()

    def _close_transport(self) -> None:
        self._send.close()


StreamFactory = Callable[..., SessionStream]


@dataclass(frozen=True, slots=True)
class MessageOutcome:
    """Result of a message submission, expressed for the HTTP adapter."""

    status_code: int
    body: dict[str, Any] | None = None

    @property
    def accepted(self) -> bool:
        return self.status_code == 202


class StreamingTransportManager:
    """Creates, feeds and tears down stream-bound sessions."""

    def __init__(
        self,
        store: SessionStore,
        handler: MessageHandler,
        *,
        lifecycle: SessionLifecycleManager | None = None,
        buffer_size: int = 64,
        stream_factory: StreamFactory = SessionStream,
    ) -> None:
        self._store = store
        self._handler = handler
        self._lifecycle = lifecycle
        self._buffer_size = buffer_size
        self._stream_factory = stream_factory
        self._logger = get_logger("capmcp.streaming")

    @property
    def lifecycle(self) -> SessionLifecycleManager | None:
        return self._lifecycle

    def attach_lifecycle(self, lifecycle: SessionLifecycleManager) -> None:
        self._lifecycle = lifecycle

    def create_session(self, *, client_info: ClientInfo | None = None) -> Session:
        """Open a stream and register a pending (not yet negotiated) session.

        Errors creating the stream propagate and leave no session behind.
        """
        session_id = uuid4().hex
        stream = self._stream_factory(
            session_id,
            buffer_size=self._buffer_size,
            on_disconnect=partial(self.remove_session, session_id),
        )
        self._store.create_session(session_id, client_info, None, {})
        session = self._store.bind_stream(session_id, stream)
        if session is None:  # pragma: no cover - removed between the two calls
            stream.close()
            raise RuntimeError(f"Session {session_id} vanished while binding its stream")

        self._logger.info(
            "Opened stream for session %s", session_id, extra={"event": "stream.open", "session_id": session_id}
        )
        return session

    async def handle_message(self, session_id: str, payload: Any) -> MessageOutcome:
        """Route an inbound message and push any response onto the stream."""
        request_id = payload.get("id") if isinstance(payload, dict) else None
        session = self._store.get_session(session_id)
        if session is None or session.stream is None:
            return MessageOutcome(
                404, error_response(request_id, SESSION_NOT_FOUND, f"Session not found: {session_id}")
            )

        try:
            response = await self._handler(payload, session_id)
        except Exception:
            self._logger.exception("Error handling message for session %s", session_id)
            return MessageOutcome(500, error_response(request_id, INTERNAL_ERROR, "Internal server error"))

        if response is not None and not await session.stream.send(response):
            self._logger.warning(
                "Dropped response for session %s: stream is closed",
                session_id,
                extra={"event": "stream.drop", "session_id": session_id},
            )
        return MessageOutcome(202)

    async def send(self, session_id: str, message: dict[str, Any]) -> bool:
        """Push a server-initiated message to the session's stream."""
        session = self._store.peek(session_id)
        if session is None or session.stream is None:
            return False
        return await session.stream.send(message)

    def remove_session(self, session_id: str) -> bool:
        """Close the bound stream and drop the session.  Idempotent."""
        session = self._store.remove_session(session_id)
        if session is None:
            return False
        if session.stream is not None:
            try:
                session.stream.close()
            except Exception:
                self._logger.exception("Error closing stream for session %s", session_id)
        self._logger.info(
            "Closed stream for session %s", session_id, extra={"event": "stream.close", "session_id": session_id}
        )
        return True

    def destroy(self) -> None:
        """Stop the idle sweep and tear down every stream-bound session."""
        if self._lifecycle is not None:
            self._lifecycle.stop()
        for session in self._store.list_active():
            if session.stream is not None:
                self.remove_session(session.id)


__all__ = ["MessageHandler", "MessageOutcome", "SessionStream", "StreamingTransportManager"]
