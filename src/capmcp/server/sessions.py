# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Session records and the concurrency-safe session store.

The store is the only mutable state shared between the request router, the
idle sweep and the streaming transport.  Every operation runs under a single
lock and never awaits while holding it, so it is safe from any number of
concurrent tasks (and threads).  Records are immutable; callers receive
snapshots and all mutation goes through the store's methods.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
import threading
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ..capabilities import DEFAULT_SERVER_CAPABILITIES, NegotiatedCapabilities, negotiate
from ..utils import get_logger


if TYPE_CHECKING:
    from .streaming import SessionStream

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ClientInfo:
    """Informational client identity reported at ``initialize``."""

    name: str = "unknown"
    version: str = "unknown"

    @classmethod
    def from_params(cls, payload: Mapping[str, Any] | None) -> ClientInfo:
        if not isinstance(payload, Mapping):
            return cls()
        return cls(name=str(payload.get("name", "unknown")), version=str(payload.get("version", "unknown")))


@dataclass(frozen=True, slots=True)
class Session:
    """Snapshot of one logical client connection."""

    id: str
    client_info: ClientInfo
    protocol_version: str | None
    client_capabilities: Mapping[str, Any]
    negotiated: NegotiatedCapabilities
    created_at: datetime
    last_activity: datetime
    metadata: Mapping[str, Any] = field(default_factory=dict)
    stream: SessionStream | None = None
    initialized: bool = False

    @property
    def negotiated_capabilities(self) -> dict[str, Any]:
        return self.negotiated.to_dict()

    def idle_for(self, now: datetime) -> float:
        return (now - self.last_activity).total_seconds()


class SessionStore:
    """Maps session ids to :class:`Session` records."""

    def __init__(
        self,
        server_capabilities: Mapping[str, Any] | None = None,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._server_capabilities: Mapping[str, Any] = dict(
            DEFAULT_SERVER_CAPABILITIES if server_capabilities is None else server_capabilities
        )
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()
        self._logger = get_logger("capmcp.sessions")

    @property
    def server_capabilities(self) -> Mapping[str, Any]:
        return self._server_capabilities

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Creation & lookup
    # ------------------------------------------------------------------

    def create_session(
        self,
        session_id: str,
        client_info: ClientInfo | None,
        protocol_version: str | None,
        client_capabilities: Mapping[str, Any] | None,
    ) -> Session:
        """Negotiate and store a session, replacing any record under *session_id*.

        Metadata and the initialized flag reset; an existing stream binding is
        carried over because it belongs to the connection, not the negotiation.
        """
        client_caps = dict(client_capabilities or {})
        negotiated = negotiate(self._server_capabilities, client_caps)
        with self._lock:
            now = self._clock()
            previous = self._sessions.get(session_id)
            session = Session(
                id=session_id,
                client_info=client_info or ClientInfo(),
                protocol_version=protocol_version,
                client_capabilities=client_caps,
                negotiated=negotiated,
                created_at=now,
                last_activity=now,
                stream=previous.stream if previous is not None else None,
            )
            self._sessions[session_id] = session

        self._logger.info(
            "Created session %s with capabilities %s",
            session_id,
            negotiated.to_dict(),
            extra={"event": "session.create", "session_id": session_id, "replaced": previous is not None},
        )
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Return the session and record activity on it."""
        return self.touch(session_id)

    def peek(self, session_id: str) -> Session | None:
        """Return the session without recording activity."""
        with self._lock:
            return self._sessions.get(session_id)

    def has_capability(self, session_id: str, capability: str) -> bool:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            return False
        return session.negotiated.enabled(capability)

    def list_active(self) -> list[Session]:
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def touch(self, session_id: str) -> Session | None:
        return self._update(session_id)

    def update_metadata(self, session_id: str, metadata: Mapping[str, Any]) -> Session | None:
        """Merge *metadata* into the session's metadata; no-op when absent."""
        return self._update(
            session_id, lambda current: {"metadata": MappingProxyType({**current.metadata, **metadata})}
        )

    def bind_stream(self, session_id: str, stream: SessionStream) -> Session | None:
        return self._update(session_id, lambda _current: {"stream": stream})

    def mark_initialized(self, session_id: str) -> Session | None:
        return self._update(session_id, lambda _current: {"initialized": True})

    def remove_session(self, session_id: str) -> Session | None:
        """Remove and return the session; later calls return ``None``."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            self._logger.info(
                "Removed session %s", session_id, extra={"event": "session.remove", "session_id": session_id}
            )
        return session

    def clear(self) -> list[Session]:
        """Drop every session, returning what was removed."""
        with self._lock:
            removed = list(self._sessions.values())
            self._sessions.clear()
        if removed:
            self._logger.info("Cleared %d sessions", len(removed), extra={"event": "session.clear"})
        return removed

    def _update(
        self,
        session_id: str,
        changes: Callable[[Session], Mapping[str, Any]] | None = None,
    ) -> Session | None:
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                return None
            fields = dict(changes(current)) if changes is not None else {}
            fields["last_activity"] = self._clock()
            updated = replace(current, **fields)
            self._sessions[session_id] = updated
            return updated


__all__ = ["ClientInfo", "Clock", "Session", "SessionStore", "utcnow"]
