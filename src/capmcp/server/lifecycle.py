# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Idle-session eviction.

A session is evicted once it has been idle for longer than ``idle_timeout``.
The sweep runs every ``sweep_interval`` seconds inside a caller-owned task
group; each eviction goes through an injected evictor so stream-bound
sessions can close their stream before the record disappears.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import anyio

from ..utils import get_logger, maybe_await_with_args
from .sessions import SessionStore


if TYPE_CHECKING:  # pragma: no cover - typing only
    from anyio.abc import TaskGroup, TaskStatus

Evictor = Callable[[str], Any]


class SessionLifecycleManager:
    """Periodically removes sessions that went quiet."""

    def __init__(
        self,
        store: SessionStore,
        *,
        idle_timeout: float = 300.0,
        sweep_interval: float = 60.0,
        evictor: Evictor | None = None,
    ) -> None:
        if idle_timeout <= 0 or sweep_interval <= 0:
            raise ValueError("idle_timeout and sweep_interval must be positive")
        self._store = store
        self._idle_timeout = idle_timeout
        self._sweep_interval = sweep_interval
        self._evictor: Evictor = evictor or store.remove_session
        self._scope: anyio.CancelScope | None = None
        self._logger = get_logger("capmcp.lifecycle")

    @property
    def idle_timeout(self) -> float:
        return self._idle_timeout

    @property
    def sweep_interval(self) -> float:
        return self._sweep_interval

    @property
    def running(self) -> bool:
        return self._scope is not None and not self._scope.cancel_called

    def set_evictor(self, evictor: Evictor) -> None:
        self._evictor = evictor

    async def sweep(self) -> list[str]:
        """Evict every idle session once and return the evicted ids."""
        now = self._store.now()
        stale = [session.id for session in self._store.list_active() if session.idle_for(now) > self._idle_timeout]

        evicted: list[str] = []
        for session_id in stale:
            try:
                await maybe_await_with_args(self._evictor, session_id)
            except Exception:
                self._logger.exception("Failed to evict idle session %s", session_id)
                continue
            evicted.append(session_id)

        if evicted:
            self._logger.info(
                "Evicted %d idle session(s)", len(evicted), extra={"event": "session.evict", "sessions": evicted}
            )
        return evicted

    async def start(self, task_group: TaskGroup) -> None:
        """Launch the periodic sweep in *task_group*.

        Returns once the sweep task is running.  Calling it again while
        running is a no-op.
        """
        if self.running:
            return
        await task_group.start(self._run)

    def stop(self) -> None:
        """Cancel the sweep task; safe to call repeatedly or before start."""
        scope, self._scope = self._scope, None
        if scope is not None:
            scope.cancel()

    async def _run(self, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        with anyio.CancelScope() as scope:
            self._scope = scope
            task_status.started()
            self._logger.debug(
                "Idle sweep started (timeout=%ss, interval=%ss)", self._idle_timeout, self._sweep_interval
            )
            while True:
                await anyio.sleep(self._sweep_interval)
                await self.sweep()
        if self._scope is scope:
            self._scope = None


__all__ = ["Evictor", "SessionLifecycleManager"]
