# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Shared test helpers for capmcp tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Any

import httpx

from capmcp.server import SessionStream


_REQUEST_COUNTER = count(1)

FULL_CLIENT_CAPABILITIES: dict[str, Any] = {
    "tools": {},
    "resources": {},
    "prompts": {},
    "logging": {},
    "sampling": {},
}


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 6, 18, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class CountingStream(SessionStream):
    """Session stream that records how often its transport is closed."""

    instances: list[CountingStream] = []

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.transport_closes = 0
        CountingStream.instances.append(self)

    def _close_transport(self) -> None:
        self.transport_closes += 1
        super()._close_transport()


def rpc(method: str, params: dict[str, Any] | None = None, *, request_id: Any = None) -> dict[str, Any]:
    """Build a JSON-RPC request, numbering it when no id is given."""
    payload: dict[str, Any] = {
        "jsonrpc": "2.0",
        "id": next(_REQUEST_COUNTER) if request_id is None else request_id,
        "method": method,
    }
    if params is not None:
        payload["params"] = params
    return payload


def notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        payload["params"] = params
    return payload


def initialize_request(
    capabilities: dict[str, Any] | None = None,
    *,
    protocol_version: str = "2025-06-18",
    request_id: Any = None,
) -> dict[str, Any]:
    return rpc(
        "initialize",
        {
            "protocolVersion": protocol_version,
            "capabilities": FULL_CLIENT_CAPABILITIES if capabilities is None else capabilities,
            "clientInfo": {"name": "test-client", "version": "0.1.0"},
        },
        request_id=request_id,
    )


async def initialize(server, session_id: str, capabilities: dict[str, Any] | None = None) -> dict[str, Any]:
    response = await server.handle(initialize_request(capabilities), session_id)
    assert response is not None and "result" in response, response
    return response["result"]


@asynccontextmanager
async def asgi_client(app) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
