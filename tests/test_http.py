# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""HTTP surfaces: health, single-shot ``/mcp`` and the streaming pair."""

from __future__ import annotations

import anyio
import orjson
import pytest

from capmcp.config import AuthConfig, ServerConfig
from capmcp.errors import INVALID_REQUEST, PARSE_ERROR, SESSION_NOT_FOUND
from capmcp.reference import build_reference_server
from capmcp.server import CapabilityServer
from capmcp.server.transports import HTTPTransport, StreamingEndpoints, format_event, status_for
from tests.helpers import asgi_client, initialize_request, notification, rpc


def build_app(server: CapabilityServer):
    return HTTPTransport(server, security_settings=server.http_security_settings()).build_app()


# ---------------------------------------------------------------------------
# Health and single-shot
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_health_reports_sessions(server: CapabilityServer) -> None:
    server.store.create_session("s1", None, None, {})

    async with asgi_client(build_app(server)) as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "server": "test-server",
        "version": "9.9.9",
        "protocol": "2025-06-18",
        "sessions": 1,
    }


@pytest.mark.anyio
async def test_single_shot_round_trip(server: CapabilityServer) -> None:
    async with asgi_client(build_app(server)) as client:
        init = await client.post("/mcp", json=initialize_request())
        call = await client.post("/mcp", json=rpc("tools/call", {"name": "echo", "arguments": {"message": "hi"}}))

    assert init.status_code == 200
    assert init.headers["mcp-session-id"] == "http-default"
    assert init.json()["result"]["serverInfo"]["name"] == "test-server"
    assert call.status_code == 200
    assert call.json()["result"]["content"][0]["text"] == "Echo: hi"


@pytest.mark.anyio
async def test_single_shot_notification_is_accepted(server: CapabilityServer) -> None:
    async with asgi_client(build_app(server)) as client:
        response = await client.post("/mcp", json=notification("notifications/initialized"))

    assert response.status_code == 202
    assert response.content == b""
    assert response.headers["mcp-session-id"] == "http-default"


@pytest.mark.anyio
async def test_single_shot_parse_error(server: CapabilityServer) -> None:
    async with asgi_client(build_app(server)) as client:
        response = await client.post("/mcp", content=b"{not json", headers={"content-type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == PARSE_ERROR
    assert response.json()["id"] is None


@pytest.mark.anyio
async def test_single_shot_error_statuses(server: CapabilityServer, monkeypatch) -> None:
    async def broken() -> None:
        raise RuntimeError("boom")

    async with asgi_client(build_app(server)) as client:
        gated = await client.post("/mcp", json=rpc("tools/list"))
        invalid = await client.post("/mcp", json={"jsonrpc": "1.0", "id": 1, "method": "ping"})
        await client.post("/mcp", json=initialize_request())
        monkeypatch.setattr(server.tools, "list_tools", broken)
        internal = await client.post("/mcp", json=rpc("tools/list"))

    assert gated.status_code == 404
    assert invalid.status_code == 400
    assert internal.status_code == 500


@pytest.mark.anyio
async def test_session_header_selects_session(server: CapabilityServer) -> None:
    async with asgi_client(build_app(server)) as client:
        await client.post("/mcp", json=initialize_request({"tools": {}}), headers={"Mcp-Session-Id": "alpha"})
        alpha = await client.post("/mcp", json=rpc("tools/list"), headers={"Mcp-Session-Id": "alpha"})
        beta = await client.post("/mcp", json=rpc("tools/list"), headers={"Mcp-Session-Id": "beta"})

    assert alpha.status_code == 200
    assert alpha.headers["mcp-session-id"] == "alpha"
    assert beta.status_code == 404
    assert "alpha" in server.store and "beta" not in server.store


def test_status_mapping() -> None:
    assert status_for({"result": {}}) == 200
    assert status_for({"error": {"code": -32601}}) == 404
    assert status_for({"error": {"code": -32603}}) == 500
    assert status_for({"error": {"code": -32602}}) == 400
    assert status_for({"error": {"code": -32000}}) == 400


# ---------------------------------------------------------------------------
# Streaming endpoints
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_messages_requires_session_id(server: CapabilityServer) -> None:
    async with asgi_client(build_app(server)) as client:
        response = await client.post("/messages", json=rpc("ping"))

    assert response.status_code == 400
    assert response.json()["error"] == {"code": INVALID_REQUEST, "message": "Session ID is required"}


@pytest.mark.anyio
async def test_messages_for_unknown_session(server: CapabilityServer) -> None:
    async with asgi_client(build_app(server)) as client:
        response = await client.post("/messages?sessionId=ghost", json=rpc("ping", request_id=5))

    assert response.status_code == 404
    body = response.json()
    assert body["id"] == 5
    assert body["error"]["code"] == SESSION_NOT_FOUND
    assert body["error"]["message"] == "Session not found: ghost"


@pytest.mark.anyio
async def test_messages_are_answered_on_the_stream(server: CapabilityServer) -> None:
    session = server.streaming.create_session()

    async with asgi_client(build_app(server)) as client:
        response = await client.post(
            f"/messages?sessionId={session.id}", json=initialize_request({"tools": {}}, request_id="init-1")
        )

    assert response.status_code == 202
    assert response.text == "Accepted"
    with anyio.fail_after(1):
        pushed = await anext(session.stream.messages())
    assert pushed["id"] == "init-1"
    assert pushed["result"]["capabilities"] == {"tools": {}}
    assert server.store.has_capability(session.id, "tools")


@pytest.mark.anyio
async def test_event_stream_frames_endpoint_then_messages(server: CapabilityServer) -> None:
    endpoints = StreamingEndpoints(server)
    session = server.streaming.create_session()
    events = endpoints._events(session.stream, f"/messages?sessionId={session.id}")

    first = await anext(events)
    await server.streaming.send(session.id, {"jsonrpc": "2.0", "id": 1, "result": {}})
    second = await anext(events)
    await events.aclose()

    assert first == f"event: endpoint\ndata: /messages?sessionId={session.id}\n\n"
    assert second.startswith("event: message\ndata: ")
    assert orjson.loads(second.split("data: ", 1)[1]) == {"jsonrpc": "2.0", "id": 1, "result": {}}
    assert session.id not in server.store
    assert session.stream.closed


def test_format_event_splits_multiline_data() -> None:
    assert format_event("message", "a\nb") == "event: message\ndata: a\ndata: b\n\n"
    assert format_event("ping", "") == "event: ping\ndata: \n\n"


@pytest.mark.anyio
async def test_dns_rebinding_guard_rejects_foreign_host(clock) -> None:
    server = build_reference_server(ServerConfig(name="guarded"), clock=clock)

    async with asgi_client(build_app(server)) as client:
        response = await client.post("/messages?sessionId=any", json=rpc("ping"))
        health = await client.get("/health")

    assert response.status_code in (400, 403, 421)
    assert health.status_code == 200
    assert len(server.store) == 0


def test_security_settings_follow_config() -> None:
    server = CapabilityServer(ServerConfig(allowed_hosts=("example.com",)))

    settings = server.http_security_settings()

    assert settings.enable_dns_rebinding_protection is True
    assert settings.allowed_hosts == ["example.com"]
    assert settings.allowed_origins == ["http://example.com", "https://example.com"]


# ---------------------------------------------------------------------------
# Auth and CORS
# ---------------------------------------------------------------------------


@pytest.fixture
def guarded_server(clock) -> CapabilityServer:
    config = ServerConfig(
        name="locked",
        dns_rebinding_protection=False,
        auth=AuthConfig(enabled=True, username="ada", password="lovelace"),
    )
    return build_reference_server(config, clock=clock)


@pytest.mark.anyio
async def test_basic_auth_is_enforced(guarded_server: CapabilityServer) -> None:
    async with asgi_client(build_app(guarded_server)) as client:
        anonymous = await client.post("/mcp", json=rpc("ping"))
        wrong = await client.post("/mcp", json=rpc("ping"), auth=("ada", "babbage"))
        allowed = await client.post("/mcp", json=rpc("ping"), auth=("ada", "lovelace"))
        health = await client.get("/health")

    assert anonymous.status_code == 401
    assert anonymous.headers["www-authenticate"] == 'Basic realm="capmcp"'
    assert anonymous.json()["detail"] == "missing basic credentials"
    assert wrong.status_code == 401
    assert wrong.json()["detail"] == "invalid credentials"
    assert allowed.status_code == 200
    assert health.status_code == 200


@pytest.mark.anyio
async def test_malformed_basic_header(guarded_server: CapabilityServer) -> None:
    async with asgi_client(build_app(guarded_server)) as client:
        response = await client.post("/mcp", json=rpc("ping"), headers={"Authorization": "Basic !!!"})

    assert response.status_code == 401
    assert response.json()["detail"] == "malformed basic credentials"


@pytest.mark.anyio
async def test_cors_preflight(clock) -> None:
    server = build_reference_server(
        ServerConfig(name="cors", cors_enabled=True, dns_rebinding_protection=False), clock=clock
    )

    async with asgi_client(build_app(server)) as client:
        response = await client.options(
            "/mcp",
            headers={"Origin": "http://client.example", "Access-Control-Request-Method": "POST"},
        )
        posted = await client.post("/mcp", json=rpc("ping"), headers={"Origin": "http://client.example"})

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert posted.headers["access-control-allow-origin"] == "*"
    assert "mcp-session-id" in posted.headers["access-control-expose-headers"].lower()
