# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""ASGI transport.

Serves every HTTP surface of a :class:`~capmcp.server.CapabilityServer` from
one Starlette application:

* ``GET /health``
* ``POST /mcp`` (single-shot)
* ``GET /sse`` and ``POST /messages`` (streaming)

The application lifespan runs :meth:`CapabilityServer.running`, so the idle
sweep starts with the server and every stream is closed on shutdown.
Optional Basic auth and CORS wrap the application.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route
from uvicorn import Config, Server

from .base import BaseTransport
from .http import SESSION_HEADER, HealthEndpoint, SingleShotEndpoint
from .sse import StreamingEndpoints


if TYPE_CHECKING:
    from mcp.server.transport_security import TransportSecuritySettings
    from starlette.types import ASGIApp

    from ..core import CapabilityServer


class HTTPTransport(BaseTransport):
    """Serve a :class:`CapabilityServer` over HTTP with uvicorn."""

    TRANSPORT = ("http", "HTTP+SSE", "sse")
    DEFAULT_LOG_LEVEL: str = "info"
    HEALTH_PATH = "/health"
    RPC_PATH = "/mcp"
    SSE_PATH = "/sse"
    MESSAGES_PATH = "/messages"

    def __init__(self, server: CapabilityServer, *, security_settings: TransportSecuritySettings | None = None) -> None:
        super().__init__(server)
        self._security_settings = security_settings

    @property
    def security_settings(self) -> TransportSecuritySettings | None:
        return self._security_settings

    def build_app(self) -> ASGIApp:
        server = self.server
        health = HealthEndpoint(server)
        single_shot = SingleShotEndpoint(server)
        streaming = StreamingEndpoints(
            server, messages_path=self.MESSAGES_PATH, security_settings=self._security_settings
        )

        routes = [
            Route(self.HEALTH_PATH, health.handle, methods=["GET"]),
            Route(self.RPC_PATH, single_shot.handle, methods=["POST"]),
            Route(self.SSE_PATH, streaming.open_stream, methods=["GET"]),
            Route(self.MESSAGES_PATH, streaming.post_message, methods=["POST"]),
        ]
        app: ASGIApp = Starlette(routes=routes, lifespan=self._lifespan)

        authorization = server.authorization_manager
        if authorization is not None and authorization.enabled:
            app = authorization.wrap_asgi(app, exempt_paths=(self.HEALTH_PATH,))

        if server.config.cors_enabled:
            app = CORSMiddleware(
                app,
                allow_origins=["*"],
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["*"],
                expose_headers=[SESSION_HEADER],
            )
        return app

    @asynccontextmanager
    async def _lifespan(self, _app: Starlette) -> AsyncIterator[None]:  # pragma: no cover - exercised via uvicorn
        async with self.server.running():
            yield

    async def run(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        log_level: str | None = None,
        **uvicorn_options: Any,
    ) -> None:
        settings = self.server.config
        config = Config(
            app=self.build_app(),
            host=host or settings.host,
            port=port or settings.port,
            log_level=log_level or self.DEFAULT_LOG_LEVEL,
            **uvicorn_options,
        )
        await Server(config).serve()


__all__ = ["HTTPTransport"]
