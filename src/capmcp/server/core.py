# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Composable capability-negotiating server."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable, Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import Any

import anyio
from mcp import types
from mcp.server.transport_security import TransportSecuritySettings

from .authorization import AuthorizationManager
from .lifecycle import SessionLifecycleManager
from .router import RequestRouter
from .services import LoggingService, PromptsService, ResourcesService, ToolsService
from .sessions import Clock, SessionStore, utcnow
from .streaming import SessionStream, StreamFactory, StreamingTransportManager
from .transports import HTTPTransport, StdioTransport
from .transports.base import BaseTransport, TransportFactory
from ..config import ServerConfig
from ..prompt import PromptSpec
from ..resource import ResourceSpec, ResourceTemplateSpec
from ..resource import reset_active_server as reset_resource_server
from ..resource import set_active_server as set_resource_server
from ..tool import ToolResult, ToolSpec
from ..tool import reset_active_server as reset_tool_server
from ..tool import set_active_server as set_tool_server
from ..utils import get_logger


class CapabilityServer:
    """Wires the session store, capability services, router and transports.

    One instance serves every transport; the stores are shared, so a session
    created over one surface is visible to all of them.
    """

    def __init__(
        self,
        config: ServerConfig | None = None,
        *,
        clock: Clock = utcnow,
        stream_factory: StreamFactory = SessionStream,
    ) -> None:
        self.config = config or ServerConfig()
        self.config.validate()
        self._logger = get_logger(f"capmcp.server.{self.config.name}")

        self.store = SessionStore(self.config.server_capabilities, clock=clock)
        self.tools = ToolsService(logger=self._logger, timeout=self.config.request_timeout)
        self.resources = ResourcesService(logger=self._logger)
        self.prompts = PromptsService(logger=self._logger)
        self.logging_service = LoggingService(self.store, logger=self._logger)
        self.router = RequestRouter(
            self.config,
            self.store,
            tools=self.tools,
            resources=self.resources,
            prompts=self.prompts,
            logging_service=self.logging_service,
        )
        self.streaming = StreamingTransportManager(
            self.store,
            self.router.handle,
            buffer_size=self.config.stream_buffer_size,
            stream_factory=stream_factory,
        )
        self.lifecycle = SessionLifecycleManager(
            self.store,
            idle_timeout=self.config.idle_timeout,
            sweep_interval=self.config.sweep_interval,
            evictor=self.streaming.remove_session,
        )
        self.streaming.attach_lifecycle(self.lifecycle)
        self.logging_service.attach_sender(self.streaming.send)

        self._authorization_manager: AuthorizationManager | None = None
        if self.config.auth.enabled:
            self._authorization_manager = AuthorizationManager(self.config.auth)

        self._transport_factories: dict[str, TransportFactory] = {}
        self.register_transport("stdio", lambda server: StdioTransport(server))
        self.register_transport(
            "http",
            lambda server: HTTPTransport(server, security_settings=server.http_security_settings()),
            aliases=("sse", "http+sse"),
        )

    # //////////////////////////////////////////////////////////////////
    # Public API
    # //////////////////////////////////////////////////////////////////

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def tool_names(self) -> list[str]:
        return self.tools.tool_names

    @property
    def prompt_names(self) -> list[str]:
        return self.prompts.names

    @property
    def authorization_manager(self) -> AuthorizationManager | None:
        return self._authorization_manager

    async def handle(self, payload: Any, session_id: str) -> dict[str, Any] | None:
        """Route one decoded JSON-RPC message received on *session_id*."""
        return await self.router.handle(payload, session_id)

    def register_tool(self, target: ToolSpec | Callable[..., Any]) -> ToolSpec:
        return self.tools.register(target)

    def register_resource(self, target: ResourceSpec | Callable[[], str]) -> ResourceSpec:
        return self.resources.register_resource(target)

    def register_resource_template(self, spec: ResourceTemplateSpec) -> ResourceTemplateSpec:
        return self.resources.register_template(spec)

    def register_prompt(self, spec: PromptSpec) -> PromptSpec:
        return self.prompts.register(spec)

    async def invoke_tool(self, name: str, **arguments: Any) -> ToolResult:
        return await self.tools.invoke(name, arguments)

    async def log_message(self, level: types.LoggingLevel, data: Any, *, logger: str | None = None) -> int:
        """Send ``notifications/message`` to subscribed streaming sessions."""
        return await self.logging_service.emit(level, data, logger)

    # //////////////////////////////////////////////////////////////////
    # Binding context
    # //////////////////////////////////////////////////////////////////

    @contextmanager
    def binding(self) -> Iterator[CapabilityServer]:
        tool_token = set_tool_server(self)
        resource_token = set_resource_server(self)
        try:
            yield self
        finally:
            reset_tool_server(tool_token)
            reset_resource_server(resource_token)

    # //////////////////////////////////////////////////////////////////
    # Runtime
    # //////////////////////////////////////////////////////////////////

    @asynccontextmanager
    async def running(self) -> AsyncIterator[CapabilityServer]:
        """Run the idle sweep for the duration of the block, then shut down."""
        async with anyio.create_task_group() as tg:
            await self.lifecycle.start(tg)
            try:
                yield self
            finally:
                self.shutdown()

    def shutdown(self) -> None:
        """Stop the sweep, close every stream and drop all sessions."""
        self.streaming.destroy()
        removed = self.store.clear()
        self._logger.info("Server %s shut down (%d sessions dropped)", self.name, len(removed))

    # //////////////////////////////////////////////////////////////////
    # Transport registry
    # //////////////////////////////////////////////////////////////////

    def http_security_settings(self) -> TransportSecuritySettings:
        """DNS-rebinding guard settings for the streaming endpoints."""
        hosts = list(self.config.allowed_hosts)
        return TransportSecuritySettings(
            enable_dns_rebinding_protection=self.config.dns_rebinding_protection,
            allowed_hosts=hosts,
            allowed_origins=[f"http://{host}" for host in hosts] + [f"https://{host}" for host in hosts],
        )

    def register_transport(self, name: str, factory: TransportFactory, *, aliases: Iterable[str] | None = None) -> None:
        canonical = name.lower()
        self._transport_factories[canonical] = factory
        for alias in aliases or ():
            self._transport_factories[alias.lower()] = factory

    def _transport_for_name(self, name: str) -> BaseTransport:
        factory = self._transport_factories.get(name.lower())
        if factory is None:
            raise ValueError(f"Unsupported transport '{name}'.")
        transport = factory(self)
        if not isinstance(transport, BaseTransport):  # pragma: no cover
            raise TypeError("Transport factory must return a BaseTransport instance")
        return transport

    async def serve(self, *, transport: str | None = None, **transport_kwargs: Any) -> None:
        selected = transport or self.config.transport
        transport_instance = self._transport_for_name(selected)
        self._logger.info(
            "Serving %s %s via %s",
            self.name,
            self.config.version,
            transport_instance.transport_display_name,
            extra={"event": "server.start", "transport": selected},
        )
        await transport_instance.run(**transport_kwargs)


__all__ = ["CapabilityServer"]
