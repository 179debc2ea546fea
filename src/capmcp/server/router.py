# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""JSON-RPC request routing.

The router is transport agnostic: adapters hand it a decoded payload plus the
session id the payload arrived on, and get back a response envelope or
``None`` for notifications.

Routing runs in a fixed order:

1. envelope shape (``InvalidRequest`` on failure, always answered);
2. ``initialize`` and ``ping``, which need no negotiated session;
3. the capability gate: ``tools/*``, ``resources/*``, ``prompts/*`` and
   ``logging/*`` require the matching capability on the session, otherwise
   the method is reported as not found before anything runs;
4. dispatch through :data:`RequestRouter._handlers`.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any, Final

from mcp import types
from mcp.shared.exceptions import McpError
from mcp.shared.version import SUPPORTED_PROTOCOL_VERSIONS
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..capabilities import session_capabilities
from ..config import ServerConfig
from ..errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    METHOD_NOT_FOUND,
    error_response,
    error_response_from,
    rpc_error,
    success_response,
)
from ..utils import get_logger
from .services import LoggingService, PromptsService, ResourcesService, ToolsService
from .sessions import ClientInfo, SessionStore


class Method(str, Enum):
    INITIALIZE = "initialize"
    PING = "ping"
    INITIALIZED = "notifications/initialized"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    RESOURCES_LIST = "resources/list"
    RESOURCES_TEMPLATES_LIST = "resources/templates/list"
    RESOURCES_READ = "resources/read"
    PROMPTS_LIST = "prompts/list"
    PROMPTS_GET = "prompts/get"
    LOGGING_SET_LEVEL = "logging/setLevel"


GATED_PREFIXES: Final[Mapping[str, str]] = {
    "tools": "tools",
    "resources": "resources",
    "prompts": "prompts",
    "logging": "logging",
}


class InitializeParams(BaseModel):
    """Lenient view of ``initialize`` params; capabilities stay a raw mapping."""

    model_config = ConfigDict(extra="allow")

    protocol_version: str | None = Field(default=None, alias="protocolVersion")
    capabilities: dict[str, Any] = Field(default_factory=dict)
    client_info: dict[str, Any] | None = Field(default=None, alias="clientInfo")


Handler = Callable[[Mapping[str, Any], str], Awaitable[Any]]


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json", exclude_none=True)


def _is_valid_id(value: Any) -> bool:
    if value is None or isinstance(value, str):
        return True
    return isinstance(value, int) and not isinstance(value, bool)


def _validation_details(exc: ValidationError) -> list[dict[str, Any]]:
    return [{"loc": [str(part) for part in error["loc"]], "msg": error["msg"]} for error in exc.errors()]


class RequestRouter:
    """Validates, gates and dispatches JSON-RPC messages."""

    def __init__(
        self,
        config: ServerConfig,
        store: SessionStore,
        *,
        tools: ToolsService,
        resources: ResourcesService,
        prompts: PromptsService,
        logging_service: LoggingService,
    ) -> None:
        self._config = config
        self._store = store
        self._tools = tools
        self._resources = resources
        self._prompts = prompts
        self._logging = logging_service
        self._logger = get_logger("capmcp.router")
        self._handlers: dict[Method, Handler] = {
            Method.INITIALIZE: self._initialize,
            Method.PING: self._ping,
            Method.INITIALIZED: self._initialized,
            Method.TOOLS_LIST: self._tools_list,
            Method.TOOLS_CALL: self._tools_call,
            Method.RESOURCES_LIST: self._resources_list,
            Method.RESOURCES_TEMPLATES_LIST: self._resources_templates_list,
            Method.RESOURCES_READ: self._resources_read,
            Method.PROMPTS_LIST: self._prompts_list,
            Method.PROMPTS_GET: self._prompts_get,
            Method.LOGGING_SET_LEVEL: self._logging_set_level,
        }

    async def handle(self, payload: Any, session_id: str) -> dict[str, Any] | None:
        """Handle one decoded message and return the response envelope, if any."""
        if not isinstance(payload, Mapping):
            return error_response(None, INVALID_REQUEST, "Invalid Request: expected a JSON object")

        request_id = payload.get("id")
        if not _is_valid_id(request_id):
            return error_response(None, INVALID_REQUEST, "Invalid Request: id must be a string, an integer or null")
        method = payload.get("method")
        if payload.get("jsonrpc") != JSONRPC_VERSION or not isinstance(method, str):
            return error_response(request_id, INVALID_REQUEST, "Invalid Request: expected a JSON-RPC 2.0 request")

        is_notification = request_id is None
        params = payload.get("params")

        try:
            if params is not None and not isinstance(params, Mapping):
                raise rpc_error(INVALID_PARAMS, "Invalid params: expected an object")
            result = await self._dispatch(method, params or {}, session_id)
        except McpError as exc:
            if is_notification:
                self._logger.debug("Ignoring notification %s: %s", method, exc.error.message)
                return None
            return error_response_from(request_id, exc)
        except ValidationError as exc:
            if is_notification:
                return None
            return error_response(request_id, INVALID_PARAMS, "Invalid params", _validation_details(exc))
        except Exception:
            self._logger.exception(
                "Unhandled error in %s", method, extra={"event": "request.error", "session_id": session_id}
            )
            if is_notification:
                return None
            return error_response(request_id, INTERNAL_ERROR, "Internal error")

        if is_notification:
            return None
        return success_response(request_id, result if result is not None else {})

    async def _dispatch(self, name: str, params: Mapping[str, Any], session_id: str) -> Any:
        capability = GATED_PREFIXES.get(name.split("/", 1)[0])
        if capability is not None:
            if not self._store.has_capability(session_id, capability):
                raise rpc_error(
                    METHOD_NOT_FOUND,
                    f"{capability.capitalize()} capability not negotiated for this session",
                )
            self._store.touch(session_id)

        try:
            method = Method(name)
        except ValueError:
            raise rpc_error(METHOD_NOT_FOUND, f"Method not found: {name}") from None

        self._logger.debug("Dispatching %s for session %s", name, session_id)
        return await self._handlers[method](params, session_id)

    # ------------------------------------------------------------------
    # Session methods
    # ------------------------------------------------------------------

    async def _initialize(self, params: Mapping[str, Any], session_id: str) -> dict[str, Any]:
        request = InitializeParams.model_validate(params)
        protocol_version = request.protocol_version
        if protocol_version not in SUPPORTED_PROTOCOL_VERSIONS:
            protocol_version = self._config.protocol_version

        session = self._store.create_session(
            session_id,
            ClientInfo.from_params(request.client_info),
            protocol_version,
            request.capabilities,
        )

        result: dict[str, Any] = {
            "protocolVersion": protocol_version,
            "capabilities": session_capabilities(session.negotiated, self._store.server_capabilities),
            "serverInfo": {"name": self._config.name, "version": self._config.version},
        }
        if self._config.instructions:
            result["instructions"] = self._config.instructions
        return result

    async def _ping(self, params: Mapping[str, Any], session_id: str) -> dict[str, Any]:
        self._store.touch(session_id)
        return {}

    async def _initialized(self, params: Mapping[str, Any], session_id: str) -> None:
        if self._store.mark_initialized(session_id) is None:
            self._logger.debug("notifications/initialized for unknown session %s", session_id)

    # ------------------------------------------------------------------
    # Gated methods
    # ------------------------------------------------------------------

    async def _tools_list(self, params: Mapping[str, Any], session_id: str) -> dict[str, Any]:
        return _dump(await self._tools.list_tools())

    async def _tools_call(self, params: Mapping[str, Any], session_id: str) -> dict[str, Any]:
        request = types.CallToolRequestParams.model_validate(params)
        result = await self._tools.call_tool(request.name, request.arguments or {})
        return _dump(result)

    async def _resources_list(self, params: Mapping[str, Any], session_id: str) -> dict[str, Any]:
        return _dump(await self._resources.list_resources())

    async def _resources_templates_list(self, params: Mapping[str, Any], session_id: str) -> dict[str, Any]:
        return _dump(await self._resources.list_templates())

    async def _resources_read(self, params: Mapping[str, Any], session_id: str) -> dict[str, Any]:
        uri = params.get("uri")
        if not isinstance(uri, str) or not uri:
            raise rpc_error(INVALID_PARAMS, "Invalid params: uri is required")
        return _dump(await self._resources.read(uri))

    async def _prompts_list(self, params: Mapping[str, Any], session_id: str) -> dict[str, Any]:
        return _dump(await self._prompts.list_prompts())

    async def _prompts_get(self, params: Mapping[str, Any], session_id: str) -> dict[str, Any]:
        request = types.GetPromptRequestParams.model_validate(params)
        return _dump(await self._prompts.get_prompt(request.name, request.arguments))

    async def _logging_set_level(self, params: Mapping[str, Any], session_id: str) -> dict[str, Any]:
        request = types.SetLevelRequestParams.model_validate(params)
        self._logging.set_level(session_id, request.level)
        return {}


__all__ = ["GATED_PREFIXES", "InitializeParams", "Method", "RequestRouter"]
