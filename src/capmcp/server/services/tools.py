# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Tool capability service.

:meth:`ToolsService.invoke` is the registry contract: it always returns a
:class:`~capmcp.tool.ToolResult` and never raises.  Unknown tools, argument
mismatches, timeouts and exceptions raised by the tool all become
``success=False`` results, which :meth:`ToolsService.call_tool` renders as a
``CallToolResult`` with ``isError`` set.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from functools import partial
import inspect
import types as pytypes
from typing import Any

import anyio
import anyio.to_thread
from mcp import types
import orjson
from pydantic import TypeAdapter
from typing_extensions import NotRequired, TypedDict

from ...tool import ToolResult, ToolSpec, extract_tool_spec
from ...utils import get_logger


class ToolsService:
    """Manages tool registration and invocation."""

    def __init__(self, *, logger=None, timeout: float | None = 30.0) -> None:
        self._logger = logger or get_logger("capmcp.tools")
        self._timeout = timeout
        self._tool_specs: dict[str, ToolSpec] = {}
        self._tool_defs: dict[str, types.Tool] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def tool_names(self) -> list[str]:
        return sorted(self._tool_defs)

    @property
    def definitions(self) -> dict[str, types.Tool]:
        return self._tool_defs

    @property
    def timeout(self) -> float | None:
        return self._timeout

    def register(self, target: ToolSpec | Callable[..., Any]) -> ToolSpec:
        spec = target if isinstance(target, ToolSpec) else extract_tool_spec(target)
        if spec is None:
            fn = target
            spec = ToolSpec(name=getattr(fn, "__name__", "anonymous"), fn=fn, description=(fn.__doc__ or "").strip())
        if spec.name in self._tool_specs:
            self._logger.warning("Replacing previously registered tool %s", spec.name)
        self._tool_specs[spec.name] = spec
        self._tool_defs[spec.name] = types.Tool(
            name=spec.name,
            title=spec.title,
            description=spec.description or None,
            inputSchema=spec.input_schema or self._build_input_schema(spec.fn),
        )
        return spec

    def get(self, name: str) -> ToolSpec | None:
        return self._tool_specs.get(name)

    async def list_tools(self) -> types.ListToolsResult:
        return types.ListToolsResult(tools=list(self._tool_defs.values()))

    async def invoke(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolResult:
        spec = self._tool_specs.get(name)
        if spec is None:
            return ToolResult.fail(f"Unknown tool: {name}")

        try:
            kwargs = self._bind_arguments(spec.fn, arguments or {})
        except TypeError as exc:
            return ToolResult.fail(f"Invalid arguments for tool {name}: {exc}")

        try:
            with anyio.fail_after(self._timeout):
                result = await _run_tool(spec.fn, kwargs)
        except TimeoutError:
            self._logger.warning(
                "Tool %s timed out after %ss", name, self._timeout, extra={"event": "tool.timeout", "tool": name}
            )
            return ToolResult.fail(f"Tool {name} timed out after {self._timeout}s")
        except Exception as exc:
            self._logger.exception("Tool %s raised", name, extra={"event": "tool.error", "tool": name})
            detail = str(exc) or type(exc).__name__
            return ToolResult.fail(f"Error executing tool {name}: {detail}")

        outcome = _coerce_result(result)
        if not outcome.success:
            self._logger.info("Tool %s failed: %s", name, outcome.error, extra={"event": "tool.fail", "tool": name})
        return outcome

    async def call_tool(self, name: str, arguments: Mapping[str, Any] | None = None) -> types.CallToolResult:
        outcome = await self.invoke(name, arguments)
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=outcome.text)],
            isError=not outcome.success,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _bind_arguments(self, fn: Callable[..., Any], arguments: Mapping[str, Any]) -> dict[str, Any]:
        if not isinstance(arguments, Mapping):
            raise TypeError("arguments must be an object")
        signature = inspect.signature(fn)
        parameters = signature.parameters
        accepts_extra = any(param.kind is inspect.Parameter.VAR_KEYWORD for param in parameters.values())
        kwargs = {key: value for key, value in arguments.items() if accepts_extra or key in parameters}
        signature.bind(**kwargs)
        return kwargs

    def _build_input_schema(self, fn: Callable[..., Any]) -> dict[str, Any]:
        signature = inspect.signature(fn)
        annotations: dict[str, Any] = {}
        default_values: dict[str, Any] = {}

        for name, param in signature.parameters.items():
            if param.kind not in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY):
                return {"type": "object"}

            annotation = param.annotation if param.annotation is not inspect.Parameter.empty else Any
            if param.default is inspect.Parameter.empty:
                annotations[name] = annotation
            else:
                annotations[name] = NotRequired[annotation]
                default_values[name] = param.default

        if not annotations:
            return {"type": "object", "properties": {}}

        namespace = {"__annotations__": annotations}
        typed_dict = pytypes.new_class(
            f"{fn.__name__.title()}ToolInput", (TypedDict,), {}, lambda ns: ns.update(namespace)
        )

        try:
            schema = TypeAdapter(typed_dict).json_schema()
        except Exception:
            return {"type": "object", "additionalProperties": True}

        schema.pop("$defs", None)
        properties = schema.setdefault("properties", {})
        for name, default in default_values.items():
            properties.setdefault(name, {}).setdefault("default", default)
        schema.setdefault("type", "object")
        _prune_titles(schema)
        return schema


async def _run_tool(fn: Callable[..., Any], kwargs: dict[str, Any]) -> Any:
    """Await coroutine tools; run everything else on a worker thread.

    Abandoning the worker on cancellation lets the timeout fire for blocking
    tools; the thread finishes in the background and its result is discarded.
    """
    if inspect.iscoroutinefunction(fn):
        return await fn(**kwargs)
    result = await anyio.to_thread.run_sync(partial(fn, **kwargs), abandon_on_cancel=True)
    if inspect.isawaitable(result):
        return await result
    return result


def _coerce_result(result: Any) -> ToolResult:
    if isinstance(result, ToolResult):
        return result
    if result is None:
        return ToolResult.ok("")
    if isinstance(result, str):
        return ToolResult.ok(result)
    return ToolResult.ok(orjson.dumps(result, default=str).decode())


def _prune_titles(schema: Any) -> None:
    if isinstance(schema, dict):
        schema.pop("title", None)
        for value in schema.values():
            _prune_titles(value)
    elif isinstance(schema, list):
        for item in schema:
            _prune_titles(item)


__all__ = ["ToolsService"]
