# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Tool registration utilities for capmcp.

Decorated functions carry a :class:`ToolSpec`.  Inside
:meth:`capmcp.server.CapabilityServer.binding` they are registered as soon as
they are defined; elsewhere they can be handed to
:meth:`~capmcp.server.CapabilityServer.register_tool` later.

Tool functions take keyword arguments named after the properties of their
input schema and return a :class:`ToolResult` (or any value, which is treated
as successful text content).
"""

from __future__ import annotations

from collections.abc import Callable
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:  # pragma: no cover - type-checking helpers only
    from .server import CapabilityServer

ToolFn = Callable[..., Any]


@dataclass(slots=True)
class ToolResult:
    """Outcome of a tool invocation.

    Exactly one of ``content`` (on success) or ``error`` (on failure) is
    meaningful.  ``metadata`` stays server-side; it is logged, not sent.
    """

    success: bool
    content: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, content: str, **metadata: Any) -> ToolResult:
        return cls(success=True, content=content, metadata=metadata)

    @classmethod
    def fail(cls, error: str, **metadata: Any) -> ToolResult:
        return cls(success=False, error=error, metadata=metadata)

    @property
    def text(self) -> str:
        return (self.content if self.success else self.error) or ""


@dataclass(slots=True)
class ToolSpec:
    """In-memory representation of a tool definition."""

    name: str
    fn: ToolFn
    description: str = ""
    input_schema: dict[str, Any] | None = None
    title: str | None = None


_TOOL_ATTR = "__capmcp_tool__"
_ACTIVE_SERVER: ContextVar[CapabilityServer | None] = ContextVar("_capmcp_tool_server", default=None)


def get_active_server() -> CapabilityServer | None:
    """Return the server currently binding tool definitions, if any."""
    return _ACTIVE_SERVER.get()


def set_active_server(server: CapabilityServer) -> Any:
    return _ACTIVE_SERVER.set(server)


def reset_active_server(token: Any) -> None:
    _ACTIVE_SERVER.reset(token)


def tool(
    name: str | None = None,
    *,
    description: str | None = None,
    input_schema: dict[str, Any] | None = None,
    title: str | None = None,
) -> Callable[[ToolFn], ToolFn]:
    """Mark a callable as a tool, registering it with the binding server."""

    def decorator(fn: ToolFn) -> ToolFn:
        desc = (description if description is not None else (fn.__doc__ or "")).strip()
        spec = ToolSpec(
            name=name or fn.__name__,
            fn=fn,
            description=desc,
            input_schema=dict(input_schema) if input_schema is not None else None,
            title=title,
        )
        setattr(fn, _TOOL_ATTR, spec)

        server = get_active_server()
        if server is not None:
            server.register_tool(spec)

        return fn

    return decorator


def extract_tool_spec(fn: ToolFn) -> ToolSpec | None:
    """Return the attached :class:`ToolSpec` for *fn*, if present."""
    spec = getattr(fn, _TOOL_ATTR, None)
    return spec if isinstance(spec, ToolSpec) else None


__all__ = [
    "ToolResult",
    "ToolSpec",
    "ToolFn",
    "tool",
    "extract_tool_spec",
    "get_active_server",
    "set_active_server",
    "reset_active_server",
]
