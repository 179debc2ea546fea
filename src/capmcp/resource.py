"""Resource registration utilities for capmcp.

Usage mirrors the :mod:`capmcp.tool` ambient registration pattern: the
decorated callable produces the resource text each time it is read.
Resource templates are listed for discovery only; reads always resolve
against concrete URIs.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable


if TYPE_CHECKING:  # pragma: no cover
    from .server import CapabilityServer

ResourceFn = Callable[[], str]


@dataclass(slots=True)
class ResourceSpec:
    uri: str
    fn: ResourceFn
    name: str | None = None
    description: str | None = None
    mime_type: str | None = None


@dataclass(slots=True)
class ResourceTemplateSpec:
    uri_template: str
    name: str
    description: str | None = None
    mime_type: str | None = None


_RESOURCE_ATTR = "__capmcp_resource__"
_ACTIVE_SERVER: ContextVar["CapabilityServer | None"] = ContextVar(
    "_capmcp_resource_server",
    default=None,
)


def get_active_server() -> "CapabilityServer | None":
    return _ACTIVE_SERVER.get()


def set_active_server(server: "CapabilityServer") -> object:
    return _ACTIVE_SERVER.set(server)


def reset_active_server(token: object) -> None:
    _ACTIVE_SERVER.reset(token)


def resource(
    uri: str,
    *,
    name: str | None = None,
    description: str | None = None,
    mime_type: str | None = None,
) -> Callable[[ResourceFn], ResourceFn]:
    """Register a text-producing callable under *uri*."""

    def decorator(fn: ResourceFn) -> ResourceFn:
        spec = ResourceSpec(uri=uri, fn=fn, name=name, description=description, mime_type=mime_type)
        setattr(fn, _RESOURCE_ATTR, spec)

        server = get_active_server()
        if server is not None:
            server.register_resource(spec)
        return fn

    return decorator


def extract_resource_spec(fn: ResourceFn) -> ResourceSpec | None:
    spec = getattr(fn, _RESOURCE_ATTR, None)
    if isinstance(spec, ResourceSpec):
        return spec
    return None


__all__ = [
    "resource",
    "ResourceSpec",
    "ResourceTemplateSpec",
    "extract_resource_spec",
    "set_active_server",
    "reset_active_server",
]
