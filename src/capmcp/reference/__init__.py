# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""The bundled reference server: five tools, two resources, two prompts."""

from __future__ import annotations

from .catalog import REFERENCE_PROMPTS, REFERENCE_RESOURCES, REFERENCE_TEMPLATES
from .tools import REFERENCE_TOOLS
from ..config import ServerConfig
from ..server import CapabilityServer


def register_reference_catalog(server: CapabilityServer) -> CapabilityServer:
    for fn in REFERENCE_TOOLS:
        server.register_tool(fn)
    for fn in REFERENCE_RESOURCES:
        server.register_resource(fn)
    for template in REFERENCE_TEMPLATES:
        server.register_resource_template(template)
    for prompt in REFERENCE_PROMPTS:
        server.register_prompt(prompt)
    return server


def build_reference_server(config: ServerConfig | None = None, **kwargs) -> CapabilityServer:
    """Return a :class:`CapabilityServer` with the reference catalog registered."""
    return register_reference_catalog(CapabilityServer(config, **kwargs))


__all__ = [
    "REFERENCE_PROMPTS",
    "REFERENCE_RESOURCES",
    "REFERENCE_TEMPLATES",
    "REFERENCE_TOOLS",
    "build_reference_server",
    "register_reference_catalog",
]
