# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""capmcp: a capability-negotiating MCP server."""

from __future__ import annotations

from .capabilities import NegotiatedCapabilities, negotiate
from .config import AuthConfig, ServerConfig
from .errors import ServerConfigError
from .prompt import PromptArgument, PromptSpec
from .resource import ResourceTemplateSpec, resource
from .server import CapabilityServer
from .tool import ToolResult, tool


__all__ = [
    "AuthConfig",
    "CapabilityServer",
    "NegotiatedCapabilities",
    "PromptArgument",
    "PromptSpec",
    "ResourceTemplateSpec",
    "ServerConfig",
    "ServerConfigError",
    "ToolResult",
    "negotiate",
    "resource",
    "tool",
]
