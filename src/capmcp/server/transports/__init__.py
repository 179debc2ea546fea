# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Transport adapters for capmcp servers.

These thin wrappers turn bytes on a wire into decoded JSON-RPC payloads for
:meth:`CapabilityServer.handle` and write the responses back.
"""

from __future__ import annotations

from ._asgi import HTTPTransport
from .base import BaseTransport, TransportFactory
from .http import HealthEndpoint, SingleShotEndpoint, status_for
from .sse import StreamingEndpoints, format_event
from .stdio import StdioTransport


__all__ = [
    "BaseTransport",
    "HTTPTransport",
    "HealthEndpoint",
    "SingleShotEndpoint",
    "StdioTransport",
    "StreamingEndpoints",
    "TransportFactory",
    "format_event",
    "status_for",
]
