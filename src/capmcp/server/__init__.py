# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Public server-side surface for capmcp.

The heavy lifting lives in :mod:`capmcp.server.core`; this module re-exports
the primitives that host applications are expected to import.
"""

from __future__ import annotations

from .core import CapabilityServer
from .lifecycle import SessionLifecycleManager
from .router import Method, RequestRouter
from .sessions import ClientInfo, Session, SessionStore
from .streaming import MessageOutcome, SessionStream, StreamingTransportManager


__all__ = [
    "CapabilityServer",
    "ClientInfo",
    "Method",
    "MessageOutcome",
    "RequestRouter",
    "Session",
    "SessionLifecycleManager",
    "SessionStore",
    "SessionStream",
    "StreamingTransportManager",
]
