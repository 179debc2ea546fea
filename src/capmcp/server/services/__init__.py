# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Capability service implementations for CapabilityServer."""

from __future__ import annotations

from .logging import LoggingService
from .prompts import PromptsService
from .resources import ResourcesService
from .tools import ToolsService


__all__ = [
    "ToolsService",
    "ResourcesService",
    "PromptsService",
    "LoggingService",
]
