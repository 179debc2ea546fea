# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Shared transport primitives for :mod:`capmcp.server`.

Provides a minimal base class that custom transports can subclass and a factory
signature that `CapabilityServer` uses to instantiate transports lazily.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable


if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from ..core import CapabilityServer


class BaseTransport(ABC):
    """Common base for server transports.

    Subclasses receive the owning :class:`CapabilityServer` so they can feed
    decoded messages to its router and use its configuration.  ``TRANSPORT``
    lists the canonical name first and a display name second.
    """

    TRANSPORT: tuple[str, ...] = ("custom", "Custom")

    def __init__(self, server: CapabilityServer) -> None:
        self._server = server

    @property
    def server(self) -> CapabilityServer:
        """Return the owning :class:`CapabilityServer`."""
        return self._server

    @property
    def transport_display_name(self) -> str:
        return self.TRANSPORT[1] if len(self.TRANSPORT) > 1 else self.TRANSPORT[0]

    @abstractmethod
    async def run(self, **kwargs: Any) -> None:
        """Start the transport and block until it stops."""


@runtime_checkable
class TransportFactory(Protocol):
    """Callable that produces a configured transport for a ``CapabilityServer``."""

    def __call__(self, server: CapabilityServer) -> BaseTransport:  # pragma: no cover - protocol
        ...


__all__ = ["BaseTransport", "TransportFactory"]
