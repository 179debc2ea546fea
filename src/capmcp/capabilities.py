# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Capability negotiation.

Both parties advertise a capability mapping at ``initialize`` time::

    {"tools": {}, "resources": {}, "prompts": {}, "logging": {},
     "sampling": {}, "experimental": {"flag": {...}}}

A key counts as advertised when it is present and its value is neither
``None`` nor ``False``; an empty mapping is the usual way to advertise a
feature.  The negotiated set for a session is the per-key intersection, with
one exception: ``sampling`` is a client-side feature and is enabled whenever
the client advertises it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final, Literal


CapabilityName = Literal["tools", "resources", "prompts", "logging", "sampling"]

SHARED_CAPABILITIES: Final[tuple[str, ...]] = ("tools", "resources", "prompts", "logging")
CAPABILITY_NAMES: Final[tuple[str, ...]] = (*SHARED_CAPABILITIES, "sampling")
EXPERIMENTAL_PREFIX: Final[str] = "experimental."

DEFAULT_SERVER_CAPABILITIES: Final[Mapping[str, Any]] = {
    "tools": {},
    "resources": {},
    "prompts": {},
    "logging": {},
}


@dataclass(frozen=True, slots=True)
class NegotiatedCapabilities:
    """Capabilities active for one session."""

    tools: bool = False
    resources: bool = False
    prompts: bool = False
    logging: bool = False
    sampling: bool = False
    experimental: Mapping[str, bool] = field(default_factory=dict)

    def enabled(self, name: str) -> bool:
        """Return ``True`` when *name* is negotiated.

        *name* is one of :data:`CAPABILITY_NAMES` or ``experimental.<flag>``;
        anything else is reported as not negotiated.
        """
        if name.startswith(EXPERIMENTAL_PREFIX):
            return bool(self.experimental.get(name[len(EXPERIMENTAL_PREFIX) :], False))
        if name not in CAPABILITY_NAMES:
            return False
        return bool(getattr(self, name))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {name: getattr(self, name) for name in CAPABILITY_NAMES}
        payload["experimental"] = dict(self.experimental)
        return payload


def is_advertised(capabilities: Mapping[str, Any] | None, key: str) -> bool:
    if not capabilities:
        return False
    value = capabilities.get(key)
    return value is not None and value is not False


def negotiate(
    server_capabilities: Mapping[str, Any] | None,
    client_capabilities: Mapping[str, Any] | None,
) -> NegotiatedCapabilities:
    """Intersect server and client capabilities.

    Total and side-effect free: missing or malformed sections on either side
    count as "not advertised".
    """
    shared = {
        key: is_advertised(server_capabilities, key) and is_advertised(client_capabilities, key)
        for key in SHARED_CAPABILITIES
    }

    server_experimental = _experimental_section(server_capabilities)
    client_experimental = _experimental_section(client_capabilities)
    experimental = {
        flag: True
        for flag in client_experimental
        if is_advertised(client_experimental, flag) and is_advertised(server_experimental, flag)
    }

    return NegotiatedCapabilities(
        **shared,
        sampling=is_advertised(client_capabilities, "sampling"),
        experimental=experimental,
    )


def session_capabilities(
    negotiated: NegotiatedCapabilities, server_capabilities: Mapping[str, Any] | None
) -> dict[str, Any]:
    """Return the server capability sections enabled for a session.

    This is what ``initialize`` reports back to the client.  ``sampling`` is
    never echoed because the server does not provide it.
    """
    server_capabilities = server_capabilities or {}
    result: dict[str, Any] = {}
    for key in SHARED_CAPABILITIES:
        if negotiated.enabled(key):
            result[key] = _copy_section(server_capabilities.get(key))

    server_experimental = _experimental_section(server_capabilities)
    enabled_flags = {
        flag: _copy_section(server_experimental.get(flag))
        for flag, active in negotiated.experimental.items()
        if active and is_advertised(server_experimental, flag)
    }
    if enabled_flags:
        result["experimental"] = enabled_flags
    return result


def _experimental_section(capabilities: Mapping[str, Any] | None) -> Mapping[str, Any]:
    section = (capabilities or {}).get("experimental")
    return section if isinstance(section, Mapping) else {}


def _copy_section(value: Any) -> Any:
    if isinstance(value, Mapping):
        return dict(value)
    return {}


__all__ = [
    "CAPABILITY_NAMES",
    "DEFAULT_SERVER_CAPABILITIES",
    "CapabilityName",
    "NegotiatedCapabilities",
    "is_advertised",
    "negotiate",
    "session_capabilities",
]
