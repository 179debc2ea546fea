# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Capability negotiation rules."""

from __future__ import annotations

import pytest

from capmcp.capabilities import NegotiatedCapabilities, is_advertised, negotiate, session_capabilities


SERVER = {"tools": {}, "resources": {"subscribe": False}, "prompts": {}, "logging": {}}


@pytest.mark.parametrize("key", ["tools", "resources", "prompts", "logging"])
def test_shared_capability_requires_both_sides(key: str) -> None:
    assert getattr(negotiate(SERVER, {key: {}}), key) is True
    assert getattr(negotiate({}, {key: {}}), key) is False
    assert getattr(negotiate(SERVER, {}), key) is False


def test_sampling_follows_client_only() -> None:
    assert negotiate({}, {"sampling": {}}).sampling is True
    assert negotiate({"sampling": {}}, {}).sampling is False


@pytest.mark.parametrize("value", [None, False])
def test_none_and_false_are_not_advertised(value: object) -> None:
    negotiated = negotiate(SERVER, {"tools": value, "sampling": value})

    assert negotiated.tools is False
    assert negotiated.sampling is False


def test_empty_mapping_counts_as_advertised() -> None:
    assert is_advertised({"tools": {}}, "tools") is True
    assert is_advertised({"tools": True}, "tools") is True
    assert is_advertised(None, "tools") is False


def test_experimental_flags_negotiated_per_key() -> None:
    server = {"experimental": {"alpha": {}, "beta": {}}}
    client = {"experimental": {"alpha": {}, "gamma": {}}}

    negotiated = negotiate(server, client)

    assert negotiated.experimental == {"alpha": True}
    assert negotiated.enabled("experimental.alpha") is True
    assert negotiated.enabled("experimental.beta") is False
    assert negotiated.enabled("experimental.gamma") is False


def test_malformed_sections_are_tolerated() -> None:
    negotiated = negotiate({"experimental": "nope"}, {"experimental": ["alpha"]})

    assert negotiated.experimental == {}
    assert negotiate(None, None) == NegotiatedCapabilities()


def test_negotiation_is_deterministic() -> None:
    client = {"tools": {}, "sampling": {}, "experimental": {"alpha": {}}}
    server = {**SERVER, "experimental": {"alpha": {}}}

    assert negotiate(server, client) == negotiate(server, client)
    assert negotiate(server, client).to_dict() == {
        "tools": True,
        "resources": False,
        "prompts": False,
        "logging": False,
        "sampling": True,
        "experimental": {"alpha": True},
    }


def test_enabled_rejects_unknown_names() -> None:
    negotiated = negotiate(SERVER, {"tools": {}})

    assert negotiated.enabled("tools") is True
    assert negotiated.enabled("roots") is False
    assert negotiated.enabled("experimental.") is False


def test_session_capabilities_filters_server_sections() -> None:
    negotiated = negotiate(SERVER, {"resources": {}, "sampling": {}})

    assert session_capabilities(negotiated, SERVER) == {"resources": {"subscribe": False}}


def test_session_capabilities_includes_negotiated_experimental() -> None:
    server = {"tools": {}, "experimental": {"alpha": {"level": 2}, "beta": {}}}
    negotiated = negotiate(server, {"tools": {}, "experimental": {"alpha": {}}})

    assert session_capabilities(negotiated, server) == {"tools": {}, "experimental": {"alpha": {"level": 2}}}
