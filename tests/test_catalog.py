# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Resources, resource templates and prompts of the reference server."""

from __future__ import annotations

import orjson
import pytest

from capmcp import PromptSpec, resource
from capmcp.prompt import render_template
from capmcp.server import CapabilityServer
from tests.helpers import initialize, rpc


def test_render_replaces_first_occurrence_only() -> None:
    assert render_template("{{x}} and {{x}}", {"x": "1"}) == "1 and {{x}}"


def test_render_leaves_unmatched_placeholders() -> None:
    rendered = render_template("Q: {{question}} C: {{context}}", {"question": "why?", "unused": "zzz"})

    assert rendered == "Q: why? C: {{context}}"


def test_render_stringifies_values() -> None:
    assert PromptSpec(name="n", template="{{n}} items").render({"n": 3}) == "3 items"


@pytest.mark.anyio
async def test_prompts_list(server: CapabilityServer) -> None:
    await initialize(server, "s1")

    response = await server.handle(rpc("prompts/list"), "s1")
    prompts = {prompt["name"]: prompt for prompt in response["result"]["prompts"]}

    assert set(prompts) == {"calculate", "query"}
    assert prompts["query"]["arguments"] == [
        {"name": "question", "description": "The question to answer", "required": True},
        {"name": "context", "description": "Additional context for the question", "required": False},
    ]


@pytest.mark.anyio
async def test_prompts_get_renders_user_message(server: CapabilityServer) -> None:
    await initialize(server, "s1")

    response = await server.handle(
        rpc("prompts/get", {"name": "query", "arguments": {"question": "What is MCP?"}}), "s1"
    )
    result = response["result"]

    assert result["description"] == "General query template"
    assert result["messages"] == [
        {
            "role": "user",
            "content": {
                "type": "text",
                "text": "Question: What is MCP?\n\nContext: {{context}}\n\nPlease provide a detailed answer.",
            },
        }
    ]


@pytest.mark.anyio
async def test_resources_list(server: CapabilityServer) -> None:
    await initialize(server, "s1")

    response = await server.handle(rpc("resources/list"), "s1")

    assert [item["uri"] for item in response["result"]["resources"]] == ["config://sample", "text://welcome"]
    assert response["result"]["resources"][0]["mimeType"] == "application/json"


@pytest.mark.anyio
async def test_sample_config_is_json(server: CapabilityServer) -> None:
    await initialize(server, "s1")

    response = await server.handle(rpc("resources/read", {"uri": "config://sample"}), "s1")
    contents = response["result"]["contents"]

    assert len(contents) == 1
    assert contents[0]["uri"] == "config://sample"
    payload = orjson.loads(contents[0]["text"])
    assert payload["name"] == "capmcp-server"
    assert payload["protocolVersion"] == "2025-06-18"
    assert "capability-negotiation" in payload["features"]
    assert payload["timestamp"].endswith("Z")


@pytest.mark.anyio
async def test_welcome_lists_tools(server: CapabilityServer) -> None:
    await initialize(server, "s1")

    response = await server.handle(rpc("resources/read", {"uri": "text://welcome"}), "s1")
    text = response["result"]["contents"][0]["text"]

    assert text.startswith("Welcome to the capmcp server!")
    assert "Available tools: echo, calculate, get_timestamp, random_number, string_manipulation" in text


@pytest.mark.anyio
async def test_templates_are_listed(server: CapabilityServer) -> None:
    await initialize(server, "s1")

    response = await server.handle(rpc("resources/templates/list"), "s1")
    templates = response["result"]["resourceTemplates"]

    assert [item["uriTemplate"] for item in templates] == [
        "user://profile/{userId}",
        "file:///{path}",
        "api:///{endpoint}/{id}",
        "db:///{table}/{query}",
        "log:///{service}/{date}",
    ]
    assert templates[0]["name"] == "User Profile"


@pytest.mark.anyio
async def test_async_resources_are_awaited(config) -> None:
    server = CapabilityServer(config)

    @resource("memo://today", mime_type="text/plain")
    async def memo() -> str:
        return "buy milk"

    server.register_resource(memo)
    await initialize(server, "s1")

    response = await server.handle(rpc("resources/read", {"uri": "memo://today"}), "s1")

    assert response["result"]["contents"][0]["text"] == "buy milk"


def test_undecorated_resource_is_rejected(config) -> None:
    server = CapabilityServer(config)

    with pytest.raises(ValueError):
        server.register_resource(lambda: "nope")
