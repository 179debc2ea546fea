# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Reference resources, resource templates and prompts."""

from __future__ import annotations

import orjson

from .tools import REFERENCE_TOOLS, iso_timestamp
from ..config import PROTOCOL_VERSION
from ..prompt import PromptArgument, PromptSpec
from ..resource import ResourceTemplateSpec, resource
from ..tool import extract_tool_spec


FEATURES = ("tools", "resources", "prompts", "sse", "capability-negotiation")


@resource(
    "config://sample",
    name="Sample Configuration",
    description="A sample configuration resource",
    mime_type="application/json",
)
def sample_config() -> str:
    payload = {
        "name": "capmcp-server",
        "version": "1.0.0",
        "features": list(FEATURES),
        "protocolVersion": PROTOCOL_VERSION,
        "timestamp": iso_timestamp(),
    }
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode()


@resource(
    "text://welcome",
    name="Welcome Message",
    description="A welcome message for users",
    mime_type="text/plain",
)
def welcome_message() -> str:
    tool_names = ", ".join(spec.name for spec in map(extract_tool_spec, REFERENCE_TOOLS) if spec is not None)
    return (
        "Welcome to the capmcp server!\n\n"
        "This server features:\n"
        "- Streaming transport with server-initiated messages\n"
        "- Per-session capability negotiation\n"
        "- Idle session eviction\n\n"
        f"Available tools: {tool_names}"
    )


REFERENCE_RESOURCES = (sample_config, welcome_message)

REFERENCE_TEMPLATES = (
    ResourceTemplateSpec(
        "user://profile/{userId}",
        "User Profile",
        "Fetches user profile information by user ID",
        "application/json",
    ),
    ResourceTemplateSpec(
        "file:///{path}",
        "File Reader",
        "Reads file contents from the specified path",
        "text/plain",
    ),
    ResourceTemplateSpec(
        "api:///{endpoint}/{id}",
        "API Resource",
        "Fetches data from API endpoints with optional ID parameter",
        "application/json",
    ),
    ResourceTemplateSpec(
        "db:///{table}/{query}",
        "Database Query",
        "Executes database queries on specified tables",
        "application/json",
    ),
    ResourceTemplateSpec(
        "log:///{service}/{date}",
        "Service Logs",
        "Retrieves logs for a specific service and date",
        "text/plain",
    ),
)

REFERENCE_PROMPTS = (
    PromptSpec(
        name="calculate",
        template="Please calculate: {{expression}}",
        description="Template for mathematical calculations",
        arguments=[PromptArgument("expression", "The mathematical expression to calculate", required=True)],
    ),
    PromptSpec(
        name="query",
        template="Question: {{question}}\n\nContext: {{context}}\n\nPlease provide a detailed answer.",
        description="General query template",
        arguments=[
            PromptArgument("question", "The question to answer", required=True),
            PromptArgument("context", "Additional context for the question"),
        ],
    ),
)


__all__ = ["FEATURES", "REFERENCE_PROMPTS", "REFERENCE_RESOURCES", "REFERENCE_TEMPLATES"]
