# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Prompt capability service."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from mcp import types

from ...errors import INVALID_PARAMS, rpc_error
from ...prompt import PromptSpec
from ...utils import get_logger


class PromptsService:
    def __init__(self, *, logger=None) -> None:
        self._logger = logger or get_logger("capmcp.prompts")
        self._prompts: dict[str, PromptSpec] = {}

    @property
    def names(self) -> list[str]:
        return sorted(self._prompts)

    def register(self, spec: PromptSpec) -> PromptSpec:
        self._prompts[spec.name] = spec
        return spec

    def get(self, name: str) -> PromptSpec | None:
        return self._prompts.get(name)

    async def list_prompts(self) -> types.ListPromptsResult:
        prompts = [
            types.Prompt(
                name=spec.name,
                description=spec.description,
                arguments=[
                    types.PromptArgument(name=arg.name, description=arg.description, required=arg.required)
                    for arg in spec.arguments
                ],
            )
            for spec in self._prompts.values()
        ]
        return types.ListPromptsResult(prompts=prompts)

    async def get_prompt(self, name: str, arguments: Mapping[str, Any] | None = None) -> types.GetPromptResult:
        spec = self._prompts.get(name)
        if spec is None:
            raise rpc_error(INVALID_PARAMS, f"Prompt not found: {name}")

        text = spec.render(arguments)
        return types.GetPromptResult(
            description=spec.description,
            messages=[types.PromptMessage(role="user", content=types.TextContent(type="text", text=text))],
        )


__all__ = ["PromptsService"]
