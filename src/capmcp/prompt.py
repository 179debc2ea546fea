# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Prompt templates.

Templates use ``{{name}}`` placeholders.  Rendering is deliberately lenient:
arguments without a matching placeholder are ignored, placeholders without an
argument are left in the text, and only the first occurrence of each
placeholder is replaced.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class PromptArgument:
    name: str
    description: str | None = None
    required: bool = False


@dataclass(slots=True)
class PromptSpec:
    name: str
    template: str
    description: str | None = None
    arguments: list[PromptArgument] = field(default_factory=list)

    def render(self, arguments: Mapping[str, Any] | None = None) -> str:
        return render_template(self.template, arguments)


def render_template(template: str, arguments: Mapping[str, Any] | None) -> str:
    rendered = template
    for key, value in (arguments or {}).items():
        rendered = rendered.replace(f"{{{{{key}}}}}", str(value), 1)
    return rendered


__all__ = ["PromptArgument", "PromptSpec", "render_template"]
