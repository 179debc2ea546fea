# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Resource capability service."""

from __future__ import annotations

from collections.abc import Callable

from mcp import types

from ...errors import INVALID_PARAMS, rpc_error
from ...resource import ResourceSpec, ResourceTemplateSpec, extract_resource_spec
from ...utils import get_logger, maybe_await


class ResourcesService:
    """Keeps the static resource catalog and serves reads from it."""

    def __init__(self, *, logger=None) -> None:
        self._logger = logger or get_logger("capmcp.resources")
        self._resources: dict[str, ResourceSpec] = {}
        self._templates: dict[str, ResourceTemplateSpec] = {}

    @property
    def uris(self) -> list[str]:
        return list(self._resources)

    def register_resource(self, target: ResourceSpec | Callable[[], str]) -> ResourceSpec:
        spec = target if isinstance(target, ResourceSpec) else extract_resource_spec(target)
        if spec is None:
            raise ValueError("Resources must be decorated with @resource or passed as a ResourceSpec")
        self._resources[spec.uri] = spec
        return spec

    def register_template(self, spec: ResourceTemplateSpec) -> ResourceTemplateSpec:
        self._templates[spec.uri_template] = spec
        return spec

    def get(self, uri: str) -> ResourceSpec | None:
        return self._resources.get(uri)

    async def list_resources(self) -> types.ListResourcesResult:
        resources = [
            types.Resource(
                uri=spec.uri,
                name=spec.name or spec.uri,
                description=spec.description,
                mimeType=spec.mime_type,
            )
            for spec in self._resources.values()
        ]
        return types.ListResourcesResult(resources=resources)

    async def list_templates(self) -> types.ListResourceTemplatesResult:
        templates = [
            types.ResourceTemplate(
                uriTemplate=spec.uri_template,
                name=spec.name,
                description=spec.description,
                mimeType=spec.mime_type,
            )
            for spec in self._templates.values()
        ]
        return types.ListResourceTemplatesResult(resourceTemplates=templates)

    async def read(self, uri: str) -> types.ReadResourceResult:
        spec = self._resources.get(uri)
        if spec is None:
            raise rpc_error(INVALID_PARAMS, f"Resource not found: {uri}")

        text = await maybe_await(spec.fn)
        self._logger.debug("Read resource %s", uri)
        return types.ReadResourceResult(
            contents=[types.TextResourceContents(uri=spec.uri, mimeType=spec.mime_type, text=str(text))]
        )


__all__ = ["ResourcesService"]
