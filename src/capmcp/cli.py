# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Command line entry point: ``capmcp`` / ``python -m capmcp``."""

from __future__ import annotations

import anyio
import click

from .config import TRANSPORTS, ServerConfig
from .errors import ServerConfigError
from .reference import build_reference_server
from .utils import get_logger, setup_logger


def load_config(
    *,
    transport: str | None = None,
    host: str | None = None,
    port: int | None = None,
) -> ServerConfig:
    """Environment configuration with CLI overrides applied on top."""
    return ServerConfig.from_env().with_overrides(transport=transport, host=host, port=port)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--transport",
    "-t",
    type=click.Choice(TRANSPORTS, case_sensitive=False),
    default=None,
    help="Transport to serve (default: TRANSPORT_TYPE or stdio).",
)
@click.option("--host", default=None, help="Bind address for the HTTP transport (default: HTTP_HOST).")
@click.option("--port", "-p", type=int, default=None, help="Port for the HTTP transport (default: HTTP_PORT).")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error", "critical"], case_sensitive=False),
    default=None,
    help="Log level (default: CAPMCP_LOG_LEVEL or info).",
)
@click.option("--json-logs", is_flag=True, default=False, help="Emit structured JSON log lines.")
@click.version_option(package_name="capmcp")
def main(
    transport: str | None,
    host: str | None,
    port: int | None,
    log_level: str | None,
    json_logs: bool,
) -> None:
    """Run the reference capability-negotiating MCP server."""
    setup_logger(level=log_level, use_json=True if json_logs else None, force=True)
    logger = get_logger("capmcp.cli")

    try:
        config = load_config(transport=transport.lower() if transport else None, host=host, port=port)
    except ServerConfigError as exc:
        raise click.UsageError(str(exc)) from exc

    server = build_reference_server(config)
    try:
        anyio.run(_serve, server)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


async def _serve(server) -> None:
    await server.serve()


__all__ = ["load_config", "main"]
