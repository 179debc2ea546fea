from __future__ import annotations

import pytest

from capmcp.config import ServerConfig
from capmcp.reference import build_reference_server
from capmcp.server import CapabilityServer
from tests.helpers import FakeClock


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> ServerConfig:
    return ServerConfig(name="test-server", version="9.9.9", dns_rebinding_protection=False)


@pytest.fixture
def server(config: ServerConfig, clock: FakeClock) -> CapabilityServer:
    return build_reference_server(config, clock=clock)
