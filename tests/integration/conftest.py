"""Fixtures for integration tests."""

from collections.abc import AsyncGenerator

import pytest

from ws_endpoint_test.transport.aiohttp_client import AiohttpTransport
from ws_endpoint_test.transport.config import TransportConfig


@pytest.fixture
async def transport() -> AsyncGenerator[AiohttpTransport, None]:
    """Create an aiohttp transport that ignores proxy settings."""
    config = TransportConfig(trust_env=False, close_timeout=0.5)
    async with AiohttpTransport.from_config(config) as transport:
        yield transport
