"""
Pytest configuration and shared fixtures for the mcp-zero tests.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio
from pydantic import BaseModel

from mcp_zero.content import TextContent
from mcp_zero.server import McpServer
from mcp_zero.tools import ToolDefinition
from mcp_zero.transport import HttpTransport


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (deselect with '-m \"not integration\"')",
    )


class EchoInput(BaseModel):
    """Input schema of the echo test tool."""

    text: str


async def echo_handler(data: EchoInput) -> list[TextContent]:
    """Return the input text as a single text item."""
    return [TextContent(text=data.text)]


@pytest.fixture
def echo_tool() -> ToolDefinition:
    """Create the echo tool definition."""
    return ToolDefinition(
        name="echo",
        schema=EchoInput,
        handler=echo_handler,
        description="Echo the given text",
    )


@pytest.fixture
def server(echo_tool: ToolDefinition) -> McpServer:
    """Create a server with the echo tool registered."""
    return McpServer(name="test-server", version="0.1.0").tool(echo_tool)


@pytest.fixture
def transport(server: McpServer) -> HttpTransport:
    """Create a transport with default options."""
    return server.create_transport()


@pytest_asyncio.fixture
async def client(transport: HttpTransport) -> AsyncIterator[httpx.AsyncClient]:
    """Create an in-process HTTP client for the default transport."""
    async with asgi_client(transport) as http_client:
        yield http_client


def asgi_client(app: Any) -> httpx.AsyncClient:
    """Build an httpx client that calls an ASGI app without a socket."""
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    )


@pytest.fixture
def make_client() -> Callable[[Any], httpx.AsyncClient]:
    """Return a factory for in-process clients of arbitrary transports."""
    return asgi_client
