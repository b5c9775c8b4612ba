"""
mcp-zero - Lightweight MCP server framework.

This package implements the server side of the MCP "tools" capability over
HTTP: JSON-RPC 2.0 envelope handling, CORS enforcement, schema-validated tool
dispatch, and lifecycle hooks.
"""

from mcp_zero.config import AppConfig, HttpTransportOptions, ServerConfig, load_config
from mcp_zero.content import MediaContent, TextContent, ToolResponseContent
from mcp_zero.errors import (
    ConflictError,
    DuplicateNameError,
    DuplicateRouteError,
    McpZeroError,
    ServerStateError,
    TransportError,
)
from mcp_zero.hooks import ServerHooks
from mcp_zero.routes import RouteHandler, RouteRegistry
from mcp_zero.schema import SchemaValidationError, SchemaValidator, to_json_schema
from mcp_zero.server import McpServer
from mcp_zero.tools import ToolDefinition, ToolHandler, ToolRegistry
from mcp_zero.transport import HttpTransport

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "ConflictError",
    "DuplicateNameError",
    "DuplicateRouteError",
    "HttpTransport",
    "HttpTransportOptions",
    "McpServer",
    "McpZeroError",
    "MediaContent",
    "RouteHandler",
    "RouteRegistry",
    "SchemaValidationError",
    "SchemaValidator",
    "ServerConfig",
    "ServerHooks",
    "ServerStateError",
    "TextContent",
    "ToolDefinition",
    "ToolHandler",
    "ToolRegistry",
    "ToolResponseContent",
    "TransportError",
    "load_config",
    "to_json_schema",
]
