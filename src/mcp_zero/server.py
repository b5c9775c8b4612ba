"""
MCP server facade for the mcp-zero framework.

McpServer owns the server identity, the tool registry and the custom route
registry, and manages the HTTP transport lifecycle.

Example:
    >>> from pydantic import BaseModel
    >>> from mcp_zero import HttpTransportOptions, McpServer, TextContent
    >>>
    >>> server = McpServer(name="weather", version="1.0.0")
    >>>
    >>> class EchoInput(BaseModel):
    ...     text: str
    >>>
    >>> @server.tool_handler("echo", schema=EchoInput, description="Echo text")
    ... async def echo(data: EchoInput) -> list[TextContent]:
    ...     return [TextContent(text=data.text)]
    >>>
    >>> await server.start(HttpTransportOptions(port=3005))
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp_zero.config import HttpTransportOptions, ServerConfig
from mcp_zero.errors import ServerStateError
from mcp_zero.hooks import ServerHooks
from mcp_zero.logging import get_logger
from mcp_zero.routes import RouteHandler, RouteRegistry
from mcp_zero.tools import ToolDefinition, ToolHandler, ToolRegistry
from mcp_zero.transport import Authorizer, HttpTransport

logger = get_logger(__name__)


class McpServer:
    """
    Minimal MCP server that registers tools and serves the HTTP transport.

    Attributes:
        name: Server name reported during initialize.
        version: Server version reported during initialize.
        hooks: Lifecycle hooks shared with every transport.
        tools: Registry of tool definitions.
        routes: Registry of custom HTTP routes.
    """

    def __init__(
        self,
        name: str = "MyMcpServer",
        version: str = "1.0.0",
        hooks: ServerHooks | None = None,
    ) -> None:
        """
        Initialize the MCP server.

        Args:
            name: Server name.
            version: Server version.
            hooks: Optional lifecycle hooks.
        """
        identity = ServerConfig(name=name, version=version)
        self._name = identity.name
        self._version = identity.version
        self.hooks = hooks or ServerHooks()
        self.tools = ToolRegistry(hooks=self.hooks)
        self.routes = RouteRegistry()
        self._transport: HttpTransport | None = None

    @classmethod
    def from_config(
        cls, config: ServerConfig, hooks: ServerHooks | None = None
    ) -> McpServer:
        """Create a server from a ServerConfig section."""
        return cls(name=config.name, version=config.version, hooks=hooks)

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> str:
        return self._version

    # =========================================================================
    # Tools
    # =========================================================================

    def get_tools(self) -> list[ToolDefinition]:
        """Return all registered tools in registration order."""
        return self.tools.list()

    def get_tool(self, name: str) -> ToolDefinition | None:
        """Return the tool registered under name, or None."""
        return self.tools.get(name)

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self.tools

    def tool(self, definition: ToolDefinition) -> McpServer:
        """
        Register a tool definition.

        Returns:
            The server, so registrations can be chained.

        Raises:
            DuplicateNameError: If a tool with the same name already exists.
        """
        self.tools.register(definition)
        return self

    def tool_handler(
        self,
        name: str,
        *,
        schema: Any,
        description: str | None = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """
        Decorator for registering a function as a tool handler.

        Args:
            name: Tool name.
            schema: Input schema (pydantic model class or compatible type).
            description: Optional tool description.

        Returns:
            Decorator that registers the handler and returns it unchanged.
        """

        def decorator(handler: ToolHandler) -> ToolHandler:
            self.tool(
                ToolDefinition(
                    name=name,
                    schema=schema,
                    handler=handler,
                    description=description,
                )
            )
            return handler

        return decorator

    # =========================================================================
    # Custom Routes
    # =========================================================================

    def route(self, method: str, path: str, handler: RouteHandler) -> McpServer:
        """
        Register a custom HTTP route served outside JSON-RPC.

        Returns:
            The server, so registrations can be chained.

        Raises:
            DuplicateRouteError: If the (method, path) pair is already registered.
        """
        self.routes.register(method, path, handler)
        return self

    # =========================================================================
    # Transport Lifecycle
    # =========================================================================

    def create_transport(
        self,
        options: HttpTransportOptions | None = None,
        *,
        hooks: ServerHooks | None = None,
        custom_routes: RouteRegistry | None = None,
        authorize: Authorizer | None = None,
    ) -> HttpTransport:
        """
        Build an HTTP transport without binding a socket.

        Server routes are merged with custom_routes and server hooks with
        hooks (slots set in hooks win).

        Raises:
            ConflictError: If any custom route uses the MCP path.
            DuplicateRouteError: If a route is defined in both registries.
        """
        options = options or HttpTransportOptions()
        routes = self.routes.merge(custom_routes)
        return HttpTransport(
            self,
            options,
            hooks=self.hooks.merge(hooks),
            custom_routes=routes,
            authorize=authorize,
        )

    @property
    def is_running(self) -> bool:
        """Check if the server has a running transport."""
        return self._transport is not None

    @property
    def address(self) -> tuple[str, int] | None:
        """Return the bound (host, port) of the running transport."""
        return self._transport.address if self._transport is not None else None

    async def start(
        self,
        options: HttpTransportOptions | None = None,
        *,
        hooks: ServerHooks | None = None,
        custom_routes: RouteRegistry | None = None,
        authorize: Authorizer | None = None,
    ) -> None:
        """
        Start serving MCP over HTTP.

        Args:
            options: Transport options (host, port, path, CORS, timeout).
            hooks: Extra hooks merged over the server's hooks.
            custom_routes: Extra routes merged with the server's routes.
            authorize: Optional predicate guarding the MCP endpoint.

        Raises:
            ServerStateError: If the server is already started.
            ConflictError: If a custom route uses the MCP path.
            TransportError: If the socket cannot be bound.
        """
        if self._transport is not None:
            raise ServerStateError("Server is already started")

        transport = self.create_transport(
            options, hooks=hooks, custom_routes=custom_routes, authorize=authorize
        )
        await transport.start()
        self._transport = transport
        logger.info(
            "MCP server started",
            extra={"server": self.name, "tools_count": len(self.tools)},
        )

    async def stop(self) -> None:
        """
        Stop the transport, draining in-flight requests.

        Raises:
            ServerStateError: If the server is not started.
        """
        if self._transport is None:
            raise ServerStateError("Server is not started")

        transport = self._transport
        try:
            await transport.stop()
        finally:
            self._transport = None
        logger.info("MCP server stopped", extra={"server": self.name})
