"""
HTTP transport for the mcp-zero server framework.

HttpTransport is an ASGI application served by uvicorn. For every request it
runs the dispatch pipeline, stopping at the first branch that applies:

1. CORS evaluation (403 for origins outside an explicit allow-list)
2. CORS preflight (OPTIONS on any path, 204)
3. Routing: custom routes, 404, or 405 for non-POST on the MCP path
4. Optional authorization predicate for the MCP path (401)
5. JSON-RPC envelope decoding
6. Method dispatch: initialize, tools/list, tools/call, ping

Protocol errors are returned inside the JSON-RPC envelope with HTTP 200;
only the transport-boundary checks above use HTTP status codes.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import uvicorn
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import Message, Receive, Scope, Send

from mcp_zero.config import HttpTransportOptions
from mcp_zero.content import normalize_content
from mcp_zero.errors import ServerStateError, TransportError
from mcp_zero.hooks import ServerHooks
from mcp_zero.logging import get_logger
from mcp_zero.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_INITIALIZE,
    METHOD_PING,
    METHOD_TOOLS_CALL,
    METHOD_TOOLS_LIST,
    PARSE_ERROR,
    CallToolParams,
    InitializeParams,
    JSONRPCError,
    JSONRPCRequest,
    JSONRPCResponse,
    RequestId,
    create_internal_error,
    create_method_not_found_error,
    format_error_response,
    format_success_response,
    format_validation_error,
    parse_request,
)
from mcp_zero.routes import RouteHandler, RouteRegistry
from mcp_zero.schema import SchemaValidationError, format_diagnostics

if TYPE_CHECKING:
    from mcp_zero.server import McpServer
    from mcp_zero.tools import ToolDefinition

logger = get_logger(__name__)

SESSION_ID_HEADER = "Mcp-Session-Id"
DEFAULT_ALLOWED_HEADERS = "Content-Type, Accept, Mcp-Session-Id"
MCP_ALLOWED_METHODS = "POST, OPTIONS"
UNKNOWN_TOOL_ERROR = "Unknown error occurred while calling tool"

# How often start() checks whether uvicorn finished binding
STARTUP_POLL_INTERVAL = 0.01

Authorizer = Callable[[Request], bool | Awaitable[bool]]


async def _invoke(func: Callable[..., Any], *args: Any) -> Any:
    """Call a sync or async callable without blocking the event loop."""
    if inspect.iscoroutinefunction(func):
        return await func(*args)
    result = await run_in_threadpool(func, *args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _elapsed_ms(started_at: float) -> float:
    return (time.perf_counter() - started_at) * 1000


class HttpTransport:
    """
    ASGI application and uvicorn lifecycle for one MCP server.

    A transport is created fresh for every McpServer.start() and discarded
    on stop(). It can also be mounted in any ASGI server or exercised with
    httpx.ASGITransport without binding a socket.

    Example:
        >>> transport = HttpTransport(server, HttpTransportOptions(port=8080))
        >>> await transport.start()
        >>> await transport.stop()

    Attributes:
        options: Frozen transport options.
        hooks: Lifecycle hooks fired while dispatching.
        routes: Custom routes served outside JSON-RPC.
        authorize: Optional accept/reject predicate for the MCP endpoint.
    """

    def __init__(
        self,
        server: McpServer,
        options: HttpTransportOptions | None = None,
        *,
        hooks: ServerHooks | None = None,
        custom_routes: RouteRegistry | None = None,
        authorize: Authorizer | None = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            server: Server supplying identity and the tool registry.
            options: Transport options (defaults if not provided).
            hooks: Lifecycle hooks.
            custom_routes: Custom routes to serve next to the MCP endpoint.
            authorize: Predicate deciding whether an MCP request may proceed.

        Raises:
            ValueError: If no server is given.
            ConflictError: If a custom route uses the MCP path.
        """
        if server is None:
            raise ValueError("MCP server instance is required")

        self.server = server
        self.options = options or HttpTransportOptions()
        self.hooks = hooks or ServerHooks()
        self.routes = custom_routes or RouteRegistry()
        self.routes.ensure_disjoint(self.options.path)
        self.authorize = authorize

        self._methods: dict[str, Callable[[JSONRPCRequest], Awaitable[JSONRPCResponse]]] = {
            METHOD_INITIALIZE: self._handle_initialize,
            METHOD_TOOLS_LIST: self._handle_tools_list,
            METHOD_TOOLS_CALL: self._handle_tools_call,
            METHOD_PING: self._handle_ping,
        }
        self._uvicorn: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_running(self) -> bool:
        """Check if the transport is serving."""
        return self._uvicorn is not None

    @property
    def address(self) -> tuple[str, int] | None:
        """Return the bound (host, port), or None when not running."""
        if self._uvicorn is None or not self._uvicorn.servers:
            return None
        sockets = self._uvicorn.servers[0].sockets
        if not sockets:
            return None
        host, port = sockets[0].getsockname()[:2]
        return host, port

    async def start(self) -> None:
        """
        Bind the socket and start serving in a background task.

        Raises:
            ServerStateError: If the transport is already running.
            TransportError: If uvicorn fails to bind or exits during startup.
        """
        if self._uvicorn is not None:
            raise ServerStateError("Server is already running")

        config = uvicorn.Config(
            self,
            host=self.options.host,
            port=self.options.port,
            lifespan="off",
            log_config=None,
            access_log=False,
        )
        server = uvicorn.Server(config)
        task = asyncio.create_task(self._serve(server))

        while not server.started:
            if task.done():
                # Surfaces the TransportError raised by _serve, if any
                task.result()
                raise TransportError("HTTP transport exited during startup")
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

        self._uvicorn = server
        self._serve_task = task
        logger.info(
            "HTTP transport started",
            extra={"address": self.address, "path": self.options.path},
        )

    async def stop(self) -> None:
        """
        Stop accepting connections and wait for in-flight requests to finish.

        Raises:
            ServerStateError: If the transport is not running.
        """
        if self._uvicorn is None or self._serve_task is None:
            raise ServerStateError("Server is not running")

        server, task = self._uvicorn, self._serve_task
        server.should_exit = True
        try:
            await task
        finally:
            self._uvicorn = None
            self._serve_task = None
        logger.info("HTTP transport stopped")

    async def _serve(self, server: uvicorn.Server) -> None:
        try:
            await server.serve()
        except SystemExit as e:
            # uvicorn exits the process when it cannot bind
            raise TransportError(
                f"Failed to start HTTP transport on {self.options.host}:{self.options.port}",
                details={"host": self.options.host, "port": self.options.port},
            ) from e

    # =========================================================================
    # ASGI Entry Point
    # =========================================================================

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            logger.debug("Ignoring non-HTTP scope", extra={"scope_type": scope["type"]})
            return

        response_started = False

        async def send_tracking(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            response = await self.handle_request(Request(scope, receive))
            await response(scope, receive, send_tracking)
        except Exception as e:
            logger.exception(
                "Unhandled error while serving request",
                extra={"path": scope.get("path"), "method": scope.get("method")},
            )
            self.hooks.emit("on_server_error", e)
            if not response_started:
                fallback = PlainTextResponse("Internal server error", status_code=500)
                await fallback(scope, receive, send_tracking)

    async def handle_request(self, request: Request) -> Response:
        """
        Run the dispatch pipeline for one HTTP request.

        Args:
            request: The incoming Starlette request.

        Returns:
            The response to send, with CORS headers applied.
        """
        cors_headers = self._cors_headers(request)
        if cors_headers is None:
            return PlainTextResponse("Forbidden origin", status_code=403)

        if request.method == "OPTIONS":
            response = self._preflight_response(request)
        else:
            response = await self._route(request)

        for name, value in cors_headers.items():
            if name == "Vary":
                response.headers.add_vary_header(value)
            else:
                response.headers[name] = value
        return response

    # =========================================================================
    # CORS and Routing
    # =========================================================================

    def _cors_headers(self, request: Request) -> dict[str, str] | None:
        """Return CORS headers for the request, or None if the origin is rejected."""
        origin = request.headers.get("origin")

        if self.options.allows_any_origin:
            headers = {"Access-Control-Expose-Headers": SESSION_ID_HEADER}
            if origin:
                headers["Access-Control-Allow-Origin"] = "*"
                headers["Vary"] = "Origin"
            return headers

        # Same-origin requests carry no Origin header
        if not origin:
            return {}

        if origin in self.options.allowed_origins:
            return {
                "Access-Control-Allow-Origin": origin,
                "Access-Control-Allow-Credentials": "true",
                "Access-Control-Expose-Headers": SESSION_ID_HEADER,
                "Vary": "Origin",
            }

        logger.info("Rejected request from disallowed origin", extra={"origin": origin})
        return None

    def _preflight_response(self, request: Request) -> Response:
        requested = request.headers.getlist("access-control-request-headers")
        headers = {
            "Access-Control-Allow-Methods": MCP_ALLOWED_METHODS,
            "Access-Control-Allow-Headers": ", ".join(requested) or DEFAULT_ALLOWED_HEADERS,
        }
        if not self.options.allows_any_origin:
            headers["Access-Control-Allow-Credentials"] = "true"
        return Response(status_code=204, headers=headers)

    async def _route(self, request: Request) -> Response:
        path = request.url.path

        if path != self.options.path:
            handler = self.routes.resolve(request.method, path)
            if handler is not None:
                return await self._call_route(handler, request)

            methods = self.routes.methods_for(path)
            if methods:
                return PlainTextResponse(
                    "Method not allowed",
                    status_code=405,
                    headers={"Allow": ", ".join(methods)},
                )
            return PlainTextResponse("Not found", status_code=404)

        if request.method != "POST":
            return PlainTextResponse(
                "Method not allowed",
                status_code=405,
                headers={"Allow": MCP_ALLOWED_METHODS},
            )

        if self.authorize is not None and not await _invoke(self.authorize, request):
            return PlainTextResponse("Unauthorized", status_code=401)

        return await self._handle_rpc(request)

    async def _call_route(self, handler: RouteHandler, request: Request) -> Response:
        response = await _invoke(handler, request)
        if not isinstance(response, Response):
            raise TypeError(
                f"Route handler for {request.method} {request.url.path} must return "
                f"a Response, got {type(response).__name__}"
            )
        return response

    # =========================================================================
    # JSON-RPC Dispatch
    # =========================================================================

    async def _handle_rpc(self, request: Request) -> Response:
        request_id: RequestId = None

        try:
            rpc_request = parse_request(await request.body())
            request_id = rpc_request.id

            method_handler = self._methods.get(rpc_request.method)
            if method_handler is None:
                rpc_response = format_error_response(
                    request_id, create_method_not_found_error()
                )
            else:
                rpc_response = await method_handler(rpc_request)

        except JSONRPCError as e:
            if request_id is None:
                request_id = e.request_id
            rpc_response = format_error_response(request_id, e)

        except Exception as e:
            logger.exception(
                "Unexpected error processing request",
                extra={"request_id": request_id, "error": str(e)},
            )
            rpc_response = format_error_response(request_id, create_internal_error())

        return Response(content=rpc_response.to_json(), media_type="application/json")

    async def _handle_initialize(self, request: JSONRPCRequest) -> JSONRPCResponse:
        try:
            params = InitializeParams.model_validate(request.params)
        except ValidationError as e:
            # Malformed initialize payloads are protocol-level errors
            raise JSONRPCError(
                code=PARSE_ERROR,
                message=f"Unable to parse RPC request: {format_validation_error(e)}",
            ) from e

        self.hooks.emit(
            "on_client_connected",
            params.client_info.name,
            params.client_info.version,
            params.protocol_version,
        )

        return format_success_response(
            request.id,
            {
                "protocolVersion": params.protocol_version,
                "serverInfo": {
                    "name": self.server.name,
                    "version": self.server.version,
                },
                "capabilities": {"tools": {}},
            },
        )

    async def _handle_tools_list(self, request: JSONRPCRequest) -> JSONRPCResponse:
        self.hooks.emit("on_tools_list_requested")
        tools = [tool.describe() for tool in self.server.get_tools()]
        return format_success_response(request.id, {"tools": tools})

    async def _handle_ping(self, request: JSONRPCRequest) -> JSONRPCResponse:
        return format_success_response(request.id, {"status": "ok"})

    async def _handle_tools_call(self, request: JSONRPCRequest) -> JSONRPCResponse:
        """
        Validate, invoke and report a single tool call.

        Hook order: on_tool_call_started fires only after the arguments passed
        schema validation, followed by exactly one of on_tool_call_finished or
        on_tool_call_error. A schema failure fires on_tool_call_error alone.
        """
        try:
            params = CallToolParams.model_validate(request.params)
        except ValidationError as e:
            raise JSONRPCError(
                code=PARSE_ERROR,
                message=f"Unable to parse RPC request: {format_validation_error(e)}",
            ) from e

        tool = self.server.get_tool(params.name)
        if tool is None:
            raise JSONRPCError(
                code=INVALID_PARAMS,
                message=f"Tool '{params.name}' not found",
            )

        raw_input = params.arguments if params.arguments is not None else {}
        started_at = time.perf_counter()

        try:
            parsed_input = tool.validator.validate(raw_input)
        except SchemaValidationError as e:
            details = format_diagnostics(e.diagnostics)
            self._record_tool_error(tool.name, raw_input, details, started_at)
            raise JSONRPCError(
                code=INVALID_PARAMS,
                message=f"Invalid tool arguments: {details}",
            ) from e

        self.hooks.emit("on_tool_call_started", tool.name, raw_input)

        try:
            content = await self._run_tool(tool, parsed_input)
        except Exception as e:
            message = str(e) or UNKNOWN_TOOL_ERROR
            logger.warning(
                "Tool call failed",
                extra={"tool": tool.name, "error": message},
                exc_info=True,
            )
            self._record_tool_error(tool.name, raw_input, e, started_at)
            raise JSONRPCError(code=INTERNAL_ERROR, message=message) from e

        self.hooks.emit(
            "on_tool_call_finished",
            tool.name,
            raw_input,
            content,
            _elapsed_ms(started_at),
        )
        return format_success_response(request.id, {"content": content})

    async def _run_tool(
        self, tool: ToolDefinition, parsed_input: Any
    ) -> list[dict[str, Any]]:
        timeout = self.options.tool_timeout
        if timeout is None:
            result = await _invoke(tool.handler, parsed_input)
        else:
            # A sync handler keeps running in its worker thread after a timeout
            try:
                result = await asyncio.wait_for(
                    _invoke(tool.handler, parsed_input), timeout
                )
            except TimeoutError as e:
                raise TimeoutError(
                    f"Tool '{tool.name}' timed out after {timeout:g} seconds"
                ) from e
        return normalize_content(result)

    def _record_tool_error(
        self,
        tool_name: str,
        raw_input: dict[str, Any],
        error: BaseException | str,
        started_at: float,
    ) -> None:
        self.hooks.emit(
            "on_tool_call_error", tool_name, raw_input, error, _elapsed_ms(started_at)
        )
