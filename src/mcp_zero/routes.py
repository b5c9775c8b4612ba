"""
Custom HTTP routes served alongside the MCP endpoint.

Custom routes bypass JSON-RPC entirely: the handler receives the Starlette
request and returns the response to send. They are useful for health checks,
metadata endpoints and the like.
"""

from __future__ import annotations

import threading
from collections.abc import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import Response

from mcp_zero.errors import ConflictError, DuplicateRouteError

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD")

RouteHandler = Callable[[Request], Response | Awaitable[Response]]


def normalize_path(path: str) -> str:
    """Ensure a route path begins with '/'."""
    return path if path.startswith("/") else f"/{path}"


class RouteRegistry:
    """
    Registry mapping (path, HTTP method) pairs to route handlers.

    Paths keep their registration order; writers swap in a new mapping under
    a lock so request handling can read without locking.

    Example:
        >>> routes = RouteRegistry()
        >>> routes.register("GET", "health", health_handler)
        >>> routes.resolve("GET", "/health") is health_handler
        True
    """

    def __init__(self) -> None:
        self._routes: dict[str, dict[str, RouteHandler]] = {}
        self._lock = threading.Lock()

    def register(self, method: str, path: str, handler: RouteHandler) -> None:
        """
        Register a handler for a method and path.

        Args:
            method: HTTP method (case-insensitive).
            path: Request path; a leading '/' is added if missing.
            handler: Callable receiving the request and returning a response.

        Raises:
            ValueError: If the method is not supported.
            DuplicateRouteError: If the (method, path) pair is already registered.
        """
        method = method.upper()
        if method not in HTTP_METHODS:
            raise ValueError(
                f"Unsupported HTTP method: {method}. Must be one of: {', '.join(HTTP_METHODS)}"
            )
        path = normalize_path(path)

        with self._lock:
            methods = self._routes.get(path, {})
            if method in methods:
                raise DuplicateRouteError(method, path)
            self._routes = {**self._routes, path: {**methods, method: handler}}

    def resolve(self, method: str, path: str) -> RouteHandler | None:
        """Return the handler for method and path, or None."""
        return self._routes.get(path, {}).get(method.upper())

    def methods_for(self, path: str) -> list[str]:
        """Return the methods registered for a path."""
        return list(self._routes.get(path, {}))

    def paths(self) -> list[str]:
        """Return all registered paths."""
        return list(self._routes)

    def merge(self, other: RouteRegistry | None) -> RouteRegistry:
        """
        Combine this registry with another into a new registry.

        Raises:
            DuplicateRouteError: If both registries define the same pair.
        """
        merged = RouteRegistry()
        for source in (self, other):
            if source is None:
                continue
            for path, methods in source._routes.items():
                for method, handler in methods.items():
                    merged.register(method, path, handler)
        return merged

    def ensure_disjoint(self, mcp_path: str) -> None:
        """
        Check that no custom route uses the MCP JSON-RPC path.

        Raises:
            ConflictError: If a custom route path equals mcp_path.
        """
        if mcp_path in self._routes:
            raise ConflictError(mcp_path)

    def __contains__(self, path: object) -> bool:
        return path in self._routes

    def __len__(self) -> int:
        return sum(len(methods) for methods in self._routes.values())
