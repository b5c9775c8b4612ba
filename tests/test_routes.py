"""
Tests for the custom route registry.
"""

from __future__ import annotations

import pytest
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from mcp_zero.errors import ConflictError, DuplicateRouteError
from mcp_zero.routes import RouteRegistry, normalize_path


def ok(_request: Request) -> Response:
    return PlainTextResponse("ok")


def other(_request: Request) -> Response:
    return PlainTextResponse("other")


class TestNormalizePath:
    """Tests for normalize_path."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [("health", "/health"), ("/health", "/health"), ("", "/")],
    )
    def test_leading_slash(self, path: str, expected: str) -> None:
        """Test that paths always begin with a slash."""
        assert normalize_path(path) == expected


class TestRouteRegistry:
    """Tests for RouteRegistry."""

    def test_register_and_resolve(self) -> None:
        """Test method-insensitive registration and lookup."""
        routes = RouteRegistry()

        routes.register("get", "health", ok)

        assert routes.resolve("GET", "/health") is ok
        assert routes.resolve("get", "/health") is ok
        assert routes.resolve("POST", "/health") is None
        assert routes.resolve("GET", "/missing") is None

    def test_methods_for_path(self) -> None:
        """Test listing the methods registered for a path."""
        routes = RouteRegistry()
        routes.register("GET", "/items", ok)
        routes.register("DELETE", "/items", other)

        assert routes.methods_for("/items") == ["GET", "DELETE"]
        assert routes.methods_for("/missing") == []
        assert len(routes) == 2
        assert routes.paths() == ["/items"]
        assert "/items" in routes

    def test_unsupported_method(self) -> None:
        """Test that unknown HTTP methods are rejected."""
        with pytest.raises(ValueError, match="Unsupported HTTP method"):
            RouteRegistry().register("TRACE", "/x", ok)

    def test_duplicate_pair(self) -> None:
        """Test that the same method and path cannot be registered twice."""
        routes = RouteRegistry()
        routes.register("GET", "/health", ok)

        with pytest.raises(DuplicateRouteError, match="GET /health"):
            routes.register("get", "health", other)

        assert routes.resolve("GET", "/health") is ok

    def test_merge(self) -> None:
        """Test merging two registries into a new one."""
        first = RouteRegistry()
        first.register("GET", "/a", ok)
        second = RouteRegistry()
        second.register("POST", "/a", other)
        second.register("GET", "/b", other)

        merged = first.merge(second)

        assert merged.resolve("GET", "/a") is ok
        assert merged.resolve("POST", "/a") is other
        assert merged.resolve("GET", "/b") is other
        assert len(first) == 1

    def test_merge_none(self) -> None:
        """Test that merging None copies the registry."""
        routes = RouteRegistry()
        routes.register("GET", "/a", ok)

        merged = routes.merge(None)

        assert merged is not routes
        assert merged.resolve("GET", "/a") is ok

    def test_merge_duplicate(self) -> None:
        """Test that overlapping registries cannot be merged."""
        first = RouteRegistry()
        first.register("GET", "/a", ok)
        second = RouteRegistry()
        second.register("GET", "/a", other)

        with pytest.raises(DuplicateRouteError):
            first.merge(second)

    def test_ensure_disjoint(self) -> None:
        """Test the MCP path conflict check."""
        routes = RouteRegistry()
        routes.register("GET", "/mcp", ok)

        routes.ensure_disjoint("/rpc")
        with pytest.raises(ConflictError):
            routes.ensure_disjoint("/mcp")
