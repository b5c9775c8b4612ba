"""
Error types for the mcp-zero server framework.

These exceptions cover registry and lifecycle misuse: duplicate tool names,
duplicate or conflicting routes, and start/stop called in the wrong state.
They are raised synchronously to the caller of the registration or lifecycle
API and never converted into JSON-RPC errors.

Protocol-level failures (malformed envelopes, unknown tools, handler
exceptions) are expressed with JSONRPCError in mcp_zero.protocol instead.
"""

from __future__ import annotations

from typing import Any


class McpZeroError(Exception):
    """
    Base exception class for mcp-zero configuration and lifecycle errors.

    Attributes:
        message: Human-readable error message.
        details: Optional structured details (e.g., offending name or path).
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize an McpZeroError.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with structured error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        """Return a detailed string representation."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the error to a dictionary for logging.

        Returns:
            Dictionary with error type, message, and details.
        """
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class DuplicateNameError(McpZeroError):
    """Raised when a tool is registered under a name that already exists."""

    def __init__(self, name: str) -> None:
        """Initialize a DuplicateNameError for the given tool name."""
        super().__init__(
            f"Tool '{name}' is already registered", details={"tool": name}
        )
        self.name = name


class DuplicateRouteError(McpZeroError):
    """Raised when the same (method, path) pair is registered twice."""

    def __init__(self, method: str, path: str) -> None:
        """Initialize a DuplicateRouteError for the given endpoint."""
        super().__init__(
            f"Endpoint '{method} {path}' is already registered",
            details={"method": method, "path": path},
        )
        self.method = method
        self.path = path


class ConflictError(McpZeroError):
    """Raised when a custom route path collides with the MCP JSON-RPC path."""

    def __init__(self, path: str) -> None:
        """Initialize a ConflictError for the given MCP path."""
        super().__init__(
            f"Custom endpoint path cannot match MCP path '{path}'",
            details={"path": path},
        )
        self.path = path


class ServerStateError(McpZeroError):
    """
    Raised when start/stop is called in the wrong lifecycle state.

    Starting an already-started server, or stopping one that is not running,
    is a programming error and is reported immediately.
    """


class TransportError(McpZeroError):
    """Raised when the HTTP transport fails to bind or serve."""
