"""
Tool definitions and registry for the mcp-zero server framework.

This module provides:
- ToolDefinition: a named, schema-validated, invocable capability
- ToolRegistry: an insertion-ordered mapping from tool name to definition
"""

from __future__ import annotations

import threading
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from mcp_zero.errors import DuplicateNameError
from mcp_zero.hooks import ServerHooks
from mcp_zero.logging import get_logger
from mcp_zero.schema import SchemaValidator

logger = get_logger(__name__)

# A handler receives the validated input and returns content items
ToolHandler = Callable[[Any], Sequence[Any] | Awaitable[Sequence[Any]]]


@dataclass(frozen=True)
class ToolDefinition:
    """
    Declarative description of an MCP tool.

    The schema is converted to JSON Schema for tools/list and used to
    validate arguments for tools/call; the handler only ever sees the
    validated value.

    Attributes:
        name: Unique tool name.
        schema: Pydantic model class (or any TypeAdapter-compatible type).
        handler: Sync or async callable returning a list of content items.
        description: Optional human-readable description.

    Example:
        >>> class EchoInput(BaseModel):
        ...     text: str
        >>> async def echo(data: EchoInput) -> list[TextContent]:
        ...     return [TextContent(text=data.text)]
        >>> tool = ToolDefinition(name="echo", schema=EchoInput, handler=echo)
    """

    name: str
    schema: Any
    handler: ToolHandler
    description: str | None = None
    validator: SchemaValidator = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("Tool name must be a non-empty string")
        object.__setattr__(self, "validator", SchemaValidator(self.schema))

    def input_schema(self) -> dict[str, Any]:
        """Return the JSON Schema advertised for this tool's input."""
        return self.validator.json_schema(self.name)

    def describe(self) -> dict[str, Any]:
        """Render the tool as a tools/list entry; description is omitted when unset."""
        entry: dict[str, Any] = {"name": self.name}
        if self.description is not None:
            entry["description"] = self.description
        entry["inputSchema"] = self.input_schema()
        return entry


class ToolRegistry:
    """
    Registry mapping tool names to definitions, in registration order.

    Writers replace the internal mapping under a lock (copy-on-write), so
    readers always observe a consistent snapshot without locking.

    Example:
        >>> registry = ToolRegistry()
        >>> registry.register(tool)
        >>> registry.get("echo") is tool
        True
    """

    def __init__(self, hooks: ServerHooks | None = None) -> None:
        """
        Initialize an empty tool registry.

        Args:
            hooks: Hooks notified when a tool is registered.
        """
        self._tools: dict[str, ToolDefinition] = {}
        self._lock = threading.Lock()
        self.hooks = hooks or ServerHooks()

    def register(self, definition: ToolDefinition) -> None:
        """
        Register a tool definition.

        Args:
            definition: The tool to register.

        Raises:
            DuplicateNameError: If a tool with the same name already exists.
        """
        with self._lock:
            if definition.name in self._tools:
                raise DuplicateNameError(definition.name)
            self._tools = {**self._tools, definition.name: definition}

        logger.debug("Tool registered", extra={"tool": definition.name})
        self.hooks.emit(
            "on_tool_registered", definition.name, definition.description or ""
        )

    def get(self, name: str) -> ToolDefinition | None:
        """Return the tool registered under name, or None."""
        return self._tools.get(name)

    def list(self) -> list[ToolDefinition]:
        """Return all registered tools in registration order."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        """Return all registered tool names in registration order."""
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        """Check if a tool is registered (for 'in' operator)."""
        return name in self._tools

    def __len__(self) -> int:
        """Return the number of registered tools."""
        return len(self._tools)
