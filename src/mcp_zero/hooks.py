"""
Lifecycle hooks for the mcp-zero server framework.

Hooks are optional observer callbacks fired at well-defined points of the
server lifecycle. They never influence control flow: a missing hook is a
no-op and an exception raised by a hook is logged and swallowed so it cannot
affect the HTTP response being built.

Hooks are synchronous and run inline on the calling task or thread. Coroutine
functions are rejected when a ServerHooks is built; a hook that needs async
work should schedule it itself (e.g. with asyncio.create_task) and return.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass, fields, replace
from typing import Any

from mcp_zero.logging import get_logger

logger = get_logger(__name__)

ToolInput = dict[str, Any]


@dataclass(frozen=True)
class ServerHooks:
    """
    Optional callbacks emitted during server lifecycle events.

    Attributes:
        on_client_connected: (client_name, client_version, protocol_version)
        on_tool_registered: (tool_name, description)
        on_tool_call_started: (tool_name, raw_arguments)
        on_tool_call_finished: (tool_name, raw_arguments, content, elapsed_ms)
        on_tool_call_error: (tool_name, raw_arguments, error, elapsed_ms), where
            error is the raised exception or a rendered diagnostic string
        on_tools_list_requested: ()
        on_server_error: (error) for failures escaping request handling

    Example:
        >>> hooks = ServerHooks(
        ...     on_client_connected=lambda name, version, proto: print(name),
        ... )
    """

    on_client_connected: Callable[[str, str, str], Any] | None = None
    on_tool_registered: Callable[[str, str], Any] | None = None
    on_tool_call_started: Callable[[str, ToolInput], Any] | None = None
    on_tool_call_finished: (
        Callable[[str, ToolInput, list[dict[str, Any]], float], Any] | None
    ) = None
    on_tool_call_error: (
        Callable[[str, ToolInput, BaseException | str, float], Any] | None
    ) = None
    on_tools_list_requested: Callable[[], Any] | None = None
    on_server_error: Callable[[BaseException | str], Any] | None = None

    def __post_init__(self) -> None:
        for field in fields(self):
            callback = getattr(self, field.name)
            if inspect.iscoroutinefunction(callback):
                raise TypeError(
                    f"Hook {field.name} must be a regular function, not a coroutine function"
                )

    def emit(self, event: str, *args: Any) -> None:
        """
        Invoke the callback registered for an event, if any.

        Args:
            event: Hook field name, e.g. "on_tool_call_started".
            *args: Positional arguments passed to the callback.
        """
        callback = getattr(self, event)
        if callback is None:
            return
        try:
            result = callback(*args)
        except Exception as e:
            logger.warning(
                "Lifecycle hook raised an exception",
                extra={"hook": event, "error": str(e)},
                exc_info=True,
            )
            return

        # A sync wrapper around a coroutine function slips past __post_init__
        if inspect.iscoroutine(result):
            result.close()
            logger.warning(
                "Lifecycle hook returned a coroutine, which is never awaited",
                extra={"hook": event},
            )

    def merge(self, overrides: ServerHooks | None) -> ServerHooks:
        """
        Combine two hook sets, preferring callbacks set in overrides.

        Args:
            overrides: Hooks whose non-empty slots replace this set's slots.

        Returns:
            A new ServerHooks instance.
        """
        if overrides is None:
            return self
        changes = {
            field.name: getattr(overrides, field.name)
            for field in fields(overrides)
            if getattr(overrides, field.name) is not None
        }
        return replace(self, **changes)
