"""
JSON-RPC 2.0 protocol handling for the mcp-zero server framework.

This module implements JSON-RPC 2.0 request parsing and response formatting
for the subset of MCP served over HTTP: initialize, tools/list, tools/call
and ping.

Features:
- JSON-RPC 2.0 envelope parsing with pydantic validation
- JSON-RPC 2.0 response formatting (success and error)
- Parameter models for initialize and tools/call
- Request id recovery from envelopes that fail validation

Error Codes:
- -32700: Parse error (malformed JSON, malformed envelope or MCP params)
- -32600: Invalid Request (reserved, not emitted by dispatch)
- -32601: Method not found
- -32602: Invalid params (unknown tool, tool argument validation failed)
- -32603: Internal error (handler failure or unclassified failure)
- -32002: Not initialized (reserved)
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
)

# =============================================================================
# JSON-RPC Error Codes
# =============================================================================

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# MCP extension
NOT_INITIALIZED = -32002

JSONRPC_VERSION = "2.0"

# Supported MCP methods
METHOD_INITIALIZE = "initialize"
METHOD_TOOLS_LIST = "tools/list"
METHOD_TOOLS_CALL = "tools/call"
METHOD_PING = "ping"

RequestId = str | int | float | None


# =============================================================================
# Data Classes
# =============================================================================


class JSONRPCError(Exception):
    """
    Represents a JSON-RPC 2.0 error object.

    This class is both an Exception (so it can be raised) and a data container
    for JSON-RPC error information.

    Attributes:
        code: Integer error code (per JSON-RPC 2.0 spec).
        message: Human-readable error message.
        data: Optional structured error data.
        request_id: Request id recovered from the failing envelope, if any.
    """

    def __init__(
        self,
        code: int,
        message: str,
        data: dict[str, Any] | None = None,
        request_id: RequestId = None,
    ) -> None:
        """
        Initialize a JSONRPCError.

        Args:
            code: Integer error code.
            message: Human-readable error message.
            data: Optional structured error data.
            request_id: Request id to echo in the error response.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data
        self.request_id = request_id

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the error to a dictionary for JSON serialization.

        Returns:
            Dictionary with code, message, and optionally data.
        """
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.data is not None:
            result["data"] = self.data
        return result

    def __repr__(self) -> str:
        """Return a detailed string representation."""
        return (
            f"JSONRPCError(code={self.code}, "
            f"message={self.message!r}, "
            f"data={self.data!r})"
        )


class JSONRPCRequest(BaseModel):
    """
    Represents a validated JSON-RPC 2.0 request envelope.

    Attributes:
        jsonrpc: Protocol version (must be "2.0").
        id: Request identifier (string or number, absent for notifications).
        method: The MCP method to invoke.
        params: Parameters for the method (object or array), if any.
    """

    model_config = ConfigDict(frozen=True)

    jsonrpc: Literal["2.0"]
    id: StrictStr | StrictInt | StrictFloat | None = None
    method: StrictStr
    params: dict[str, Any] | list[Any] | None = None

    @property
    def is_notification(self) -> bool:
        """Check if this is a notification (no id field)."""
        return self.id is None


@dataclass
class JSONRPCResponse:
    """
    Represents a JSON-RPC 2.0 response.

    Either result or error must be present, but not both.

    Attributes:
        jsonrpc: Protocol version (always "2.0").
        id: Request identifier (matches request, or null when unrecoverable).
        result: Success result (if not an error).
        error: Error object (if an error occurred).
    """

    jsonrpc: str
    id: RequestId
    result: Any | None = None
    error: JSONRPCError | None = None

    @property
    def is_error(self) -> bool:
        """Check if this is an error response."""
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the response to a dictionary for JSON serialization.

        Returns:
            Dictionary with jsonrpc, id, and either result or error.
        """
        response: dict[str, Any] = {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
        }
        if self.error is not None:
            response["error"] = self.error.to_dict()
        else:
            response["result"] = self.result
        return response

    def to_json(self) -> str:
        """
        Serialize the response to a JSON string.

        Returns:
            JSON string representation of the response.
        """
        return json.dumps(self.to_dict(), separators=(",", ":"), allow_nan=False)


# =============================================================================
# MCP Parameter Models
# =============================================================================


class ClientInfo(BaseModel):
    """Client identity reported in the initialize request."""

    name: StrictStr = Field(min_length=1)
    version: StrictStr = Field(min_length=1)


class InitializeParams(BaseModel):
    """
    Parameters of the initialize request.

    Attributes:
        protocol_version: Protocol version requested by the client.
        client_info: Client name and version.
        capabilities: Free-form client capabilities.
    """

    model_config = ConfigDict(populate_by_name=True)

    protocol_version: StrictStr = Field(alias="protocolVersion", min_length=1)
    client_info: ClientInfo = Field(alias="clientInfo")
    capabilities: dict[str, Any] | None = None


class CallToolParams(BaseModel):
    """
    Parameters of the tools/call request.

    Attributes:
        name: Name of the tool to invoke.
        arguments: Raw tool arguments, validated later against the tool schema.
    """

    name: StrictStr = Field(min_length=1)
    arguments: dict[str, Any] | None = None


def format_validation_error(exc: ValidationError) -> str:
    """
    Render a pydantic ValidationError as a single readable line.

    Each error is rendered as "<dotted.location>: <message>", joined with "; ".

    Example:
        >>> try:
        ...     InitializeParams.model_validate({"protocolVersion": "x"})
        ... except ValidationError as e:
        ...     print(format_validation_error(e))
        clientInfo: Field required
    """
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "params"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


# =============================================================================
# Request Parsing
# =============================================================================


def recover_request_id(data: Any) -> RequestId:
    """
    Recover a usable request id from a decoded, possibly invalid envelope.

    Args:
        data: Decoded JSON body.

    Returns:
        The id when the body is an object carrying a string or number id,
        otherwise None.
    """
    if not isinstance(data, dict):
        return None
    request_id = data.get("id")
    if isinstance(request_id, bool):
        return None
    if isinstance(request_id, (str, int, float)):
        return request_id
    return None


def _reject_constant(token: str) -> Any:
    # NaN and Infinity are accepted by the json module but are not JSON
    raise ValueError(f"Invalid JSON number: {token}")


def _parse_finite_float(token: str) -> float:
    value = float(token)
    if not math.isfinite(value):
        raise ValueError(f"JSON number out of range: {token}")
    return value


def parse_request(request_json: str | bytes) -> JSONRPCRequest:
    """
    Parse a JSON-RPC 2.0 request from a JSON document.

    Malformed JSON and a malformed envelope are both reported as parse
    errors; the latter carries the request id when it can be recovered.
    NaN, Infinity and numbers that overflow a float count as malformed JSON.

    Args:
        request_json: Raw JSON text or bytes containing the request.

    Returns:
        Parsed JSONRPCRequest object.

    Raises:
        JSONRPCError: If the body is not JSON or not a valid envelope.

    Example:
        >>> request = parse_request('{"jsonrpc":"2.0","id":1,"method":"ping"}')
        >>> print(request.method)
        ping
    """
    try:
        data = json.loads(
            request_json,
            parse_constant=_reject_constant,
            parse_float=_parse_finite_float,
        )
    except ValueError as e:
        raise JSONRPCError(code=PARSE_ERROR, message="Invalid JSON") from e

    try:
        return JSONRPCRequest.model_validate(data)
    except ValidationError as e:
        raise JSONRPCError(
            code=PARSE_ERROR,
            message="Invalid request format",
            request_id=recover_request_id(data),
        ) from e


# =============================================================================
# Response Formatting
# =============================================================================


def format_success_response(
    request_id: RequestId,
    result: Any,
) -> JSONRPCResponse:
    """
    Format a successful JSON-RPC 2.0 response.

    Args:
        request_id: The request ID to include in the response.
        result: The result value to include in the response.

    Returns:
        JSONRPCResponse object representing a success response.

    Example:
        >>> response = format_success_response(1, {"status": "ok"})
        >>> print(response.to_json())
        {"jsonrpc":"2.0","id":1,"result":{"status":"ok"}}
    """
    return JSONRPCResponse(
        jsonrpc=JSONRPC_VERSION,
        id=request_id,
        result=result,
        error=None,
    )


def format_error_response(
    request_id: RequestId,
    error: JSONRPCError,
) -> JSONRPCResponse:
    """
    Format a JSON-RPC 2.0 error response.

    Args:
        request_id: The request ID (may be None when it could not be recovered).
        error: The JSONRPCError object describing the error.

    Returns:
        JSONRPCResponse object representing an error response.
    """
    return JSONRPCResponse(
        jsonrpc=JSONRPC_VERSION,
        id=request_id,
        result=None,
        error=error,
    )


def create_method_not_found_error() -> JSONRPCError:
    """Create a "Method not found" error for an unsupported MCP method."""
    return JSONRPCError(code=METHOD_NOT_FOUND, message="Method not found")


def create_internal_error(message: str = "Internal server error") -> JSONRPCError:
    """
    Create an internal error for unexpected exceptions.

    Args:
        message: Error message describing what went wrong.

    Returns:
        JSONRPCError with code -32603.
    """
    return JSONRPCError(code=INTERNAL_ERROR, message=message)
