"""
Schema adapter for tool input schemas.

Tools declare their input shape with a pydantic model (or any type pydantic's
TypeAdapter accepts, e.g. a TypedDict or dataclass). This module provides:

- SchemaValidator: validates raw tool arguments into typed values and turns
  validation failures into structured diagnostics
- to_json_schema(): renders the declared shape as a self-contained draft-07
  style JSON Schema document for tools/list

Most MCP clients do not dereference a root "$ref", so when the generated
document is only a reference into "definitions" the referenced definition is
inlined at the root.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import TypeAdapter, ValidationError

DEFINITIONS_KEY = "definitions"
DEFINITIONS_REF_PREFIX = "#/definitions/"
DEFINITIONS_REF_TEMPLATE = DEFINITIONS_REF_PREFIX + "{model}"


class SchemaValidationError(Exception):
    """
    Raised when tool arguments do not satisfy the tool's input schema.

    Attributes:
        diagnostics: Structured diagnostics in the form
            {"formErrors": [...], "fieldErrors": {field: [messages]}}.
    """

    def __init__(self, diagnostics: dict[str, Any]) -> None:
        super().__init__(format_diagnostics(diagnostics))
        self.diagnostics = diagnostics


def flatten_errors(exc: ValidationError) -> dict[str, Any]:
    """
    Group pydantic errors by top-level field.

    Errors without a location (e.g. the input is not an object) are collected
    under "formErrors"; all others are keyed by the first element of their
    location.

    Args:
        exc: The pydantic ValidationError to flatten.

    Returns:
        Dictionary with "formErrors" and "fieldErrors" keys.
    """
    form_errors: list[str] = []
    field_errors: dict[str, list[str]] = {}
    for error in exc.errors():
        location = error["loc"]
        if not location:
            form_errors.append(error["msg"])
            continue
        field_errors.setdefault(str(location[0]), []).append(error["msg"])
    return {"formErrors": form_errors, "fieldErrors": field_errors}


def format_diagnostics(diagnostics: dict[str, Any]) -> str:
    """Render diagnostics as indented JSON for messages and hook payloads."""
    return json.dumps(diagnostics, indent=2)


def _collect_refs(node: Any, refs: set[str]) -> None:
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith(DEFINITIONS_REF_PREFIX):
            refs.add(ref[len(DEFINITIONS_REF_PREFIX) :])
        for value in node.values():
            _collect_refs(value, refs)
    elif isinstance(node, list):
        for value in node:
            _collect_refs(value, refs)


def _reachable_definitions(
    root: dict[str, Any], definitions: dict[str, Any]
) -> dict[str, Any]:
    """Return the subset of definitions transitively referenced from root."""
    pending: set[str] = set()
    _collect_refs(root, pending)
    reachable: dict[str, Any] = {}
    while pending:
        key = pending.pop()
        if key in reachable or key not in definitions:
            continue
        reachable[key] = definitions[key]
        _collect_refs(definitions[key], pending)
    return reachable


def normalize_schema(document: dict[str, Any]) -> dict[str, Any]:
    """
    Inline a root "$ref" that points at a single named definition.

    Definitions still referenced from the inlined schema (e.g. by recursive or
    nested models) are kept under "definitions"; unreferenced ones are dropped.

    Args:
        document: JSON Schema document using "#/definitions/" references.

    Returns:
        A self-contained document, or the input unchanged if there is no root
        reference to resolve.
    """
    ref = document.get("$ref")
    definitions = document.get(DEFINITIONS_KEY)
    if not isinstance(ref, str) or not isinstance(definitions, dict):
        return document
    if not ref.startswith(DEFINITIONS_REF_PREFIX):
        return document

    resolved = definitions.get(ref[len(DEFINITIONS_REF_PREFIX) :])
    if not isinstance(resolved, dict):
        return document

    extras = {
        key: value
        for key, value in document.items()
        if key not in ("$ref", DEFINITIONS_KEY)
    }
    inlined = {**extras, **resolved}
    remaining = _reachable_definitions(inlined, definitions)
    if remaining:
        inlined[DEFINITIONS_KEY] = remaining
    return inlined


def to_json_schema(name: str, schema: Any) -> dict[str, Any]:
    """
    Convert a tool input schema to a JSON Schema document.

    Args:
        name: Tool name, used as the document title when the schema has none.
        schema: A pydantic model class, a type TypeAdapter accepts, or an
            existing TypeAdapter.

    Returns:
        Self-contained JSON Schema document.

    Example:
        >>> class EchoInput(BaseModel):
        ...     text: str
        >>> to_json_schema("echo", EchoInput)["required"]
        ['text']
    """
    adapter = schema if isinstance(schema, TypeAdapter) else TypeAdapter(schema)
    document = adapter.json_schema(ref_template=DEFINITIONS_REF_TEMPLATE)
    if "$defs" in document:
        document[DEFINITIONS_KEY] = document.pop("$defs")
    document = normalize_schema(document)
    document.setdefault("title", name)
    return document


class SchemaValidator:
    """
    Validator capability wrapping a tool's declared input schema.

    Example:
        >>> validator = SchemaValidator(EchoInput)
        >>> validator.validate({"text": "hi"})
        EchoInput(text='hi')
    """

    def __init__(self, schema: Any) -> None:
        self.schema = schema
        self._adapter: TypeAdapter[Any] = TypeAdapter(schema)

    def validate(self, raw: Any) -> Any:
        """
        Validate and coerce raw arguments.

        Raises:
            SchemaValidationError: If the arguments do not match the schema.
        """
        try:
            return self._adapter.validate_python(raw)
        except ValidationError as e:
            raise SchemaValidationError(flatten_errors(e)) from e

    def json_schema(self, name: str) -> dict[str, Any]:
        """Return the JSON Schema advertised for this validator."""
        return to_json_schema(name, self._adapter)
