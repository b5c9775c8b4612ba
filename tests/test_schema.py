"""
Tests for the schema adapter.

This test module validates:
- JSON Schema generation for tools/list, including root reference inlining
- Argument validation and flattened diagnostics
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

import pytest
from pydantic import BaseModel, Field, TypeAdapter

from mcp_zero.schema import (
    SchemaValidationError,
    SchemaValidator,
    format_diagnostics,
    normalize_schema,
    to_json_schema,
)

# =============================================================================
# Test Schemas
# =============================================================================


class Location(BaseModel):
    city: str
    country: str = "NL"


class ForecastInput(BaseModel):
    """Request a weather forecast."""

    location: Location
    days: int = Field(default=3, ge=1, le=14)
    units: Literal["metric", "imperial"] = "metric"


class TreeNode(BaseModel):
    value: int
    children: list[TreeNode] = []


@dataclass
class SearchArgs:
    query: str
    limit: int


# =============================================================================
# Tests for to_json_schema
# =============================================================================


class TestToJsonSchema:
    """Tests for JSON Schema generation."""

    def test_flat_model(self) -> None:
        """Test a model without nested definitions."""
        document = to_json_schema("locate", Location)

        assert document["type"] == "object"
        assert document["required"] == ["city"]
        assert document["properties"]["country"]["default"] == "NL"
        assert "$ref" not in document
        assert "definitions" not in document
        assert "$defs" not in document

    def test_model_title_kept(self) -> None:
        """Test that a model's own title is not replaced by the tool name."""
        assert to_json_schema("locate", Location)["title"] == "Location"

    def test_nested_model_uses_definitions(self) -> None:
        """Test that nested models are referenced through definitions."""
        document = to_json_schema("forecast", ForecastInput)

        assert document["properties"]["location"] == {"$ref": "#/definitions/Location"}
        assert set(document["definitions"]) == {"Location"}
        assert document["properties"]["days"]["minimum"] == 1
        assert document["properties"]["units"]["enum"] == ["metric", "imperial"]
        assert document["description"] == "Request a weather forecast."

    def test_recursive_model_inlines_root(self) -> None:
        """Test that a root $ref is inlined and self references kept."""
        document = to_json_schema("tree", TreeNode)

        assert "$ref" not in document
        assert document["type"] == "object"
        assert document["properties"]["children"]["items"] == {
            "$ref": "#/definitions/TreeNode"
        }
        assert "TreeNode" in document["definitions"]

    def test_dataclass(self) -> None:
        """Test schemas declared as a dataclass."""
        document = to_json_schema("search", SearchArgs)

        assert document["type"] == "object"
        assert sorted(document["required"]) == ["limit", "query"]

    def test_untitled_schema_gets_tool_name(self) -> None:
        """Test that schemas without a title are titled with the tool name."""
        document = to_json_schema("tags", list[str])

        assert document["title"] == "tags"
        assert document["type"] == "array"

    def test_accepts_type_adapter(self) -> None:
        """Test passing an existing TypeAdapter."""
        document = to_json_schema("locate", TypeAdapter(Location))

        assert document["required"] == ["city"]


class TestNormalizeSchema:
    """Tests for normalize_schema."""

    def test_inlines_root_reference(self) -> None:
        """Test resolving a root reference and dropping unused definitions."""
        document = {
            "$ref": "#/definitions/Args",
            "definitions": {
                "Args": {
                    "type": "object",
                    "properties": {"point": {"$ref": "#/definitions/Point"}},
                },
                "Point": {"type": "object"},
                "Unused": {"type": "string"},
            },
        }

        result = normalize_schema(document)

        assert result["type"] == "object"
        assert set(result["definitions"]) == {"Point"}

    def test_drops_empty_definitions(self) -> None:
        """Test that definitions are removed when nothing references them."""
        document = {
            "$ref": "#/definitions/Args",
            "title": "args",
            "definitions": {"Args": {"type": "object"}},
        }

        assert normalize_schema(document) == {"title": "args", "type": "object"}

    @pytest.mark.parametrize(
        "document",
        [
            {"type": "object"},
            {"$ref": "#/definitions/Missing", "definitions": {}},
            {"$ref": "https://example.com/schema.json", "definitions": {"A": {}}},
        ],
    )
    def test_unchanged(self, document: dict[str, Any]) -> None:
        """Test that documents without a resolvable root reference are kept."""
        assert normalize_schema(document) == document


# =============================================================================
# Tests for SchemaValidator
# =============================================================================


class TestSchemaValidator:
    """Tests for argument validation."""

    def test_validate_returns_model(self) -> None:
        """Test that valid arguments produce the typed value."""
        value = SchemaValidator(ForecastInput).validate(
            {"location": {"city": "Delft"}, "days": "5"}
        )

        assert isinstance(value, ForecastInput)
        assert value.location.city == "Delft"
        assert value.days == 5

    def test_field_errors_grouped_by_top_level_field(self) -> None:
        """Test diagnostics for nested and top-level failures."""
        with pytest.raises(SchemaValidationError) as exc_info:
            SchemaValidator(ForecastInput).validate({"location": {}, "days": 0})

        diagnostics = exc_info.value.diagnostics
        assert diagnostics["formErrors"] == []
        assert set(diagnostics["fieldErrors"]) == {"location", "days"}
        assert diagnostics["fieldErrors"]["location"] == ["Field required"]

    def test_form_errors(self) -> None:
        """Test that non-object input is reported as a form error."""
        with pytest.raises(SchemaValidationError) as exc_info:
            SchemaValidator(Location).validate("Delft")

        diagnostics = exc_info.value.diagnostics
        assert len(diagnostics["formErrors"]) == 1
        assert diagnostics["fieldErrors"] == {}

    def test_error_message_is_rendered_diagnostics(self) -> None:
        """Test that the exception message is the indented JSON diagnostics."""
        with pytest.raises(SchemaValidationError) as exc_info:
            SchemaValidator(Location).validate({})

        assert json.loads(str(exc_info.value)) == {
            "formErrors": [],
            "fieldErrors": {"city": ["Field required"]},
        }

    def test_json_schema(self) -> None:
        """Test the advertised schema matches to_json_schema."""
        assert SchemaValidator(Location).json_schema("locate") == to_json_schema(
            "locate", Location
        )


def test_format_diagnostics_is_indented() -> None:
    """Test that diagnostics are rendered with two-space indentation."""
    rendered = format_diagnostics({"formErrors": [], "fieldErrors": {}})

    assert rendered == '{\n  "formErrors": [],\n  "fieldErrors": {}\n}'
