"""
Tool response content items.

A tool call produces an ordered list of content items, each either text or
base64-encoded media. Handlers may return the pydantic models below or plain
dictionaries of the same shape; normalize_content() validates either form and
renders the wire representation.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class TextContent(BaseModel):
    """A text content item."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class MediaContent(BaseModel):
    """
    An image or audio content item.

    Attributes:
        type: "image" or "audio".
        data: Base64-encoded payload.
        mime_type: MIME type of the payload (serialized as "mimeType").
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["image", "audio"]
    data: str
    mime_type: str = Field(alias="mimeType")


ToolResponseContent = Annotated[TextContent | MediaContent, Field(discriminator="type")]

_content_adapter: TypeAdapter[list[ToolResponseContent]] = TypeAdapter(
    list[ToolResponseContent]
)


def normalize_content(items: Sequence[Any]) -> list[dict[str, Any]]:
    """
    Validate handler output and convert it to its JSON representation.

    Args:
        items: Sequence of TextContent/MediaContent instances or dicts.

    Returns:
        List of content dictionaries in the original order.

    Raises:
        pydantic.ValidationError: If an item is not a valid content item.
        TypeError: If the handler returned something other than a sequence.
    """
    if isinstance(items, (str, bytes, dict)) or not isinstance(items, Sequence):
        raise TypeError(
            f"Tool handler must return a list of content items, got {type(items).__name__}"
        )
    raw = [
        item.model_dump(by_alias=True) if isinstance(item, BaseModel) else item
        for item in items
    ]
    validated = _content_adapter.validate_python(raw)
    return [item.model_dump(by_alias=True) for item in validated]
