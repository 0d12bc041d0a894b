"""Base types and definitions for tools."""

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from meetbot.errors import InvalidArguments
from meetbot.models.llm import ToolDescriptor

ToolHandler = Callable[[Any], Awaitable[str]]


@dataclass
class ToolDefinition:
    """Definition of a tool the model may call."""

    name: str
    description: str
    input_schema_class: type[BaseModel]
    handler: ToolHandler

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        schema = self.input_schema_class.model_json_schema()
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        return schema

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)

    def to_descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(name=self.name, description=self.description, parameters=self.get_json_schema())


def decode_arguments(tool_name: str, raw: str) -> dict[str, Any]:
    """Decode a tool call's JSON argument text into an object.

    An empty string is an empty arguments object.

    Raises:
        InvalidArguments: If the text is not a JSON object
    """
    if not raw.strip():
        return {}

    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidArguments(tool_name, f"arguments are not valid JSON ({e.msg})") from e

    if not isinstance(decoded, dict):
        raise InvalidArguments(tool_name, f"arguments must be a JSON object, got {type(decoded).__name__}")
    return decoded


