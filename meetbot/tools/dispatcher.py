"""Tool dispatch: from a model's tool call to a tool-result message."""

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from meetbot.errors import InvalidArguments, UnsupportedTool
from meetbot.models.conversation import Message, ToolCallRequest, ToolResult
from meetbot.tools.base import ToolDefinition, decode_arguments
from meetbot.tools.registry import ToolsRegistry
from meetbot.utils.logging import get_logger


class ToolDispatcher:
    """Executes tool calls against the registered tools."""

    def __init__(self, registry: ToolsRegistry, logger: logging.Logger | None = None):
        self.registry = registry
        self.logger = logger or get_logger(__name__)

    def resolve(self, name: str) -> ToolDefinition:
        """Look up a tool by name.

        Raises:
            UnsupportedTool: If no tool with that name is registered
        """
        tool = self.registry.get_tool(name)
        if tool is None:
            self.logger.error(f"Unknown tool requested: {name}")
            raise UnsupportedTool(name)
        return tool

    async def dispatch(self, name: str, arguments: dict[str, Any] | str) -> str:
        """Run one tool and return its serialized result.

        Args:
            name: Tool name requested by the model
            arguments: Decoded arguments object, or its JSON text

        Returns:
            The tool's serialized result

        Raises:
            UnsupportedTool: If the tool is not registered
            InvalidArguments: If the arguments do not decode or validate
        """
        tool = self.resolve(name)

        if isinstance(arguments, str):
            arguments = decode_arguments(name, arguments)

        try:
            params = tool.parse_input(arguments)
        except ValidationError as e:
            raise InvalidArguments(name, _describe_validation_error(e)) from e

        self.logger.debug(f"Executing tool: {name} with input: {arguments}")
        result = await tool.handler(params)
        self.logger.debug(f"Tool {name} succeeded: {result[:100]}")
        return result

    async def execute(self, call: ToolCallRequest) -> ToolResult:
        content = await self.dispatch(call.name, call.arguments)
        return ToolResult(tool_call_id=call.id, content=content)

    async def dispatch_all(self, calls: list[ToolCallRequest]) -> list[Message]:
        """Run a batch of tool calls concurrently.

        Every tool name is resolved before any tool runs. Results come back as
        tool messages in the order the calls were issued.
        """
        for call in calls:
            self.resolve(call.name)

        tasks = [asyncio.ensure_future(self.execute(call)) for call in calls]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return [result.to_message() for result in results]


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)
