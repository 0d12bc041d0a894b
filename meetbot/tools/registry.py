"""Tools registry for the scheduling assistant."""

from meetbot.models.llm import ToolDescriptor
from meetbot.services.calendar import CalendarDataProvider
from meetbot.tools.base import ToolDefinition
from meetbot.tools.meetings import create_meetings_tool


class ToolsRegistry:
    """Registry of tools advertised to the model."""

    def __init__(self, tools: list[ToolDefinition] | None = None):
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools or []:
            self.register_tool(tool)

    @classmethod
    def for_calendar(cls, calendar: CalendarDataProvider) -> "ToolsRegistry":
        """Registry with the default scheduling tools bound to a calendar."""
        return cls([create_meetings_tool(calendar)])

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a new tool in the registry."""
        if tool.name in self._tools:
            raise ValueError(f"Tool {tool.name!r} is already registered")
        self._tools[tool.name] = tool

    def get_tool(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def get_descriptors(self) -> list[ToolDescriptor]:
        """Get the tool descriptors sent to the completion provider."""
        return [tool.to_descriptor() for tool in self._tools.values()]

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
