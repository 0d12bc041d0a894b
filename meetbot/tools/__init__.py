"""Tools the model can call during a scheduling conversation."""

from meetbot.tools.dispatcher import ToolDispatcher
from meetbot.tools.registry import ToolsRegistry

__all__ = ["ToolDispatcher", "ToolsRegistry"]
