"""Completion provider interface."""

from collections.abc import Sequence
from typing import Protocol

from meetbot.models.conversation import Message
from meetbot.models.llm import CompletionResponse, GenerateOptions, ToolDescriptor


class CompletionProvider(Protocol):
    """A generative model backend that may answer with tool calls."""

    async def generate(
        self,
        conversation: Sequence[Message],
        tools: list[ToolDescriptor],
        options: GenerateOptions,
    ) -> CompletionResponse:
        """Run one model turn.

        Args:
            conversation: Messages so far, system message first
            tools: Tools the model may call
            options: Model identifier, sampling and streaming options

        Returns:
            The turn reduced to text and fully assembled tool calls

        Raises:
            ProviderError: If the backend call fails or its response is malformed
        """
        ...
