"""Fakes and builders shared by the tests."""

import asyncio
from datetime import UTC, datetime

from meetbot.models.conversation import ToolCallRequest
from meetbot.models.llm import CompletionResponse, LLMUsage


class ScriptedProvider:
    """Completion provider that replays canned responses in order."""

    def __init__(self, responses, delay: float = 0.0):
        self.responses = list(responses)
        self.delay = delay
        self.calls: list[dict] = []

    async def generate(self, conversation, tools, options):
        self.calls.append({"conversation": list(conversation), "tools": list(tools), "options": options})
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.responses:
            raise AssertionError("Provider called more times than scripted")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


def text_response(text: str) -> CompletionResponse:
    return CompletionResponse(text=text, stop_reason="end_turn", usage=LLMUsage(input_tokens=10, output_tokens=5))


def tool_response(*calls: tuple[str, str, dict], text: str = "") -> CompletionResponse:
    return CompletionResponse(
        text=text,
        tool_calls=[ToolCallRequest(id=call_id, name=name, arguments=args) for call_id, name, args in calls],
        stop_reason="tool_use",
        usage=LLMUsage(input_tokens=10, output_tokens=5),
    )


def utc(text: str) -> datetime:
    return datetime.strptime(text, "%Y-%m-%d %H:%M").replace(tzinfo=UTC)
