"""Conversation, message and tool-call models."""

import json
from collections.abc import Iterator
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from meetbot.errors import ConversationError

Role = Literal["system", "user", "assistant", "tool"]


class ToolCallRequest(BaseModel):
    """A fully assembled request from the model to invoke a tool."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: dict[str, Any]

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": json.dumps(self.arguments)},
        }


class ToolResult(BaseModel):
    """Serialized output of one tool call."""

    model_config = ConfigDict(frozen=True)

    tool_call_id: str
    content: str

    def to_message(self) -> "Message":
        return Message(role="tool", content=self.content, tool_call_id=self.tool_call_id)


class Message(BaseModel):
    """A message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""
    tool_calls: list[ToolCallRequest] | None = None
    tool_call_id: str | None = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: list[ToolCallRequest] | None = None) -> "Message":
        return cls(role="assistant", content=content, tool_calls=tool_calls or None)

    def to_wire(self) -> dict[str, Any]:
        """Render the message in the function-calling chat wire format."""
        wire: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            wire["tool_calls"] = [call.to_wire() for call in self.tool_calls]
        if self.tool_call_id is not None:
            wire["tool_call_id"] = self.tool_call_id
        return wire


class Conversation:
    """Append-only message history owned by a single orchestration run.

    The first message is the system message and no other system message may
    follow it. Every tool message answers a tool call issued by an earlier
    assistant message, and each call is answered at most once.
    """

    def __init__(self, system_prompt: str):
        self._messages: list[Message] = [Message.system(system_prompt)]
        self._open_calls: set[str] = set()
        self._answered_calls: set[str] = set()

    def append(self, message: Message) -> None:
        if message.role == "system":
            raise ConversationError("Conversation already has a system message")

        if message.role == "tool":
            call_id = message.tool_call_id
            if call_id is None:
                raise ConversationError("Tool message is missing tool_call_id")
            if call_id in self._answered_calls:
                raise ConversationError(f"Tool call {call_id!r} was already answered")
            if call_id not in self._open_calls:
                raise ConversationError(f"Tool message references unknown tool call {call_id!r}")
            self._open_calls.discard(call_id)
            self._answered_calls.add(call_id)

        elif message.role == "assistant" and message.tool_calls:
            self._open_calls.update(call.id for call in message.tool_calls)

        self._messages.append(message)

    def extend(self, messages: list[Message]) -> None:
        for message in messages:
            self.append(message)

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def system_prompt(self) -> str:
        return self._messages[0].content

    @property
    def pending_tool_calls(self) -> frozenset[str]:
        """Tool call ids that have not received a result yet."""
        return frozenset(self._open_calls)

    def to_wire(self) -> list[dict[str, Any]]:
        return [message.to_wire() for message in self._messages]

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __len__(self) -> int:
        return len(self._messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]
