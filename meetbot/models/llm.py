"""LLM-related data models and types (provider-agnostic)."""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, Field

from meetbot.models.conversation import Message, ToolCallRequest


class ToolDescriptor(BaseModel):
    """Tool definition advertised to the completion provider."""

    type: Literal["function"] = "function"
    name: str
    description: str
    parameters: dict[str, Any]


class GenerateOptions(BaseModel):
    """Sampling and transport options for one provider call."""

    model: str
    temperature: float | None = Field(default=0.1, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, gt=0.0, le=1.0)
    top_k: int | None = Field(default=None, gt=0)
    max_tokens: int = Field(default=1000, gt=0)
    stream: bool = True


@dataclass
class LLMUsage:
    """Token/resource usage information from LLM provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    def add(self, other: "LLMUsage | None") -> None:
        if other is None:
            return
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.total_tokens += other.total_tokens
        self.cache_creation_input_tokens += other.cache_creation_input_tokens
        self.cache_read_input_tokens += other.cache_read_input_tokens

    @property
    def cache_hit_rate(self) -> float:
        """Calculate cache hit rate as percentage."""
        total_input = self.input_tokens + self.cache_read_input_tokens + self.cache_creation_input_tokens
        if total_input == 0:
            return 0.0
        return (self.cache_read_input_tokens / total_input) * 100


@dataclass
class CompletionResponse:
    """One provider turn reduced to text plus fully assembled tool calls.

    Whole and streamed responses both end up in this shape.
    """

    text: str
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    stop_reason: str | None = None
    usage: LLMUsage | None = None
    model: str | None = None

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)


@dataclass
class AgentLoopResult:
    """Result from executing an agent loop."""

    text: str
    stop_reason: str | None
    messages: tuple[Message, ...]
    rounds: int
    tool_calls: int
    usage: LLMUsage
