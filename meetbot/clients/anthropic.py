"""Anthropic API client with rate limiting, retries and streaming tool calls."""

import asyncio
import json
import os
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

from anthropic import APIConnectionError, APIError, APIStatusError, AsyncAnthropic
from pydantic import BaseModel, ValidationError

from meetbot.clients.rate_limit import ProviderRateLimiter, TokenEstimator
from meetbot.errors import ProviderError
from meetbot.models.conversation import Message
from meetbot.models.llm import CompletionResponse, GenerateOptions, LLMUsage, ToolDescriptor
from meetbot.services.streaming import StreamAccumulator
from meetbot.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


# Content block types
class TextBlock(BaseModel):
    """Text content block."""

    type: Literal["text"] = "text"
    text: str

    class Config:
        extra = "ignore"  # Ignore any additional fields from Anthropic


class ToolUseBlock(BaseModel):
    """Tool use content block."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]

    class Config:
        extra = "ignore"


class ToolResultBlock(BaseModel):
    """Tool result content block."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False

    class Config:
        extra = "ignore"


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock


class AnthropicMessage(BaseModel):
    """Message format for Anthropic API."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]


class AnthropicTool(BaseModel):
    """Tool definition for Anthropic API."""

    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    max_retries: int = 3
    retry_delay: float = 1.0
    requests_per_minute: int = 50
    tokens_per_minute: int = 40_000


class AnthropicClient:
    """Completion provider backed by the Anthropic Messages API."""

    provider_name = "anthropic"

    def __init__(
        self,
        api_key: str | None = None,
        config: AnthropicConfig | None = None,
        estimator: TokenEstimator | None = None,
        client: AsyncAnthropic | None = None,
    ):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Client configuration
            estimator: Token estimator used for rate limiting
            client: Preconfigured SDK client
        """
        self.config = config or AnthropicConfig()

        if client is None:
            anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
            if not anthropic_api_key:
                raise ValueError("ANTHROPIC_API_KEY environment variable is required")
            # Retries are handled by _request_with_retries
            client = AsyncAnthropic(api_key=anthropic_api_key, max_retries=0)

        self.client = client
        self.estimator = estimator or TokenEstimator()
        self.rate_limiter = ProviderRateLimiter(self.config.requests_per_minute, self.config.tokens_per_minute)

    async def generate(
        self,
        conversation: Sequence[Message],
        tools: list[ToolDescriptor],
        options: GenerateOptions,
    ) -> CompletionResponse:
        """Run one model turn through the Messages API."""
        system_prompt, messages = to_anthropic_messages(conversation)
        anthropic_tools = [
            AnthropicTool(name=tool.name, description=tool.description, input_schema=tool.parameters)
            for tool in tools
        ]

        estimated_tokens = self._estimate_tokens(messages, system_prompt)
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens, self.provider_name)

        request_params: dict[str, Any] = {
            "model": options.model,
            "max_tokens": options.max_tokens,
            "system": system_prompt,
            "messages": [msg.model_dump() for msg in messages],
        }
        if anthropic_tools:
            request_params["tools"] = [tool.model_dump() for tool in anthropic_tools]
        for name in ("temperature", "top_p", "top_k"):
            value = getattr(options, name)
            if value is not None:
                request_params[name] = value

        logger.debug(
            f"Making Anthropic API call with model: {options.model}, {len(messages)} messages, "
            f"{len(anthropic_tools)} tools, stream={options.stream}"
        )

        try:
            if options.stream:
                stream = await self._request_with_retries(
                    lambda: self.client.messages.create(**request_params, stream=True)
                )
                return await self._consume_stream(stream)

            response = await self._request_with_retries(lambda: self.client.messages.create(**request_params))
            return self._convert_response(response)
        except APIError as e:
            raise ProviderError(f"Anthropic request failed: {e}") from e

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute Anthropic API request with retry logic."""
        for attempt in range(self.config.max_retries):
            try:
                return await call()

            except APIStatusError as e:
                if e.status_code == 429:
                    retry_after = int(e.response.headers.get("retry-after", 60))
                    if retry_after < 120 and attempt < self.config.max_retries - 1:
                        logger.warning(f"Anthropic rate limited, retrying in {retry_after}s")
                        await asyncio.sleep(retry_after)
                        continue

                elif e.status_code >= 500 and attempt < self.config.max_retries - 1:
                    # Server error, retry with exponential backoff
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue

                raise

            except APIConnectionError:
                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue
                raise

        raise ProviderError(f"Failed to complete request after {self.config.max_retries} attempts")

    async def _consume_stream(self, stream) -> CompletionResponse:
        """Reduce a stream of Messages API events to one response.

        The stream is read to the end and closed afterwards. It is also
        closed when reading fails or the caller is cancelled mid-stream.
        """
        accumulator = StreamAccumulator()
        # Content block index -> tool_use id
        block_ids: dict[int, str] = {}
        usage = LLMUsage()
        stop_reason: str | None = None
        model: str | None = None

        try:
            async for event in stream:
                if event.type == "message_start":
                    model = event.message.model
                    usage.add(_convert_usage(event.message.usage))

                elif event.type == "content_block_start":
                    block = event.content_block
                    if block.type == "tool_use":
                        block_ids[event.index] = block.id
                        accumulator.add_tool_call_fragment(block.id, name=block.name)
                    elif block.type == "text":
                        accumulator.add_text(block.text)

                elif event.type == "content_block_delta":
                    delta = event.delta
                    if delta.type == "text_delta":
                        accumulator.add_text(delta.text)
                    elif delta.type == "input_json_delta":
                        call_id = block_ids.get(event.index)
                        if call_id is None:
                            raise ProviderError(f"Argument delta for unknown content block {event.index}")
                        accumulator.add_tool_call_fragment(call_id, arguments=delta.partial_json)

                elif event.type == "content_block_stop":
                    if event.index in block_ids:
                        accumulator.finalize_tool_call(block_ids[event.index])

                elif event.type == "message_delta":
                    stop_reason = event.delta.stop_reason
                    if event.usage is not None:
                        # Cumulative for the whole message
                        usage.output_tokens = event.usage.output_tokens
        finally:
            await stream.close()

        usage.total_tokens = usage.input_tokens + usage.output_tokens
        logger.debug(f"Stream finished - Stop reason: {stop_reason}, tool calls: {len(block_ids)}")
        return accumulator.finish(stop_reason=stop_reason, usage=usage, model=model)

    def _convert_response(self, response) -> CompletionResponse:
        """Reduce a whole Messages API response to text and tool calls."""
        accumulator = StreamAccumulator()
        for block in self._convert_content_blocks(response.content):
            if isinstance(block, TextBlock):
                accumulator.add_text(block.text)
            elif isinstance(block, ToolUseBlock):
                accumulator.add_tool_call_fragment(block.id, name=block.name, arguments=json.dumps(block.input))
                accumulator.finalize_tool_call(block.id)

        logger.debug(
            f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}"
        )
        return accumulator.finish(
            stop_reason=response.stop_reason,
            usage=_convert_usage(response.usage),
            model=response.model,
        )

    def _convert_content_blocks(self, anthropic_content: list[Any]) -> list[ContentBlock]:
        """Convert Anthropic content blocks to our ContentBlock types."""
        converted_blocks: list[ContentBlock] = []
        for block in anthropic_content:
            block_dict = block.model_dump() if hasattr(block, "model_dump") else dict(block)

            try:
                if block_dict.get("type") == "text":
                    converted_blocks.append(TextBlock.model_validate(block_dict))
                elif block_dict.get("type") == "tool_use":
                    converted_blocks.append(ToolUseBlock.model_validate(block_dict))
                else:
                    logger.warning(f"Unknown content block type: {block_dict.get('type')}")
            except ValidationError as e:
                raise ProviderError(f"Malformed content block from Anthropic: {e}") from e

        return converted_blocks

    def _estimate_tokens(self, messages: list[AnthropicMessage], system_prompt: str) -> int:
        """Estimate token count for rate limiting."""
        text_content = system_prompt

        for message in messages:
            if isinstance(message.content, str):
                text_content += message.content
                continue
            for item in message.content:
                if isinstance(item, TextBlock):
                    text_content += item.text
                elif isinstance(item, ToolResultBlock):
                    text_content += item.content
                elif isinstance(item, ToolUseBlock):
                    text_content += json.dumps(item.input)

        return self.estimator.estimate(text_content)


def to_anthropic_messages(conversation: Sequence[Message]) -> tuple[str, list[AnthropicMessage]]:
    """Split a conversation into the system prompt and Messages API turns.

    Assistant tool calls become ``tool_use`` blocks. Consecutive tool messages
    are grouped into a single user turn of ``tool_result`` blocks.
    """
    system_prompt = ""
    messages: list[AnthropicMessage] = []

    for message in conversation:
        if message.role == "system":
            system_prompt = message.content

        elif message.role == "user":
            messages.append(AnthropicMessage(role="user", content=message.content))

        elif message.role == "assistant":
            blocks: list[ContentBlock] = []
            if message.content:
                blocks.append(TextBlock(text=message.content))
            for call in message.tool_calls or []:
                blocks.append(ToolUseBlock(id=call.id, name=call.name, input=call.arguments))
            messages.append(AnthropicMessage(role="assistant", content=blocks or message.content))

        elif message.role == "tool":
            block = ToolResultBlock(tool_use_id=message.tool_call_id or "", content=message.content)
            previous = messages[-1] if messages else None
            if (
                previous is not None
                and previous.role == "user"
                and isinstance(previous.content, list)
                and all(isinstance(item, ToolResultBlock) for item in previous.content)
            ):
                previous.content.append(block)
            else:
                messages.append(AnthropicMessage(role="user", content=[block]))

    return system_prompt, messages


def _convert_usage(usage) -> LLMUsage:
    if usage is None:
        return LLMUsage()
    input_tokens = usage.input_tokens or 0
    output_tokens = usage.output_tokens or 0
    return LLMUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
        cache_creation_input_tokens=getattr(usage, "cache_creation_input_tokens", None) or 0,
        cache_read_input_tokens=getattr(usage, "cache_read_input_tokens", None) or 0,
    )
