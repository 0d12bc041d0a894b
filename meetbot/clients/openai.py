"""OpenAI-compatible chat completions client with streaming tool calls.

Works against the OpenAI API and against local servers that expose the same
``/v1/chat/completions`` endpoint.
"""

import asyncio
import os
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from meetbot.clients.rate_limit import ProviderRateLimiter, TokenEstimator
from meetbot.errors import ProviderError
from meetbot.models.conversation import Message
from meetbot.models.llm import CompletionResponse, GenerateOptions, LLMUsage, ToolDescriptor
from meetbot.services.streaming import StreamAccumulator
from meetbot.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Local servers ignore the key but the SDK requires one
LOCAL_SERVER_API_KEY = "x"


@dataclass
class OpenAIConfig:
    """Configuration for the OpenAI-compatible client."""

    base_url: str | None = None
    max_retries: int = 3
    retry_delay: float = 1.0
    requests_per_minute: int = 50
    tokens_per_minute: int = 40_000


class OpenAIClient:
    """Completion provider backed by a chat completions endpoint."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        config: OpenAIConfig | None = None,
        estimator: TokenEstimator | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.config = config or OpenAIConfig()

        if client is None:
            openai_api_key = api_key or os.getenv("OPENAI_API_KEY")
            if not openai_api_key:
                if not self.config.base_url:
                    raise ValueError("OPENAI_API_KEY environment variable is required")
                openai_api_key = LOCAL_SERVER_API_KEY
            client = AsyncOpenAI(api_key=openai_api_key, base_url=self.config.base_url, max_retries=0)

        self.client = client
        self.estimator = estimator or TokenEstimator()
        self.rate_limiter = ProviderRateLimiter(self.config.requests_per_minute, self.config.tokens_per_minute)

    async def generate(
        self,
        conversation: Sequence[Message],
        tools: list[ToolDescriptor],
        options: GenerateOptions,
    ) -> CompletionResponse:
        """Run one model turn through the chat completions API."""
        messages = [message.to_wire() for message in conversation]

        estimated_tokens = self.estimator.estimate("".join(message.content for message in conversation))
        await self.rate_limiter.check_rate_limit(estimated_tokens, self.provider_name)

        request_params: dict[str, Any] = {
            "model": options.model,
            "messages": messages,
            "max_tokens": options.max_tokens,
        }
        if tools:
            request_params["tools"] = [to_openai_tool(tool) for tool in tools]
        if options.temperature is not None:
            request_params["temperature"] = options.temperature
        if options.top_p is not None:
            request_params["top_p"] = options.top_p
        if options.top_k is not None:
            # Not part of the OpenAI API; honoured by llama.cpp style servers
            request_params["extra_body"] = {"top_k": options.top_k}

        logger.debug(
            f"Making chat completions call with model: {options.model}, {len(messages)} messages, "
            f"{len(tools)} tools, stream={options.stream}"
        )

        try:
            if options.stream:
                stream = await self._request_with_retries(
                    lambda: self.client.chat.completions.create(
                        **request_params, stream=True, stream_options={"include_usage": True}
                    )
                )
                return await self._consume_stream(stream)

            response = await self._request_with_retries(lambda: self.client.chat.completions.create(**request_params))
            return self._convert_response(response)
        except OpenAIError as e:
            raise ProviderError(f"Chat completions request failed: {e}") from e

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute the request, retrying rate limits and server errors."""
        for attempt in range(self.config.max_retries):
            last_attempt = attempt == self.config.max_retries - 1
            try:
                return await call()

            except APIStatusError as e:
                if (e.status_code == 429 or e.status_code >= 500) and not last_attempt:
                    logger.warning(f"Chat completions returned {e.status_code}, retrying")
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue
                raise

            except APIConnectionError:
                if not last_attempt:
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue
                raise

        raise ProviderError(f"Failed to complete request after {self.config.max_retries} attempts")

    async def _consume_stream(self, stream) -> CompletionResponse:
        """Reduce a stream of completion chunks to one response.

        Tool-call fragments carry their id only on the first chunk, later ones
        are matched by index. Calls are finalized when the turn ends.
        """
        accumulator = StreamAccumulator()
        call_ids: dict[int, str] = {}
        usage: LLMUsage | None = None
        stop_reason: str | None = None
        model: str | None = None

        try:
            async for chunk in stream:
                model = chunk.model or model
                if chunk.usage is not None:
                    usage = _convert_usage(chunk.usage)
                if not chunk.choices:
                    continue

                choice = chunk.choices[0]
                delta = choice.delta
                if delta.content:
                    accumulator.add_text(delta.content)

                for tool_call in delta.tool_calls or []:
                    call_id = call_ids.setdefault(tool_call.index, tool_call.id or f"call_{tool_call.index}")
                    function = tool_call.function
                    accumulator.add_tool_call_fragment(
                        call_id,
                        name=function.name if function else None,
                        arguments=(function.arguments or "") if function else "",
                    )

                if choice.finish_reason:
                    stop_reason = choice.finish_reason
        finally:
            await stream.close()

        return accumulator.finish(stop_reason=stop_reason, usage=usage, model=model)

    def _convert_response(self, response) -> CompletionResponse:
        if not response.choices:
            raise ProviderError("Chat completions response has no choices")

        choice = response.choices[0]
        accumulator = StreamAccumulator()
        accumulator.add_text(choice.message.content or "")
        for tool_call in choice.message.tool_calls or []:
            accumulator.add_tool_call_fragment(
                tool_call.id, name=tool_call.function.name, arguments=tool_call.function.arguments
            )

        return accumulator.finish(
            stop_reason=choice.finish_reason,
            usage=_convert_usage(response.usage),
            model=response.model,
        )


def to_openai_tool(tool: ToolDescriptor) -> dict[str, Any]:
    return {
        "type": tool.type,
        "function": {"name": tool.name, "description": tool.description, "parameters": tool.parameters},
    }


def _convert_usage(usage) -> LLMUsage | None:
    if usage is None:
        return None
    return LLMUsage(
        input_tokens=usage.prompt_tokens or 0,
        output_tokens=usage.completion_tokens or 0,
        total_tokens=usage.total_tokens or 0,
    )
