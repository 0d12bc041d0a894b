"""Reduction of streamed completion deltas into a single response."""

from dataclasses import dataclass, field

from meetbot.errors import ProviderError
from meetbot.models.conversation import ToolCallRequest
from meetbot.models.llm import CompletionResponse, LLMUsage
from meetbot.tools.base import decode_arguments


@dataclass
class _PartialToolCall:
    id: str
    name: str | None = None
    fragments: list[str] = field(default_factory=list)


class StreamAccumulator:
    """Collects text and tool-call fragments from one streamed turn.

    Text fragments are concatenated in arrival order. Argument fragments are
    concatenated per call id. A call only becomes a ``ToolCallRequest`` once it
    is finalized, either explicitly when the provider closes that call or
    implicitly when the turn ends, so partially streamed arguments are never
    handed out.
    """

    def __init__(self) -> None:
        self._text_parts: list[str] = []
        self._pending: dict[str, _PartialToolCall] = {}
        self._finalized: dict[str, ToolCallRequest] = {}
        # Calls in the order they were first seen
        self._order: list[str] = []
        self._finished = False

    def add_text(self, fragment: str) -> None:
        self._check_open()
        if fragment:
            self._text_parts.append(fragment)

    def add_tool_call_fragment(self, call_id: str, *, name: str | None = None, arguments: str = "") -> None:
        """Record part of a tool call; the first fragment for an id opens it."""
        self._check_open()
        if call_id in self._finalized:
            raise ProviderError(f"Received arguments for tool call {call_id!r} after it was closed")

        partial = self._pending.get(call_id)
        if partial is None:
            partial = self._pending[call_id] = _PartialToolCall(id=call_id)
            self._order.append(call_id)

        if name:
            partial.name = name
        if arguments:
            partial.fragments.append(arguments)

    def finalize_tool_call(self, call_id: str) -> ToolCallRequest:
        """Close a tool call and decode its accumulated arguments.

        Raises:
            ProviderError: If the call was never opened or has no name
            InvalidArguments: If the assembled arguments are not a JSON object
        """
        if call_id in self._finalized:
            return self._finalized[call_id]

        partial = self._pending.pop(call_id, None)
        if partial is None:
            raise ProviderError(f"Stream closed unknown tool call {call_id!r}")
        if not partial.name:
            raise ProviderError(f"Tool call {call_id!r} ended without a function name")

        request = ToolCallRequest(
            id=partial.id,
            name=partial.name,
            arguments=decode_arguments(partial.name, "".join(partial.fragments)),
        )
        self._finalized[call_id] = request
        return request

    def finish(
        self,
        stop_reason: str | None = None,
        usage: LLMUsage | None = None,
        model: str | None = None,
    ) -> CompletionResponse:
        """End the turn, finalizing any calls still open."""
        for call_id in list(self._pending):
            self.finalize_tool_call(call_id)
        self._finished = True

        return CompletionResponse(
            text=self.text,
            tool_calls=[self._finalized[call_id] for call_id in self._order],
            stop_reason=stop_reason,
            usage=usage,
            model=model,
        )

    @property
    def text(self) -> str:
        return "".join(self._text_parts)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self._order)

    @property
    def open_tool_calls(self) -> list[str]:
        return [call_id for call_id in self._order if call_id in self._pending]

    def _check_open(self) -> None:
        if self._finished:
            raise ProviderError("Received stream data after the turn ended")
