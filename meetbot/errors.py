"""Error taxonomy for a scheduling conversation run."""


class MeetbotError(Exception):
    """Base class for all errors raised by meetbot."""


class ProviderError(MeetbotError):
    """The completion provider call failed or returned a malformed response."""


class InvalidArguments(MeetbotError):
    """A tool call's arguments failed to parse or validate."""

    def __init__(self, tool_name: str, detail: str):
        self.tool_name = tool_name
        self.detail = detail
        super().__init__(f"Invalid arguments for tool {tool_name!r}: {detail}")


class UnsupportedTool(MeetbotError):
    """The model requested a tool that is not in the registry."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unsupported tool: {tool_name!r}")


class ProviderTimeoutError(MeetbotError, TimeoutError):
    """A round with the completion provider exceeded its time budget."""


class MaxRoundsExceeded(MeetbotError):
    """The model kept requesting tools past the configured round limit."""

    def __init__(self, max_rounds: int):
        self.max_rounds = max_rounds
        super().__init__(f"Model still requested tools after {max_rounds} rounds")


class ConversationError(MeetbotError):
    """A message would break the conversation's ordering rules."""


class StartupDataError(MeetbotError):
    """The static calendar table could not be loaded."""
