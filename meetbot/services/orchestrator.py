"""Tool-calling conversation loop."""

import asyncio
import logging
from enum import StrEnum

from meetbot.clients.base import CompletionProvider
from meetbot.errors import MaxRoundsExceeded, MeetbotError, ProviderError, ProviderTimeoutError
from meetbot.models.conversation import Conversation, Message
from meetbot.models.llm import AgentLoopResult, CompletionResponse, GenerateOptions, LLMUsage
from meetbot.prompts import SYSTEM_PROMPT
from meetbot.tools.dispatcher import ToolDispatcher
from meetbot.utils.logging import get_logger


class LoopState(StrEnum):
    INIT = "init"
    AWAITING_MODEL = "awaiting_model"
    TOOL_EXECUTING = "tool_executing"
    DONE = "done"
    ERROR = "error"


class ConversationRun:
    """Conversation and bookkeeping for a single orchestration run."""

    def __init__(self, system_prompt: str, prompt: str):
        self.conversation = Conversation(system_prompt)
        self.conversation.append(Message.user(prompt))
        self.state = LoopState.INIT
        self.rounds = 0
        self.tool_calls = 0
        self.usage = LLMUsage()
        self.history: list[LoopState] = [LoopState.INIT]

    def transition(self, state: LoopState) -> None:
        self.state = state
        self.history.append(state)


class ConversationOrchestrator:
    """Drives the model until it answers without requesting tools.

    Each round sends the whole conversation to the completion provider. Tool
    calls in the reply are dispatched and their results appended in request
    order before the next round. Any error ends the run.
    """

    def __init__(
        self,
        provider: CompletionProvider,
        dispatcher: ToolDispatcher,
        options: GenerateOptions,
        system_prompt: str = SYSTEM_PROMPT,
        max_rounds: int | None = 10,
        round_timeout: float | None = None,
        logger: logging.Logger | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            provider: Completion provider to call each round
            dispatcher: Executes the tool calls the model requests
            options: Model and sampling options for every round
            system_prompt: First message of every conversation
            max_rounds: Maximum provider calls per run, None for no limit
            round_timeout: Seconds allowed for each provider call, None for no limit
            logger: Logger for run progress
        """
        if max_rounds is not None and max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")

        self.provider = provider
        self.dispatcher = dispatcher
        self.options = options
        self.system_prompt = system_prompt
        self.max_rounds = max_rounds
        self.round_timeout = round_timeout
        self.logger = logger or get_logger(__name__)
        self.tools = dispatcher.registry.get_descriptors()

    async def run(self, prompt: str) -> str:
        """Answer a user prompt, returning the model's final text."""
        result = await self.execute(prompt)
        return result.text

    async def execute(self, prompt: str) -> AgentLoopResult:
        """Answer a user prompt in a fresh conversation."""
        return await self.drive(self.new_run(prompt))

    def new_run(self, prompt: str) -> ConversationRun:
        return ConversationRun(self.system_prompt, prompt)

    async def drive(self, run: ConversationRun) -> AgentLoopResult:
        """Execute the tool-calling loop for a seeded run.

        Returns:
            Final text, conversation and usage of the run

        Raises:
            ProviderError: The provider call failed
            ProviderTimeoutError: A round exceeded round_timeout
            UnsupportedTool: The model asked for an unregistered tool
            InvalidArguments: A tool call's arguments did not validate
            MaxRoundsExceeded: The model still wanted tools after max_rounds
        """
        if run.state != LoopState.INIT:
            raise ValueError(f"Run already started (state {run.state})")

        self.logger.info(
            f"Starting agent loop with {len(self.tools)} tools, max_rounds: {self.max_rounds}, "
            f"stream: {self.options.stream}"
        )
        try:
            return await self._loop(run)
        except BaseException as e:
            run.transition(LoopState.ERROR)
            if isinstance(e, MeetbotError):
                self.logger.error(f"Agent loop failed in round {run.rounds}: {e}")
            raise

    async def _loop(self, run: ConversationRun) -> AgentLoopResult:
        while True:
            run.rounds += 1
            run.transition(LoopState.AWAITING_MODEL)
            self.logger.debug(f"Agent loop round {run.rounds}/{self.max_rounds or 'unbounded'}")

            response = await self._generate(run)
            run.usage.add(response.usage)

            if not response.tool_calls:
                run.conversation.append(Message.assistant(response.text))
                run.transition(LoopState.DONE)
                self.logger.info(f"Agent loop completed in {run.rounds} rounds with {run.tool_calls} tool calls")
                return AgentLoopResult(
                    text=response.text,
                    stop_reason=response.stop_reason,
                    messages=run.conversation.messages,
                    rounds=run.rounds,
                    tool_calls=run.tool_calls,
                    usage=run.usage,
                )

            if self.max_rounds is not None and run.rounds >= self.max_rounds:
                raise MaxRoundsExceeded(self.max_rounds)

            self.logger.info(f"LLM wants to use {len(response.tool_calls)} tools")
            run.conversation.append(Message.assistant(response.text, response.tool_calls))

            run.transition(LoopState.TOOL_EXECUTING)
            tool_messages = await self.dispatcher.dispatch_all(response.tool_calls)
            run.conversation.extend(tool_messages)
            run.tool_calls += len(tool_messages)

    async def _generate(self, run: ConversationRun) -> CompletionResponse:
        try:
            async with asyncio.timeout(self.round_timeout):
                return await self.provider.generate(run.conversation.messages, self.tools, self.options)
        except MeetbotError:
            raise
        except TimeoutError as e:
            raise ProviderTimeoutError(f"Round {run.rounds} exceeded {self.round_timeout}s") from e
        except Exception as e:
            raise ProviderError(f"Completion provider failed: {e}") from e
