"""Conversation service wiring the calendar, tools and completion provider."""

from meetbot.clients.base import CompletionProvider
from meetbot.clients.factory import create_completion_provider
from meetbot.config import Settings
from meetbot.models.llm import AgentLoopResult
from meetbot.prompts import load_system_prompt
from meetbot.services.calendar import CalendarDataProvider, InMemoryCalendarService
from meetbot.services.orchestrator import ConversationOrchestrator
from meetbot.tools.dispatcher import ToolDispatcher
from meetbot.tools.registry import ToolsRegistry
from meetbot.utils.logging import get_logger

logger = get_logger(__name__)

MAX_MESSAGE_CHARS = 4000  # Roughly 1000 tokens


class ConversationService:
    """Entry point for answering scheduling questions."""

    def __init__(self, orchestrator: ConversationOrchestrator):
        self.orchestrator = orchestrator

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: CompletionProvider | None = None,
        calendar: CalendarDataProvider | None = None,
    ) -> "ConversationService":
        """Build the service and all its collaborators.

        Raises:
            StartupDataError: If the meeting table cannot be loaded
            ValueError: If the provider is missing its API key
        """
        calendar = calendar or InMemoryCalendarService.from_csv(settings.meetings_file)
        registry = ToolsRegistry.for_calendar(calendar)
        orchestrator = ConversationOrchestrator(
            provider=provider or create_completion_provider(settings),
            dispatcher=ToolDispatcher(registry),
            options=settings.generate_options(),
            system_prompt=load_system_prompt(settings.system_prompt_file),
            max_rounds=settings.max_rounds,
            round_timeout=settings.round_timeout,
        )
        logger.info(
            f"ConversationService initialized with provider {settings.provider}, model {settings.model_name}, "
            f"tools {registry.get_tool_names()}"
        )
        return cls(orchestrator)

    async def process_message(self, message: str) -> AgentLoopResult:
        """Answer one user message in a new conversation.

        Raises:
            ValueError: If the message is empty or too long
        """
        self._validate_message(message)
        logger.info(f"Processing message: {message[:50]}...")

        result = await self.orchestrator.execute(message)

        logger.info(
            f"Token usage - Input: {result.usage.input_tokens}, Output: {result.usage.output_tokens}, "
            f"Cache hits: {result.usage.cache_read_input_tokens}"
        )
        return result

    def _validate_message(self, message: str) -> None:
        if not message.strip():
            raise ValueError("Message cannot be empty.")
        if len(message) > MAX_MESSAGE_CHARS:
            raise ValueError(f"Your message is too long. Please keep messages under {MAX_MESSAGE_CHARS} characters.")


_conversation_service: ConversationService | None = None


def get_conversation_service() -> ConversationService:
    """Get or create the process-wide conversation service."""
    global _conversation_service
    if _conversation_service is None:
        _conversation_service = ConversationService.from_settings(Settings.from_env())
    return _conversation_service
