"""Construction of the configured completion provider."""

from meetbot.clients.anthropic import AnthropicClient
from meetbot.clients.base import CompletionProvider
from meetbot.clients.openai import OpenAIClient, OpenAIConfig
from meetbot.config import Settings


def create_completion_provider(settings: Settings) -> CompletionProvider:
    """Create the client for settings.provider.

    Raises:
        ValueError: If the provider's API key is missing
    """
    if settings.provider == "openai":
        return OpenAIClient(config=OpenAIConfig(base_url=settings.base_url))
    return AnthropicClient()
