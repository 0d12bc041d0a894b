"""Tests for settings, prompts and provider construction."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from meetbot.clients.anthropic import AnthropicClient
from meetbot.clients.factory import create_completion_provider
from meetbot.clients.openai import OpenAIClient
from meetbot.config import Settings
from meetbot.prompts import SYSTEM_PROMPT, load_system_prompt


class TestSettings:
    """Tests for Settings.from_env."""

    def test_defaults(self):
        """Test the defaults with an empty environment."""
        with patch.dict("os.environ", {}, clear=True):
            settings = Settings.from_env()

        assert settings.provider == "anthropic"
        assert settings.model_name == "claude-3-5-sonnet-20241022"
        assert settings.max_rounds == 10
        assert settings.round_timeout == 60.0
        assert settings.stream is True
        assert settings.base_url is None

    def test_environment_values(self):
        """Test that MEETBOT_* variables are parsed into typed fields."""
        env = {
            "MEETBOT_PROVIDER": "openai",
            "MEETBOT_MODEL": "qwen3-8b",
            "MEETBOT_TEMPERATURE": "0.5",
            "MEETBOT_TOP_K": "1",
            "MEETBOT_STREAM": "false",
            "MEETBOT_MAX_ROUNDS": "4",
            "MEETBOT_BASE_URL": "http://localhost:8080/v1",
        }
        with patch.dict("os.environ", env, clear=True):
            settings = Settings.from_env()

        assert settings.provider == "openai"
        assert settings.model_name == "qwen3-8b"
        assert settings.temperature == 0.5
        assert settings.top_k == 1
        assert settings.stream is False
        assert settings.max_rounds == 4
        assert settings.base_url == "http://localhost:8080/v1"

    def test_base_url_from_local_server_host(self):
        """Test the fallback to KRONK_WEB_API_HOST."""
        with patch.dict("os.environ", {"KRONK_WEB_API_HOST": "http://localhost:11435/"}, clear=True):
            settings = Settings.from_env()

        assert settings.base_url == "http://localhost:11435/v1"

    def test_overrides_win_and_none_is_ignored(self):
        """Test that explicit overrides replace environment values."""
        with patch.dict("os.environ", {"MEETBOT_MAX_ROUNDS": "4"}, clear=True):
            settings = Settings.from_env(max_rounds=2, model=None)

        assert settings.max_rounds == 2
        assert settings.model is None

    @pytest.mark.parametrize("value", ["0", 0])
    def test_zero_rounds_means_unbounded(self, value):
        """Test that a round limit of zero lifts the limit."""
        with patch.dict("os.environ", {}, clear=True):
            assert Settings.from_env(max_rounds=value).max_rounds is None

    @pytest.mark.parametrize(
        "variable, value",
        [("MEETBOT_PROVIDER", "gemini"), ("MEETBOT_TEMPERATURE", "hot"), ("MEETBOT_MAX_ROUNDS", "-1")],
    )
    def test_invalid_values(self, variable, value):
        """Test that malformed configuration is rejected."""
        with patch.dict("os.environ", {variable: value}, clear=True):
            with pytest.raises(ValidationError):
                Settings.from_env()

    def test_generate_options(self):
        """Test conversion to per-call options."""
        settings = Settings(provider="openai", top_p=0.1, max_tokens=512, stream=False)
        options = settings.generate_options()

        assert options.model == "gpt-4o-mini"
        assert options.top_p == 0.1
        assert options.max_tokens == 512
        assert options.stream is False


class TestSystemPrompt:
    """Tests for load_system_prompt."""

    def test_default_prompt(self):
        assert load_system_prompt() == SYSTEM_PROMPT
        assert "meetings" in SYSTEM_PROMPT

    def test_prompt_from_file(self, tmp_path):
        path = tmp_path / "prompt.md"
        path.write_text("  Only answer in French.\n")

        assert load_system_prompt(path) == "Only answer in French."

    def test_empty_prompt_file(self, tmp_path):
        path = tmp_path / "prompt.md"
        path.write_text("\n")

        with pytest.raises(ValueError, match="empty"):
            load_system_prompt(path)


class TestProviderFactory:
    """Tests for create_completion_provider."""

    def test_openai_compatible_local_server(self):
        """Test that the openai provider targets the configured base URL."""
        with patch.dict("os.environ", {}, clear=True):
            provider = create_completion_provider(Settings(provider="openai", base_url="http://localhost:8080/v1"))

        assert isinstance(provider, OpenAIClient)
        assert provider.config.base_url == "http://localhost:8080/v1"

    def test_anthropic(self):
        with patch.dict("os.environ", {"ANTHROPIC_API_KEY": "test-key"}, clear=True):
            provider = create_completion_provider(Settings())

        assert isinstance(provider, AnthropicClient)

    def test_anthropic_without_key(self):
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
                create_completion_provider(Settings())
