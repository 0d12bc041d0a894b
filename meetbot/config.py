"""Runtime configuration read from the environment."""

import os
from typing import Literal

from pydantic import BaseModel, Field

from meetbot.models.llm import GenerateOptions

Provider = Literal["anthropic", "openai"]

DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-3-5-sonnet-20241022",
    "openai": "gpt-4o-mini",
}


class Settings(BaseModel):
    """Settings for a scheduling assistant process."""

    provider: Provider = "anthropic"
    model: str | None = None
    temperature: float | None = Field(default=0.1, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, gt=0.0, le=1.0)
    top_k: int | None = Field(default=None, gt=0)
    max_tokens: int = Field(default=1000, gt=0)
    stream: bool = True

    # None means no limit on tool-calling rounds
    max_rounds: int | None = Field(default=10, gt=0)
    round_timeout: float | None = Field(default=60.0, gt=0)

    base_url: str | None = None
    meetings_file: str | None = None
    system_prompt_file: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Build settings from MEETBOT_* variables, then apply overrides."""
        values: dict[str, object] = {}

        env_map = {
            "provider": "MEETBOT_PROVIDER",
            "model": "MEETBOT_MODEL",
            "temperature": "MEETBOT_TEMPERATURE",
            "top_p": "MEETBOT_TOP_P",
            "top_k": "MEETBOT_TOP_K",
            "max_tokens": "MEETBOT_MAX_TOKENS",
            "stream": "MEETBOT_STREAM",
            "round_timeout": "MEETBOT_ROUND_TIMEOUT",
            "meetings_file": "MEETBOT_MEETINGS_FILE",
            "system_prompt_file": "MEETBOT_SYSTEM_PROMPT_FILE",
            "log_level": "LOG_LEVEL",
        }
        for field_name, variable in env_map.items():
            raw = os.getenv(variable)
            if raw:
                values[field_name] = raw

        max_rounds = os.getenv("MEETBOT_MAX_ROUNDS")
        if max_rounds:
            values["max_rounds"] = max_rounds.strip()

        base_url = os.getenv("MEETBOT_BASE_URL")
        if not base_url and os.getenv("KRONK_WEB_API_HOST"):
            base_url = os.getenv("KRONK_WEB_API_HOST", "").rstrip("/") + "/v1"
        if base_url:
            values["base_url"] = base_url

        values.update({key: value for key, value in overrides.items() if value is not None})
        # 0 lifts the round limit
        if values.get("max_rounds") in (0, "0"):
            values["max_rounds"] = None
        return cls.model_validate(values)

    @property
    def model_name(self) -> str:
        return self.model or DEFAULT_MODELS[self.provider]

    def generate_options(self) -> GenerateOptions:
        return GenerateOptions(
            model=self.model_name,
            temperature=self.temperature,
            top_p=self.top_p,
            top_k=self.top_k,
            max_tokens=self.max_tokens,
            stream=self.stream,
        )
