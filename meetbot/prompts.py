"""Prompts for the scheduling assistant."""

from pathlib import Path

from meetbot.utils.logging import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are a scheduling assistant that helps people find meeting times.

## Tools
- `meetings(user, date)` returns the busy intervals of one user on one day as a JSON list
  of records with `User`, `Start` and `End` timestamps. Dates use the YYYY-MM-DD format.
- Call the tool once per person and day you need. You may request several calls at once.
- User names are not case sensitive.

## Answering
- Only suggest time slots that do not overlap any returned meeting for any participant.
- Assume a working day of 08:00 to 18:00 in the same timezone as the returned timestamps.
- Give times as HH:MM ranges and keep the answer short.
"""

DEFAULT_QUERY = (
    "Suggest 3 time slots for a 45 minute meeting between Miki & Bill on June 7, 2026. "
    "Make sure the time slots you suggest don't overlap with existing meetings."
)


def load_system_prompt(path: str | Path | None = None) -> str:
    """Return the system prompt, read from a file when one is given."""
    if path is None:
        return SYSTEM_PROMPT

    prompt = Path(path).read_text(encoding="utf-8").strip()
    if not prompt:
        raise ValueError(f"System prompt file {path} is empty")
    logger.info(f"Loaded system prompt from {path}")
    return prompt
