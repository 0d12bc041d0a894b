"""Meetings lookup tool."""

import datetime as dt

from pydantic import BaseModel, Field, field_validator

from meetbot.models.meeting import normalize_user, serialize_meetings
from meetbot.services.calendar import CalendarDataProvider
from meetbot.tools.base import ToolDefinition
from meetbot.utils.logging import get_logger

logger = get_logger(__name__)

MEETINGS_TOOL_NAME = "meetings"
MEETINGS_TOOL_DESCRIPTION = (
    "Get the meetings (busy time) of a user for a given date. Returns a list of meetings, "
    "each with the user and the start and end timestamps."
)


class MeetingsInput(BaseModel):
    """Input schema for the meetings tool."""

    user: str = Field(..., min_length=1, description="User name")
    date: str = Field(..., pattern=r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$", description="date in YYYY-MM-DD format")

    @field_validator("user")
    @classmethod
    def validate_user(cls, v: str) -> str:
        if not v or v.isspace():
            raise ValueError("User cannot be empty or whitespace only")
        return normalize_user(v)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        try:
            _parse_day(v)
        except ValueError as e:
            raise ValueError(f"Date must be a real calendar date in YYYY-MM-DD format, got {v!r}") from e
        return v

    @property
    def day(self) -> dt.date:
        return _parse_day(self.date)


def _parse_day(value: str) -> dt.date:
    # strptime alone also accepts non-ASCII digits
    if not value.isascii():
        raise ValueError(f"non-ASCII characters in {value!r}")
    return dt.datetime.strptime(value, "%Y-%m-%d").date()


def create_meetings_tool(calendar: CalendarDataProvider) -> ToolDefinition:
    async def meetings_handler(params: MeetingsInput) -> str:  # noqa: RUF029
        meetings = calendar.query(params.user, params.day)
        logger.debug(f"meetings tool: {params.user} on {params.date} -> {len(meetings)} meetings")
        return serialize_meetings(meetings)

    return ToolDefinition(
        name=MEETINGS_TOOL_NAME,
        description=MEETINGS_TOOL_DESCRIPTION,
        input_schema_class=MeetingsInput,
        handler=meetings_handler,
    )
