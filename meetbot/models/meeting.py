"""Meeting and calendar query models."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator


def normalize_user(user: str) -> str:
    """Canonical case-insensitive form of a user identifier."""
    return user.strip().casefold()


class Meeting(BaseModel):
    """A busy interval on a user's calendar.

    Serialized with capitalized keys (``User``, ``Start``, ``End``) to match
    the records the model receives in tool results.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user: str = Field(..., alias="User", min_length=1)
    start: dt.datetime = Field(..., alias="Start")
    end: dt.datetime = Field(..., alias="End")

    @model_validator(mode="after")
    def check_interval(self) -> "Meeting":
        if self.start >= self.end:
            raise ValueError(f"Meeting must start before it ends ({self.start.isoformat()} >= {self.end.isoformat()})")
        return self

    def falls_on(self, day: dt.date) -> bool:
        """Whether the meeting starts on the given calendar day."""
        return self.start.date() == day


class CalendarQuery(BaseModel):
    """Lookup key for a user's meetings on one day."""

    model_config = ConfigDict(frozen=True)

    user: str
    date: dt.date

    @field_validator("user")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_user(v)


MeetingList = TypeAdapter(list[Meeting])


def serialize_meetings(meetings: list[Meeting]) -> str:
    """Encode meetings as the JSON array sent back in a tool result."""
    return MeetingList.dump_json(meetings, by_alias=True).decode()


def deserialize_meetings(content: str | bytes) -> list[Meeting]:
    """Decode a tool result produced by serialize_meetings."""
    return MeetingList.validate_json(content)
