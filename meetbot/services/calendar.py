"""Calendar data provider interface and in-memory implementation."""

import csv
import io
from collections.abc import Iterable
from datetime import UTC, date, datetime
from importlib import resources
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from meetbot.errors import StartupDataError
from meetbot.models.meeting import Meeting, normalize_user
from meetbot.utils.logging import get_logger

logger = get_logger(__name__)

MEETING_COLUMNS = ("user", "date", "start_time", "end_time")
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"


class CalendarDataProvider(Protocol):
    """Interface for busy-time lookups."""

    def query(self, user: str, day: date) -> list[Meeting]:
        """Get a user's meetings starting on a calendar day.

        Args:
            user: User identifier, matched case-insensitively
            day: Calendar day to match against each meeting's start

        Returns:
            Matching meetings; empty when there are none
        """
        ...


class InMemoryCalendarService:
    """Read-only calendar backed by a table loaded once at startup."""

    def __init__(self, meetings: Iterable[Meeting]):
        self._meetings: tuple[Meeting, ...] = tuple(meetings)
        logger.info(f"Calendar loaded with {len(self._meetings)} meetings")

    @classmethod
    def from_csv(cls, path: str | Path | None = None) -> "InMemoryCalendarService":
        """Load the meeting table, defaulting to the bundled data file.

        Raises:
            StartupDataError: If the file is unreadable or any row is malformed
        """
        try:
            if path is None:
                text = resources.files("meetbot").joinpath("data", "meetings.csv").read_text(encoding="utf-8")
                source = "meetbot/data/meetings.csv"
            else:
                text = Path(path).read_text(encoding="utf-8")
                source = str(path)
        except OSError as e:
            raise StartupDataError(f"Cannot read meeting table {path}: {e}") from e

        return cls(parse_meeting_table(text, source=source))

    def query(self, user: str, day: date) -> list[Meeting]:
        """Get a user's meetings starting on a calendar day."""
        wanted = normalize_user(user)
        meetings = [m for m in self._meetings if normalize_user(m.user) == wanted and m.falls_on(day)]
        logger.debug(f"Calendar query user={wanted} date={day.isoformat()}: {len(meetings)} meetings")
        return sorted(meetings, key=lambda m: m.start)

    def __len__(self) -> int:
        return len(self._meetings)


def parse_meeting_table(text: str, source: str = "<string>") -> list[Meeting]:
    """Parse CSV rows of ``user,date,start_time,end_time`` into meetings.

    Times are read as UTC wall-clock times on the row's date.
    """
    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames is None:
        raise StartupDataError(f"{source}: meeting table is empty")

    missing = [column for column in MEETING_COLUMNS if column not in reader.fieldnames]
    if missing:
        raise StartupDataError(f"{source}: missing columns {', '.join(missing)}")

    meetings: list[Meeting] = []
    # Row 1 is the header
    for line_number, row in enumerate(reader, start=2):
        meetings.append(_parse_row(row, source, line_number))
    return meetings


def _parse_row(row: dict[str, str | None], source: str, line_number: int) -> Meeting:
    values = {column: (row.get(column) or "").strip() for column in MEETING_COLUMNS}
    blank = [column for column, value in values.items() if not value]
    if blank:
        raise StartupDataError(f"{source}:{line_number}: empty {', '.join(blank)}")

    try:
        start = _as_time(values["date"], values["start_time"])
        end = _as_time(values["date"], values["end_time"])
    except ValueError as e:
        raise StartupDataError(f"{source}:{line_number}: {e}") from e

    try:
        return Meeting(user=normalize_user(values["user"]), start=start, end=end)
    except ValidationError as e:
        raise StartupDataError(f"{source}:{line_number}: {e.errors()[0]['msg']}") from e


def _as_time(day: str, clock: str) -> datetime:
    return datetime.strptime(f"{day} {clock}", TIMESTAMP_FORMAT).replace(tzinfo=UTC)
