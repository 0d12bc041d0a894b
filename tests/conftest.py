"""Shared fixtures for the test suite."""

import pytest
from helpers import utc

from meetbot.models.llm import GenerateOptions
from meetbot.models.meeting import Meeting
from meetbot.services.calendar import InMemoryCalendarService
from meetbot.tools.dispatcher import ToolDispatcher
from meetbot.tools.registry import ToolsRegistry
from meetbot.utils.logging import get_silent_logger


@pytest.fixture
def seed_meetings() -> list[Meeting]:
    return [
        Meeting(user="miki", start=utc("2026-06-07 08:30"), end=utc("2026-06-07 09:30")),
        Meeting(user="miki", start=utc("2026-06-07 13:30"), end=utc("2026-06-07 14:15")),
        Meeting(user="bill", start=utc("2026-06-07 09:00"), end=utc("2026-06-07 09:45")),
        Meeting(user="bill", start=utc("2026-06-07 13:00"), end=utc("2026-06-07 14:00")),
    ]


@pytest.fixture
def calendar(seed_meetings) -> InMemoryCalendarService:
    return InMemoryCalendarService(seed_meetings)


@pytest.fixture
def registry(calendar) -> ToolsRegistry:
    return ToolsRegistry.for_calendar(calendar)


@pytest.fixture
def dispatcher(registry) -> ToolDispatcher:
    return ToolDispatcher(registry, logger=get_silent_logger())


@pytest.fixture
def options() -> GenerateOptions:
    return GenerateOptions(model="test-model", stream=False)
