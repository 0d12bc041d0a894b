"""Tests for the tool registry, the meetings tool and the dispatcher."""

import asyncio
import json

import pytest
from pydantic import BaseModel, ValidationError

from meetbot.errors import InvalidArguments, UnsupportedTool
from meetbot.models.conversation import ToolCallRequest
from meetbot.tools.base import ToolDefinition, decode_arguments
from meetbot.tools.dispatcher import ToolDispatcher
from meetbot.tools.meetings import MeetingsInput
from meetbot.tools.registry import ToolsRegistry
from meetbot.utils.logging import get_silent_logger


class EchoInput(BaseModel):
    label: str
    delay: float = 0.0


def create_echo_tool(completed: list[str]) -> ToolDefinition:
    async def echo_handler(params: EchoInput) -> str:
        await asyncio.sleep(params.delay)
        completed.append(params.label)
        return params.label

    return ToolDefinition(name="echo", description="Echo a label", input_schema_class=EchoInput, handler=echo_handler)


class TestToolsRegistry:
    """Tests for the registry export."""

    def test_meetings_descriptor(self, registry):
        """Test the descriptor advertised for the meetings tool."""
        descriptors = registry.get_descriptors()

        assert len(descriptors) == 1
        descriptor = descriptors[0].model_dump()
        assert descriptor["type"] == "function"
        assert descriptor["name"] == "meetings"
        assert "meetings" in descriptor["description"]

        parameters = descriptor["parameters"]
        assert parameters["type"] == "object"
        assert set(parameters["required"]) == {"user", "date"}
        assert parameters["properties"]["user"]["type"] == "string"
        assert parameters["properties"]["date"]["type"] == "string"
        assert "YYYY-MM-DD" in parameters["properties"]["date"]["description"]

    def test_register_duplicate_rejected(self, registry):
        """Test that a tool name can only be registered once."""
        with pytest.raises(ValueError, match="already registered"):
            registry.register_tool(registry.get_tool("meetings"))

    def test_tool_lookup(self, registry):
        """Test registry lookups."""
        assert registry.has_tool("meetings")
        assert not registry.has_tool("unknown")
        assert registry.get_tool("unknown") is None
        assert registry.get_tool_names() == ["meetings"]


class TestMeetingsInput:
    """Tests for meetings tool argument validation."""

    def test_valid_input(self):
        """Test that valid arguments decode to a typed record."""
        params = MeetingsInput.model_validate({"user": "Miki", "date": "2026-06-07"})
        assert params.user == "miki"
        assert params.day.isoformat() == "2026-06-07"

    @pytest.mark.parametrize(
        "bad_date",
        # Last case uses fullwidth digits
        ["06/07/2026", "2026-6-7", "2026-13-01", "2026-02-30", "tomorrow", "\uff12\uff10\uff12\uff16-06-07"],
    )
    def test_invalid_dates(self, bad_date):
        """Test that malformed or impossible dates are rejected."""
        with pytest.raises(ValidationError):
            MeetingsInput.model_validate({"user": "miki", "date": bad_date})

    @pytest.mark.parametrize("payload", [{"user": "miki"}, {"date": "2026-06-07"}, {"user": " ", "date": "2026-06-07"}])
    def test_missing_or_blank_fields(self, payload):
        """Test that required fields must be present and non-blank."""
        with pytest.raises(ValidationError):
            MeetingsInput.model_validate(payload)


class TestToolDispatcher:
    """Tests for ToolDispatcher."""

    @pytest.mark.asyncio
    async def test_dispatch_meetings(self, dispatcher):
        """Test that a meetings call returns the JSON meeting records."""
        content = await dispatcher.dispatch("meetings", {"user": "MIKI", "date": "2026-06-07"})

        records = json.loads(content)
        assert [r["User"] for r in records] == ["miki", "miki"]
        assert [r["Start"] for r in records] == ["2026-06-07T08:30:00Z", "2026-06-07T13:30:00Z"]

    @pytest.mark.asyncio
    async def test_dispatch_no_meetings(self, dispatcher):
        """Test that an empty day is an empty array."""
        assert await dispatcher.dispatch("meetings", {"user": "miki", "date": "2026-06-08"}) == "[]"

    @pytest.mark.asyncio
    async def test_dispatch_json_text_arguments(self, dispatcher):
        """Test that JSON argument text is decoded before validation."""
        content = await dispatcher.dispatch("meetings", '{"user": "bill", "date": "2026-06-07"}')
        assert len(json.loads(content)) == 2

    @pytest.mark.asyncio
    async def test_dispatch_unknown_tool(self, dispatcher):
        """Test that an unregistered tool name is a hard error."""
        with pytest.raises(UnsupportedTool) as exc_info:
            await dispatcher.dispatch("unknown", {})
        assert exc_info.value.tool_name == "unknown"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "arguments",
        [
            {"user": "miki", "date": "June 7"},
            {"user": "miki"},
            '{"user": "miki", "date": ',
            '["miki", "2026-06-07"]',
            {"user": "miki", "date": "\uff12\uff10\uff12\uff16-06-07"},
        ],
    )
    async def test_dispatch_invalid_arguments(self, dispatcher, arguments):
        """Test that bad arguments raise InvalidArguments."""
        with pytest.raises(InvalidArguments) as exc_info:
            await dispatcher.dispatch("meetings", arguments)
        assert exc_info.value.tool_name == "meetings"

    @pytest.mark.asyncio
    async def test_dispatch_all_preserves_request_order(self):
        """Test that results follow request order, not completion order."""
        completed: list[str] = []
        dispatcher = ToolDispatcher(ToolsRegistry([create_echo_tool(completed)]), logger=get_silent_logger())
        calls = [
            ToolCallRequest(id="a", name="echo", arguments={"label": "first", "delay": 0.05}),
            ToolCallRequest(id="b", name="echo", arguments={"label": "second", "delay": 0.0}),
        ]

        messages = await dispatcher.dispatch_all(calls)

        assert completed == ["second", "first"]
        assert [m.tool_call_id for m in messages] == ["a", "b"]
        assert [m.content for m in messages] == ["first", "second"]
        assert all(m.role == "tool" for m in messages)

    @pytest.mark.asyncio
    async def test_dispatch_all_checks_names_first(self):
        """Test that no tool runs when any requested tool is unknown."""
        completed: list[str] = []
        dispatcher = ToolDispatcher(ToolsRegistry([create_echo_tool(completed)]), logger=get_silent_logger())
        calls = [
            ToolCallRequest(id="a", name="echo", arguments={"label": "first"}),
            ToolCallRequest(id="b", name="unknown", arguments={}),
        ]

        with pytest.raises(UnsupportedTool):
            await dispatcher.dispatch_all(calls)
        assert completed == []

    @pytest.mark.asyncio
    async def test_dispatch_all_cancels_siblings_on_failure(self):
        """Test that a failing call cancels the calls still running."""
        completed: list[str] = []
        dispatcher = ToolDispatcher(ToolsRegistry([create_echo_tool(completed)]), logger=get_silent_logger())
        calls = [
            ToolCallRequest(id="a", name="echo", arguments={"label": "slow", "delay": 0.2}),
            ToolCallRequest(id="b", name="echo", arguments={"delay": 0.0}),
        ]

        with pytest.raises(InvalidArguments):
            await dispatcher.dispatch_all(calls)
        await asyncio.sleep(0.3)
        assert completed == []

    @pytest.mark.asyncio
    async def test_dispatch_all_waits_for_cancelled_siblings(self):
        """Test that no sibling task is still pending once the failure propagates."""
        completed: list[str] = []
        dispatcher = ToolDispatcher(ToolsRegistry([create_echo_tool(completed)]), logger=get_silent_logger())
        calls = [
            ToolCallRequest(id="a", name="echo", arguments={"label": "slow", "delay": 10.0}),
            ToolCallRequest(id="b", name="echo", arguments={"delay": 0.0}),
            ToolCallRequest(id="c", name="echo", arguments={"delay": 0.0}),
        ]

        with pytest.raises(InvalidArguments):
            await dispatcher.dispatch_all(calls)

        assert asyncio.all_tasks() == {asyncio.current_task()}
        assert completed == []


class TestDecodeArguments:
    """Tests for argument text decoding."""

    def test_empty_text_is_empty_object(self):
        assert decode_arguments("meetings", "") == {}
        assert decode_arguments("meetings", "  ") == {}

    def test_object(self):
        assert decode_arguments("meetings", '{"user": "miki"}') == {"user": "miki"}

    def test_not_an_object(self):
        with pytest.raises(InvalidArguments, match="JSON object"):
            decode_arguments("meetings", "42")
