"""Unit tests for the analytics event sink."""

import json

import httpx
import pytest

from neuro_core.core.tasks import TaskSupervisor
from neuro_core.webhooks.events import EVENT_SOURCE, AnalyticsEvent, EventSink, EventType


def make_sink(handler, url="https://hooks.example.com/events") -> EventSink:
    return EventSink(
        url=url,
        supervisor=TaskSupervisor(),
        app_version="1.0.0",
        transport=httpx.MockTransport(handler),
    )


class TestEventSink:
    """Tests for EventSink."""

    @pytest.mark.asyncio
    async def test_payload(self):
        """Test events carry type, source, and app version."""
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200)

        sink = make_sink(handler)
        result = await sink.send(AnalyticsEvent(
            event_type=EventType.SESSION_STARTED,
            data={"conversation_id": "c-1"},
            subject_name="Maya",
        ))
        await sink.close()

        assert result.success
        assert seen["body"]["event_type"] == "meditation_session_started"
        assert seen["body"]["source"] == EVENT_SOURCE
        assert seen["body"]["app_version"] == "1.0.0"
        assert seen["body"]["conversation_id"] == "c-1"
        assert seen["body"]["user_name"] == "Maya"

    @pytest.mark.asyncio
    async def test_timeout_not_raised(self):
        """Test timeouts are reported, not raised."""
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        result = await make_sink(handler).send(AnalyticsEvent(event_type=EventType.CHAT_MESSAGE))

        assert not result.success
        assert result.error_message == "Request timeout"

    @pytest.mark.asyncio
    async def test_http_error_not_raised(self):
        """Test non-2xx responses are reported, not raised."""
        result = await make_sink(lambda request: httpx.Response(500)).send(
            AnalyticsEvent(event_type=EventType.CHAT_MESSAGE)
        )
        assert result.status_code == 500
        assert not result.success

    @pytest.mark.asyncio
    async def test_emit_runs_in_background(self):
        """Test emit schedules delivery on the supervisor."""
        received = []

        def handler(request):
            received.append(json.loads(request.content))
            return httpx.Response(204)

        sink = make_sink(handler)
        sink.emit(EventType.CHAT_MESSAGE, "Maya", message_length=12)
        await sink.supervisor.drain()

        assert received[0]["message_length"] == 12

    def test_emit_without_url_is_noop(self):
        """Test nothing is scheduled when no URL is configured."""
        sink = EventSink(url=None, supervisor=TaskSupervisor())
        sink.emit(EventType.CHAT_MESSAGE)
        assert sink.supervisor.pending == 0
