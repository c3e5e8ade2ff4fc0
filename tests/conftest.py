"""Test configuration and fixtures."""
import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from controllers.session_events import SessionEventSink
from models.session_models import ConnectionDetails, SessionStatus
from services.errors import ProviderError
from services.realtime.frame_parser import parse_frame
from services.relay.chat_provider import ChatProvider

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def chat_frame(content: Dict[str, Any], topic: str = "aws/chat", content_type: str = "application/json") -> str:
    """Build a stream frame the way the provider wraps chat content."""
    return json.dumps({"topic": topic, "contentType": content_type, "content": json.dumps(content)})


def agent_message(text: str, name: str = "Bob") -> str:
    return chat_frame({"Type": "MESSAGE", "ParticipantRole": "AGENT", "DisplayName": name, "Content": text})


def customer_message(text: str, name: str = "Ann Lee") -> str:
    return chat_frame({"Type": "MESSAGE", "ParticipantRole": "CUSTOMER", "DisplayName": name, "Content": text})


def ended_event() -> str:
    return chat_frame({
        "Type": "EVENT",
        "ParticipantRole": "SYSTEM",
        "ContentType": "application/vnd.amazonaws.connect.event.chat.ended",
    })


def connection(suffix: str = "1", participant_token: str = "PT1", seconds: int = 60) -> ConnectionDetails:
    return ConnectionDetails(
        participant_token=participant_token,
        connection_token=f"CT{suffix}",
        stream_endpoint=f"wss://x/{suffix}",
        expires_at=NOW + timedelta(seconds=seconds),
    )


class RecordingSink(SessionEventSink):
    """Event sink that keeps everything it is told."""

    def __init__(self):
        self.statuses: List[SessionStatus] = []
        self.lines: List[str] = []
        self.sending: List[bool] = []
        self.resets = 0

    def on_status_change(self, status):
        self.statuses.append(status)

    def on_message(self, sender, text):
        self.lines.append(f"{sender}: {text}")

    def on_sending_changed(self, enabled):
        self.sending.append(enabled)

    def on_reset(self):
        self.resets += 1
        self.lines.clear()


class FakeStream:
    """In-memory stand-in for ChatStream."""

    def __init__(self, endpoint, on_message):
        self.endpoint = endpoint
        self.on_message = on_message
        self.opened = False
        self.closed = False
        self.open_error: Optional[Exception] = None
        self.open_gate: Optional[asyncio.Event] = None

    async def open(self):
        if self.open_gate is not None:
            await self.open_gate.wait()
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    async def close(self):
        self.closed = True

    def deliver(self, raw: str) -> None:
        message = parse_frame(raw)
        if message is not None:
            self.on_message(self, message)


class FakeRelayClient:
    """Relay client double with scripted create results.

    Setting `create_gate` or `post_gate` to an asyncio.Event holds the
    matching call until the event is set.
    """

    def __init__(self, results: Optional[list] = None):
        self.results = list(results) if results is not None else [connection("1")]
        self.create_calls: List[tuple] = []
        self.post_calls: List[tuple] = []
        self.end_calls: List[str] = []
        self.post_error: Optional[Exception] = None
        self.end_error: Optional[Exception] = None
        self.closed = False
        self.create_gate: Optional[asyncio.Event] = None
        self.post_gate: Optional[asyncio.Event] = None

    async def create_session(self, display_name, participant_token=None):
        self.create_calls.append((display_name, participant_token))
        if self.create_gate is not None:
            await self.create_gate.wait()
        result = self.results.pop(0) if self.results else connection(str(len(self.create_calls)))
        if isinstance(result, Exception):
            raise result
        return result

    async def post_message(self, connection_token, content):
        self.post_calls.append((connection_token, content))
        if self.post_gate is not None:
            await self.post_gate.wait()
        if self.post_error is not None:
            raise self.post_error
        return "message sent"

    async def end_session(self, connection_token):
        self.end_calls.append(connection_token)
        if self.end_error is not None:
            raise self.end_error
        return "disconnected"

    async def close(self):
        self.closed = True


class FakeProvider(ChatProvider):
    """Chat provider double recording every call."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.error: Optional[Exception] = None
        self.expiry: Any = "2026-10-19T12:01:00Z"

    def _record(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    async def start_chat_contact(self, display_name):
        self._record("start_chat_contact", display_name)
        return "PT-new"

    async def create_participant_connection(self, participant_token):
        self._record("create_participant_connection", participant_token)
        return {
            "connection_token": f"CT-for-{participant_token}",
            "stream_endpoint": "wss://stream.example/chat",
            "expires_at": self.expiry,
        }

    async def send_message(self, connection_token, content, content_type):
        self._record("send_message", connection_token, content, content_type)

    async def disconnect_participant(self, connection_token):
        self._record("disconnect_participant", connection_token)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def upstream_failure():
    return ProviderError("send_message failed: Internal error", code="InternalServerException", status_code=500)
