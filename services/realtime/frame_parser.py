"""Decode provider stream frames into inbound chat messages."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from models.session_models import InboundMessage, MessageKind, ParticipantRole
from services.errors import TransportError

CHAT_TOPIC = "aws/chat"
JSON_CONTENT_TYPE = "application/json"
SUBSCRIBE_FRAME = {"topic": "aws/subscribe", "content": {"topics": [CHAT_TOPIC]}}


def subscribe_frame() -> str:
	"""Return the frame that subscribes a fresh stream to the chat topic."""
	return json.dumps(SUBSCRIBE_FRAME)


def _load_json(raw: Any, what: str) -> Dict[str, Any]:
	if isinstance(raw, dict):
		return raw
	try:
		value = json.loads(raw)
	except (TypeError, ValueError) as exc:
		raise TransportError(f"{what} is not valid JSON") from exc
	if not isinstance(value, dict):
		raise TransportError(f"{what} must be a JSON object")
	return value


def parse_frame(raw: Any) -> Optional[InboundMessage]:
	"""Return the message carried by a frame, or None if the frame is not for us.

	Raises:
		TransportError: If the frame or its nested content cannot be decoded.
	"""
	frame = _load_json(raw, "Stream frame")
	if frame.get("topic") != CHAT_TOPIC or frame.get("contentType") != JSON_CONTENT_TYPE:
		return None

	content = _load_json(frame.get("content"), "Frame content")
	role = ParticipantRole.parse(content.get("ParticipantRole"))
	display_name = content.get("DisplayName") or ""
	message_type = content.get("Type")

	if message_type == MessageKind.CHAT_MESSAGE.value:
		return InboundMessage(
			kind=MessageKind.CHAT_MESSAGE,
			role=role,
			body=content.get("Content") or "",
			display_name=display_name,
		)
	if message_type == MessageKind.PARTICIPANT_EVENT.value:
		return InboundMessage(
			kind=MessageKind.PARTICIPANT_EVENT,
			role=role,
			body=content.get("ContentType") or "",
			display_name=display_name,
		)
	return None
