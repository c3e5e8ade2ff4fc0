"""Session domain models for the visitor chat lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class SessionStatus(str, Enum):
	IDLE = "idle"
	CONNECTING = "connecting"
	ACTIVE = "active"
	ENDED = "ended"


class MessageKind(str, Enum):
	CHAT_MESSAGE = "MESSAGE"
	PARTICIPANT_EVENT = "EVENT"


class ParticipantRole(str, Enum):
	CUSTOMER = "CUSTOMER"
	AGENT = "AGENT"
	SYSTEM = "SYSTEM"

	@classmethod
	def parse(cls, value: Optional[str]) -> "ParticipantRole":
		"""Map a provider role string to a role, treating unknown roles as SYSTEM."""
		try:
			return cls((value or "").upper())
		except ValueError:
			return cls.SYSTEM


@dataclass
class ConnectionDetails:
	"""Credentials and stream endpoint returned when a session is created or resumed."""

	participant_token: str
	connection_token: str
	stream_endpoint: str
	expires_at: datetime


@dataclass
class ChatSession:
	"""The single live chat session owned by a SessionController."""

	display_name: Optional[str] = None
	participant_token: Optional[str] = None
	connection_token: Optional[str] = None
	stream_endpoint: Optional[str] = None
	expires_at: Optional[datetime] = None
	status: SessionStatus = SessionStatus.IDLE
	sending_enabled: bool = False

	@property
	def is_live(self) -> bool:
		return self.status in (SessionStatus.CONNECTING, SessionStatus.ACTIVE)

	def apply_connection(self, details: ConnectionDetails) -> None:
		"""Replace the rotating credentials with a freshly issued connection."""
		self.participant_token = details.participant_token
		self.connection_token = details.connection_token
		self.stream_endpoint = details.stream_endpoint
		self.expires_at = details.expires_at


@dataclass
class InboundMessage:
	"""A chat message or participant event received on the stream."""

	kind: MessageKind
	role: ParticipantRole
	body: str
	display_name: str = ""

	@property
	def is_chat_ended(self) -> bool:
		return self.kind is MessageKind.PARTICIPANT_EVENT and "ended" in self.body
