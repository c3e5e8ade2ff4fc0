"""Stateless translation of relay operations onto a chat provider."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Optional, TypeVar

from models.session_models import ConnectionDetails
from services.errors import ProviderError, ValidationError
from services.relay.chat_provider import ChatProvider

logger = logging.getLogger(__name__)

TEXT_CONTENT_TYPE = "text/plain"

T = TypeVar("T")


def parse_expiry(value: Any) -> datetime:
	"""Return an aware UTC datetime for a provider expiry timestamp."""
	if isinstance(value, datetime):
		expires_at = value
	elif isinstance(value, str) and value.strip():
		text = value.strip()
		if text.endswith("Z"):
			text = text[:-1] + "+00:00"
		try:
			expires_at = datetime.fromisoformat(text)
		except ValueError as exc:
			raise ProviderError(f"Unrecognised connection expiry {value!r}") from exc
	else:
		raise ProviderError("Provider did not report a connection expiry.")
	if expires_at.tzinfo is None:
		expires_at = expires_at.replace(tzinfo=timezone.utc)
	return expires_at.astimezone(timezone.utc)


class RelayService:
	"""Map create/send/end operations onto a ChatProvider.

	The service holds no per-session state; every call is independent.
	"""

	def __init__(self, provider: ChatProvider) -> None:
		if provider is None:
			raise ValueError("A chat provider is required.")
		self.provider = provider

	async def _upstream(self, operation: str, call: Awaitable[T]) -> T:
		try:
			return await call
		except ProviderError:
			raise
		except Exception as exc:  # pylint: disable=broad-exception-caught
			logger.error("Provider %s failed: %s", operation, exc)
			raise ProviderError(f"{operation} failed: {exc}") from exc

	async def create_or_resume_session(
		self,
		display_name: Optional[str],
		participant_token: Optional[str] = None,
	) -> ConnectionDetails:
		"""Start a chat (or rejoin one) and open a fresh provider connection.

		Args:
			display_name: Visitor name shown to the agent; required when no
				participant token is supplied.
			participant_token: Existing visitor credential to resume with.

		Returns:
			The participant token plus newly issued connection credentials.

		Raises:
			ValidationError: If a new chat is requested without a display name.
			ProviderError: If any upstream call fails.
		"""
		if not participant_token:
			name = (display_name or "").strip()
			if not name:
				raise ValidationError("displayName is required to start a chat.")
			participant_token = await self._upstream("start_chat_contact", self.provider.start_chat_contact(name))
			logger.info("Started chat contact for %s", name)

		connection = await self._upstream(
			"create_participant_connection",
			self.provider.create_participant_connection(participant_token),
		)
		return ConnectionDetails(
			participant_token=participant_token,
			connection_token=connection["connection_token"],
			stream_endpoint=connection["stream_endpoint"],
			expires_at=parse_expiry(connection.get("expires_at")),
		)

	async def post_message(self, connection_token: Optional[str], content: str) -> str:
		"""Send one plain-text message for the visitor."""
		if not connection_token:
			raise ProviderError("connectionToken is required to send a message.")
		await self._upstream(
			"send_message",
			self.provider.send_message(connection_token, content, TEXT_CONTENT_TYPE),
		)
		return "message sent"

	async def end_session(self, connection_token: Optional[str]) -> str:
		"""Disconnect the visitor from the chat."""
		if not connection_token:
			raise ProviderError("connectionToken is required to end a chat.")
		await self._upstream("disconnect_participant", self.provider.disconnect_participant(connection_token))
		logger.info("Visitor disconnected from chat")
		return "disconnected"
