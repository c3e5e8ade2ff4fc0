"""Contract between the relay and a managed chat backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict


class ChatProvider(ABC):
	"""Backend chat provider used by RelayService.

	Implementations raise ProviderError for any upstream failure.
	"""

	@abstractmethod
	async def start_chat_contact(self, display_name: str) -> str:
		"""Start a new chat contact and return the visitor's participant token."""

	@abstractmethod
	async def create_participant_connection(self, participant_token: str) -> Dict[str, Any]:
		"""Exchange a participant token for a streaming connection.

		Returns:
			A dict with ``connection_token``, ``stream_endpoint`` and
			``expires_at`` (an ISO-8601 string or aware datetime).
		"""

	@abstractmethod
	async def send_message(self, connection_token: str, content: str, content_type: str) -> None:
		"""Post one message on behalf of the visitor."""

	@abstractmethod
	async def disconnect_participant(self, connection_token: str) -> None:
		"""End the visitor's participation in the chat."""
