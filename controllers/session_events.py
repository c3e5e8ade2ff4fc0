"""Event sink interface that binds a visitor UI to a SessionController."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from models.session_models import SessionStatus

logger = logging.getLogger(__name__)


class SessionEventSink(ABC):
	"""Receive session updates; any UI implements this to render the chat."""

	@abstractmethod
	def on_status_change(self, status: SessionStatus) -> None:
		"""Called whenever the session status changes."""

	@abstractmethod
	def on_message(self, sender: str, text: str) -> None:
		"""Append one line to the chat log."""

	def on_sending_changed(self, enabled: bool) -> None:
		"""Enable or disable the send control."""

	def on_reset(self) -> None:
		"""Clear the chat log and return to the start form."""


class LoggingEventSink(SessionEventSink):
	"""Sink that only logs, used when no UI is attached."""

	def on_status_change(self, status: SessionStatus) -> None:
		logger.info("Session status: %s", status.value)

	def on_message(self, sender: str, text: str) -> None:
		logger.info("%s: %s", sender, text)

	def on_sending_changed(self, enabled: bool) -> None:
		logger.debug("Sending %s", "enabled" if enabled else "disabled")
