"""Visitor chat session lifecycle: start, send, refresh and teardown."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from controllers.session_events import LoggingEventSink, SessionEventSink
from models.session_models import (
	ChatSession,
	ConnectionDetails,
	InboundMessage,
	MessageKind,
	ParticipantRole,
	SessionStatus,
)
from services.errors import ProviderError, ValidationError
from services.realtime.chat_stream import ChatStream
from services.relay_client import RelayClient
from utils.settings import DEFAULT_REFRESH_MARGIN_SECONDS

logger = logging.getLogger(__name__)

SYSTEM_SENDER = "System"

StreamFactory = Callable[..., ChatStream]


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class SessionController:
	"""Own the single chat session of one visitor UI.

	Status moves IDLE -> CONNECTING on start, CONNECTING -> ACTIVE on the
	first message from the agent side, and to ENDED on leave/disconnect.
	Every teardown bumps an epoch; async continuations started under an
	older epoch drop their results.
	"""

	def __init__(
		self,
		relay: RelayClient,
		sink: Optional[SessionEventSink] = None,
		*,
		stream_factory: Optional[StreamFactory] = None,
		refresh_margin: float = DEFAULT_REFRESH_MARGIN_SECONDS,
		clock: Callable[[], datetime] = _utcnow,
		sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
	) -> None:
		if relay is None:
			raise ValueError("A relay client is required.")
		self.relay = relay
		self.sink = sink or LoggingEventSink()
		self.refresh_margin = refresh_margin
		self._stream_factory = stream_factory or ChatStream
		self._clock = clock
		self._sleep = sleep
		self.session = ChatSession()
		self._stream: Optional[ChatStream] = None
		self._pending_stream: Optional[ChatStream] = None
		self._refresh_task: Optional[asyncio.Task] = None
		self._epoch = 0

	@property
	def status(self) -> SessionStatus:
		return self.session.status

	def _set_status(self, status: SessionStatus) -> None:
		if self.session.status is status:
			return
		self.session.status = status
		self.sink.on_status_change(status)

	def _set_sending(self, enabled: bool) -> None:
		if self.session.sending_enabled is enabled:
			return
		self.session.sending_enabled = enabled
		self.sink.on_sending_changed(enabled)

	async def start(self, first_name: str, last_name: str, participant_token: Optional[str] = None) -> None:
		"""Begin a chat for the named visitor.

		Args:
			first_name: Visitor first name; must not be blank.
			last_name: Visitor last name; must not be blank.
			participant_token: Optional token of an earlier chat to rejoin.

		Raises:
			ValidationError: If either name is blank. The session is untouched.
		"""
		first = (first_name or "").strip()
		last = (last_name or "").strip()
		if not first or not last:
			raise ValidationError("Please enter a first and last name")
		if self.session.is_live:
			logger.warning("Chat already %s; ignoring start request", self.session.status.value)
			return

		self.session = ChatSession(display_name=f"{first} {last}")
		self._set_status(SessionStatus.CONNECTING)
		epoch = self._epoch

		try:
			details = await self.relay.create_session(self.session.display_name, participant_token)
			if epoch != self._epoch:
				logger.info("Chat was closed while connecting; releasing new connection")
				await self._end_quietly(details.connection_token)
				return
			await self._attach(details, epoch)
		except ProviderError as exc:
			if epoch != self._epoch:
				return
			logger.error("Unable to start chat: %s", exc)
			await self._abort_start()
			self.sink.on_message(SYSTEM_SENDER, f"Unable to start chat: {exc.detail}")
			return

		if epoch == self._epoch:
			self.sink.on_message(SYSTEM_SENDER, "Connecting...")

	async def _abort_start(self) -> None:
		await self._cancel_refresh()
		await self._close_stream()
		token = self.session.connection_token
		if token:
			await self._end_quietly(token)
		self.session = ChatSession()
		self.sink.on_status_change(SessionStatus.IDLE)

	async def _attach(self, details: ConnectionDetails, epoch: int) -> None:
		"""Adopt a new connection once its stream is open, then schedule refresh.

		The current stream and credentials stay in place until the new stream
		has subscribed. If it cannot, the new connection is ended and
		ProviderError is raised.
		"""
		stream = self._stream_factory(details.stream_endpoint, self._on_stream_message)
		self._pending_stream = stream
		try:
			await stream.open()
		except Exception as exc:  # pylint: disable=broad-exception-caught
			if self._pending_stream is stream:
				self._pending_stream = None
			await self._close_quietly(stream)
			await self._end_quietly(details.connection_token)
			raise ProviderError(f"Unable to open chat stream: {exc}") from exc
		if self._pending_stream is stream:
			self._pending_stream = None

		if epoch != self._epoch:
			logger.info("Chat was closed while subscribing; releasing new connection")
			await self._close_quietly(stream)
			await self._end_quietly(details.connection_token)
			return

		previous, self._stream = self._stream, stream
		self.session.apply_connection(details)
		if previous is not None:
			await self._close_quietly(previous)
		await self._schedule_refresh(details.expires_at)

	async def _close_stream(self) -> None:
		stream, self._stream = self._stream, None
		pending, self._pending_stream = self._pending_stream, None
		for item in (stream, pending):
			if item is not None:
				await self._close_quietly(item)

	@staticmethod
	async def _close_quietly(stream: ChatStream) -> None:
		try:
			await stream.close()
		except Exception as exc:  # pylint: disable=broad-exception-caught
			logger.warning("Error closing chat stream: %s", exc)

	def refresh_delay(self, expires_at: datetime) -> float:
		"""Seconds from now until the connection must be refreshed."""
		remaining = (expires_at - self._clock()).total_seconds()
		return max(0.0, remaining - self.refresh_margin)

	async def _schedule_refresh(self, expires_at: datetime) -> None:
		await self._cancel_refresh()
		delay = self.refresh_delay(expires_at)
		logger.debug("Connection refresh scheduled in %.1fs", delay)
		self._refresh_task = asyncio.create_task(self._refresh_after(delay, self._epoch))

	async def _cancel_refresh(self) -> None:
		task, self._refresh_task = self._refresh_task, None
		if task is None or task is asyncio.current_task():
			return
		task.cancel()
		try:
			await task
		except asyncio.CancelledError:
			pass
		except Exception as exc:  # pylint: disable=broad-exception-caught
			logger.warning("Connection refresh task failed: %s", exc)

	async def _refresh_after(self, delay: float, epoch: int) -> None:
		await self._sleep(delay)
		if epoch != self._epoch:
			return
		if not self.session.connection_token:
			logger.info("Chat has ended; connection refresh skipped")
			return
		await self.refresh(epoch)

	async def refresh(self, epoch: Optional[int] = None) -> None:
		"""Exchange the participant token for a new connection and resubscribe.

		Failures are logged; the current (possibly stale) token and its stream are kept.
		"""
		epoch = self._epoch if epoch is None else epoch
		try:
			details = await self.relay.create_session(self.session.display_name, self.session.participant_token)
			if epoch != self._epoch:
				await self._end_quietly(details.connection_token)
				return
			await self._attach(details, epoch)
		except ProviderError as exc:
			logger.error("Connection refresh failed: %s", exc)
			return
		logger.info("Chat connection refreshed")

	def _on_stream_message(self, stream: ChatStream, message: InboundMessage) -> None:
		if stream is not self._stream or not self.session.is_live:
			return
		if message.kind is MessageKind.CHAT_MESSAGE:
			if message.role is ParticipantRole.CUSTOMER:
				return
			if self.session.status is SessionStatus.CONNECTING:
				self._set_status(SessionStatus.ACTIVE)
				self._set_sending(True)
			sender = message.display_name or message.role.value.title()
			self.sink.on_message(sender, message.body)
		elif message.is_chat_ended:
			logger.info("Chat ended by the provider")
			self._set_sending(False)
			self.session.connection_token = None

	async def send(self, text: str) -> None:
		"""Post a message; it is shown locally only once the relay accepts it."""
		content = (text or "").strip()
		if not content:
			return
		epoch = self._epoch
		try:
			await self.relay.post_message(self.session.connection_token, content)
		except ProviderError as exc:
			logger.error("Message not sent: %s", exc)
			return
		if epoch != self._epoch:
			return
		self.sink.on_message(self.session.display_name, content)

	async def leave(self) -> None:
		"""Reset the UI, then tear the session down."""
		self.sink.on_reset()
		await self.disconnect()

	async def disconnect(self) -> None:
		"""Tear down the session. Idempotent and never raises."""
		self._epoch += 1
		await self._cancel_refresh()
		await self._close_stream()

		token = self.session.connection_token
		was_live = self.session.is_live
		if token:
			await self._end_quietly(token)

		self._set_sending(False)
		status = SessionStatus.ENDED if was_live else self.session.status
		self.session = ChatSession(status=status)
		if was_live:
			self.sink.on_status_change(SessionStatus.ENDED)

	async def _end_quietly(self, connection_token: str) -> None:
		try:
			await self.relay.end_session(connection_token)
		except Exception as exc:  # pylint: disable=broad-exception-caught
			logger.warning("Ending chat with the provider failed: %s", exc)

	async def close(self) -> None:
		"""Disconnect and release the relay client."""
		await self.disconnect()
		await self.relay.close()
