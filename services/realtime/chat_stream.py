"""Websocket subscription to the provider's chat stream."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

import aiohttp

from models.session_models import InboundMessage
from services.errors import TransportError
from services.realtime.frame_parser import parse_frame, subscribe_frame

logger = logging.getLogger(__name__)

MessageHandler = Callable[["ChatStream", InboundMessage], None]


class ChatStream:
	"""Own one websocket connection and deliver decoded messages in arrival order."""

	def __init__(
		self,
		endpoint: str,
		on_message: MessageHandler,
		session: Optional[aiohttp.ClientSession] = None,
	) -> None:
		self.endpoint = endpoint
		self.on_message = on_message
		self._session = session
		self._owns_session = session is None
		self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
		self._reader: Optional[asyncio.Task] = None
		self.closed = False

	async def open(self) -> None:
		"""Connect, subscribe to the chat topic and start reading frames."""
		if self._session is None:
			self._session = aiohttp.ClientSession()
		try:
			self._ws = await self._session.ws_connect(self.endpoint, heartbeat=30)
			await self._ws.send_str(subscribe_frame())
		except Exception:
			await self.close()
			raise
		self._reader = asyncio.create_task(self._read_loop())

	async def _read_loop(self) -> None:
		async for msg in self._ws:
			if msg.type == aiohttp.WSMsgType.TEXT:
				self._handle_text(msg.data)
			elif msg.type == aiohttp.WSMsgType.ERROR:
				logger.error("Chat stream error: %s", self._ws.exception())
				break
		logger.debug("Chat stream reader finished for %s", self.endpoint)

	def _handle_text(self, data: str) -> None:
		try:
			message = parse_frame(data)
		except TransportError as exc:
			logger.debug("Ignoring malformed stream frame: %s", exc)
			return
		if message is None or self.closed:
			return
		try:
			self.on_message(self, message)
		except Exception:  # pylint: disable=broad-exception-caught
			logger.exception("Chat stream handler failed")

	async def close(self) -> None:
		"""Stop delivering messages and close the websocket. Safe to call repeatedly."""
		self.closed = True
		reader, self._reader = self._reader, None
		if reader is not None and reader is not asyncio.current_task():
			reader.cancel()
			try:
				await reader
			except asyncio.CancelledError:
				pass
		if self._ws is not None and not self._ws.closed:
			await self._ws.close()
		if self._session is not None and self._owns_session and not self._session.closed:
			await self._session.close()
