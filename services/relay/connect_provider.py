"""Amazon Connect implementation of the chat provider contract."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from services.errors import ProviderError
from services.relay.chat_provider import ChatProvider
from utils.settings import ConnectSettings

logger = logging.getLogger(__name__)

CONNECTION_TYPES = ["WEBSOCKET", "CONNECTION_CREDENTIALS"]

ClientFactory = Callable[[str], Any]


def _provider_error(operation: str, exc: Exception) -> ProviderError:
	if isinstance(exc, ClientError):
		error = exc.response.get("Error", {})
		status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
		message = error.get("Message") or str(exc)
		return ProviderError(f"{operation} failed: {message}", code=error.get("Code"), status_code=status)
	return ProviderError(f"{operation} failed: {exc}")


class AmazonConnectProvider(ChatProvider):
	"""Proxy chat operations to the Amazon Connect and Connect Participant APIs.

	A fresh boto3 client is built for every call, so the provider keeps no
	connection state between requests.
	"""

	def __init__(self, settings: ConnectSettings, client_factory: Optional[ClientFactory] = None) -> None:
		self.settings = settings
		self._client_factory = client_factory or self._default_client

	def _default_client(self, service_name: str):
		return boto3.client(
			service_name,
			region_name=self.settings.region,
			aws_access_key_id=self.settings.access_key_id,
			aws_secret_access_key=self.settings.secret_access_key,
		)

	async def _call(self, service_name: str, operation: str, **params: Any) -> Dict[str, Any]:
		def invoke() -> Dict[str, Any]:
			client = self._client_factory(service_name)
			return getattr(client, operation)(**params)

		try:
			return await asyncio.to_thread(invoke)
		except (ClientError, BotoCoreError) as exc:
			logger.error("Amazon Connect %s call failed: %s", operation, exc)
			raise _provider_error(operation, exc) from exc

	async def start_chat_contact(self, display_name: str) -> str:
		response = await self._call(
			"connect",
			"start_chat_contact",
			ContactFlowId=self.settings.flow_id,
			InstanceId=self.settings.instance_id,
			ParticipantDetails={"DisplayName": display_name},
		)
		token = response.get("ParticipantToken")
		if not token:
			raise ProviderError("start_chat_contact response did not include a participant token.")
		return token

	async def create_participant_connection(self, participant_token: str) -> Dict[str, Any]:
		response = await self._call(
			"connectparticipant",
			"create_participant_connection",
			ParticipantToken=participant_token,
			Type=CONNECTION_TYPES,
		)
		websocket = response.get("Websocket") or {}
		credentials = response.get("ConnectionCredentials") or {}
		if not websocket.get("Url") or not credentials.get("ConnectionToken"):
			raise ProviderError("create_participant_connection response is missing connection details.")
		return {
			"connection_token": credentials["ConnectionToken"],
			"stream_endpoint": websocket["Url"],
			"expires_at": websocket.get("ConnectionExpiry") or credentials.get("Expiry"),
		}

	async def send_message(self, connection_token: str, content: str, content_type: str) -> None:
		await self._call(
			"connectparticipant",
			"send_message",
			ContentType=content_type,
			Content=content,
			ConnectionToken=connection_token,
		)

	async def disconnect_participant(self, connection_token: str) -> None:
		await self._call(
			"connectparticipant",
			"disconnect_participant",
			ConnectionToken=connection_token,
		)
