"""Visitor-side HTTP client for the chat relay API."""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from models.session_models import ConnectionDetails
from services.errors import ProviderError
from services.relay.relay_service import parse_expiry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=30)


def _error_detail(body: Any) -> str:
    if isinstance(body, dict):
        detail = body.get("detail", body)
        if isinstance(detail, dict):
            return str(detail.get("detail") or detail)
        return str(detail)
    return str(body)


class RelayClient:
    """Call the relay's create, send and end operations over HTTP.

    Every failure, whether a network error or a non-2xx response, is raised
    as ProviderError.
    """

    def __init__(self, base_url: str, session: Optional[aiohttp.ClientSession] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=DEFAULT_TIMEOUT)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the underlying HTTP session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(self, method: str, path: str, payload: Dict[str, Any]) -> Any:
        session = await self._get_session()
        url = f"{self.base_url}{path}"
        try:
            async with session.request(method, url, json=payload) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = await response.text()
                if response.status >= 400:
                    raise ProviderError(_error_detail(body), status_code=response.status)
                return body
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("Relay %s %s failed: %s", method, path, exc)
            raise ProviderError(f"Relay request failed: {exc}") from exc

    async def create_session(self, display_name: Optional[str], participant_token: Optional[str] = None) -> ConnectionDetails:
        """Create a chat, or refresh the connection of an existing participant."""
        body = await self._request(
            "POST",
            "/connectChat",
            {"displayName": display_name, "participantToken": participant_token},
        )
        if not isinstance(body, dict):
            raise ProviderError(f"Unexpected relay response: {body!r}")
        try:
            return ConnectionDetails(
                participant_token=body["participantToken"],
                connection_token=body["connectionToken"],
                stream_endpoint=body["streamEndpoint"],
                expires_at=parse_expiry(body.get("expiresAt")),
            )
        except KeyError as exc:
            raise ProviderError(f"Relay response is missing {exc.args[0]}") from exc

    async def post_message(self, connection_token: Optional[str], content: str) -> Any:
        return await self._request(
            "POST",
            "/connectChat/send",
            {"connectionToken": connection_token, "content": content},
        )

    async def end_session(self, connection_token: str) -> Any:
        return await self._request("DELETE", "/connectChat", {"connectionToken": connection_token})
