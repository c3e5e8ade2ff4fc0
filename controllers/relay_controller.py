"""Relay controllers translating HTTP payloads into RelayService calls."""

from typing import Any, Dict, Optional

from fastapi import HTTPException, Request

from services.relay.relay_service import RelayService


def _get_relay_service(request: Request) -> RelayService:
    """Retrieve the shared relay service from the app state."""
    service = getattr(request.app.state, "relay_service", None)
    if service is None:
        raise HTTPException(status_code=500, detail="Relay service not initialized.")
    return service


async def connect_chat(request: Request, display_name: Optional[str], participant_token: Optional[str]) -> Dict[str, Any]:
    """Create or resume a chat session and return the visitor's connection.

    Args:
        request: FastAPI Request (used to access the shared relay service).
        display_name: Visitor display name for a new chat.
        participant_token: Optional token of a chat being rejoined.

    Returns:
        A dict with ``participantToken``, ``connectionToken``,
        ``streamEndpoint`` and ``expiresAt`` (ISO-8601).
    """
    details = await _get_relay_service(request).create_or_resume_session(display_name, participant_token)
    return {
        "participantToken": details.participant_token,
        "connectionToken": details.connection_token,
        "streamEndpoint": details.stream_endpoint,
        "expiresAt": details.expires_at.isoformat(),
    }


async def send_chat_message(request: Request, connection_token: Optional[str], content: str) -> str:
    """Post a visitor message through the relay."""
    return await _get_relay_service(request).post_message(connection_token, content)


async def disconnect_chat(request: Request, connection_token: Optional[str]) -> str:
    """End the visitor's chat through the relay."""
    return await _get_relay_service(request).end_session(connection_token)
