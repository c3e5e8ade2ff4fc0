"""FastAPI routes for the chat relay."""

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from controllers.relay_controller import connect_chat, disconnect_chat, send_chat_message
from services.errors import ChatBridgeError

router = APIRouter(prefix="/connectChat", tags=["connect-chat"])

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}
UNSUPPORTED_METHODS = ["GET", "PUT", "PATCH", "OPTIONS"]


class ConnectPayload(BaseModel):
	display_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("displayName", "DisplayName"))
	participant_token: Optional[str] = Field(
		default=None, validation_alias=AliasChoices("participantToken", "ParticipantToken")
	)


class DisconnectPayload(BaseModel):
	connection_token: Optional[str] = Field(
		default=None, validation_alias=AliasChoices("connectionToken", "ConnectionToken")
	)


class SendPayload(BaseModel):
	connection_token: Optional[str] = Field(
		default=None, validation_alias=AliasChoices("connectionToken", "ConnectionToken")
	)
	content: str = Field(validation_alias=AliasChoices("content", "Content"))


def _ok(content: Any) -> JSONResponse:
	return JSONResponse(status_code=200, content=content, headers=CORS_HEADERS)


def unsupported_operation(method: str, path: str, known_path: bool) -> HTTPException:
	"""Return the 400 error used for paths or methods the relay does not serve."""
	if known_path:
		detail = f"HTTP method {method} not supported for path {path}"
	else:
		detail = f"Path {path} not supported"
	return HTTPException(status_code=400, detail=detail)


def _bad_request(exc: Exception) -> HTTPException:
	if isinstance(exc, ChatBridgeError):
		return HTTPException(status_code=400, detail=exc.to_dict())
	return HTTPException(status_code=400, detail=str(exc))


@router.post("")
async def connect_chat_route(request: Request, payload: ConnectPayload):
	"""Start or resume a chat and return fresh connection credentials."""
	try:
		result = await connect_chat(request, payload.display_name, payload.participant_token)
	except HTTPException:
		raise
	except Exception as exc:  # pylint: disable=broad-exception-caught
		raise _bad_request(exc) from exc
	return _ok(result)


@router.delete("")
async def disconnect_chat_route(request: Request, payload: DisconnectPayload):
	"""End the visitor's participation in the chat."""
	try:
		result = await disconnect_chat(request, payload.connection_token)
	except HTTPException:
		raise
	except Exception as exc:  # pylint: disable=broad-exception-caught
		raise _bad_request(exc) from exc
	return _ok(result)


@router.post("/send")
async def send_chat_message_route(request: Request, payload: SendPayload):
	"""Post a plain-text visitor message."""
	try:
		result = await send_chat_message(request, payload.connection_token, payload.content)
	except HTTPException:
		raise
	except Exception as exc:  # pylint: disable=broad-exception-caught
		raise _bad_request(exc) from exc
	return _ok(result)


@router.api_route("", methods=UNSUPPORTED_METHODS, include_in_schema=False)
async def connect_chat_unsupported(request: Request):
	raise unsupported_operation(request.method, request.url.path, known_path=True)


@router.api_route("/send", methods=UNSUPPORTED_METHODS + ["DELETE"], include_in_schema=False)
async def send_chat_unsupported(request: Request):
	raise unsupported_operation(request.method, request.url.path, known_path=True)
