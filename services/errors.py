"""Error types shared by the relay service and the visitor session controller."""

from __future__ import annotations

from typing import Any, Dict, Optional


class ChatBridgeError(Exception):
	"""Base class for chat bridge failures."""

	def __init__(self, detail: str) -> None:
		super().__init__(detail)
		self.detail = detail

	def to_dict(self) -> Dict[str, Any]:
		return {"error": type(self).__name__, "detail": self.detail}


class ValidationError(ChatBridgeError, ValueError):
	"""Required user input is missing or blank."""


class ProviderError(ChatBridgeError):
	"""An upstream chat provider or relay call failed.

	Attributes:
		code: Upstream error code when the provider reported one.
		status_code: HTTP status observed by the caller, if any.
	"""

	def __init__(self, detail: str, *, code: Optional[str] = None, status_code: Optional[int] = None) -> None:
		super().__init__(detail)
		self.code = code
		self.status_code = status_code

	def to_dict(self) -> Dict[str, Any]:
		payload = super().to_dict()
		if self.code:
			payload["code"] = self.code
		return payload


class TransportError(ChatBridgeError):
	"""An inbound stream frame could not be decoded."""
