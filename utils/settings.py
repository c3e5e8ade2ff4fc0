"""Environment-driven configuration for the relay and the visitor client."""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_REFRESH_MARGIN_SECONDS = 5.0


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        raise RuntimeError(f"{name} environment variable is not set")
    return value.strip()


@dataclass(frozen=True)
class ConnectSettings:
    """Amazon Connect settings used by the relay.

    Attributes:
        region: AWS region hosting the Connect instance.
        access_key_id: Access key for the relay's IAM identity.
        secret_access_key: Secret for the relay's IAM identity.
        flow_id: Contact flow that new chats are routed into.
        instance_id: Amazon Connect instance identifier.
    """

    region: str
    access_key_id: Optional[str]
    secret_access_key: Optional[str]
    flow_id: str
    instance_id: str

    @classmethod
    def from_env(cls) -> "ConnectSettings":
        """Build settings from REGION, FLOW_ID, INSTANCE_ID and optional key variables.

        When ACCESS_KEY_ID/SECRET_ACCESS_KEY are absent boto3 falls back to its
        default credential chain.
        """
        return cls(
            region=_require_env("REGION"),
            access_key_id=os.getenv("ACCESS_KEY_ID") or None,
            secret_access_key=os.getenv("SECRET_ACCESS_KEY") or None,
            flow_id=_require_env("FLOW_ID"),
            instance_id=_require_env("INSTANCE_ID"),
        )


@dataclass(frozen=True)
class ClientSettings:
    """Settings for the visitor-side session controller."""

    relay_api_url: str
    refresh_margin_seconds: float = DEFAULT_REFRESH_MARGIN_SECONDS

    @classmethod
    def from_env(cls, relay_api_url: Optional[str] = None) -> "ClientSettings":
        url = relay_api_url or _require_env("RELAY_API_URL")
        raw_margin = os.getenv("REFRESH_MARGIN_SECONDS")
        try:
            margin = float(raw_margin) if raw_margin else DEFAULT_REFRESH_MARGIN_SECONDS
        except ValueError as exc:
            raise RuntimeError(f"REFRESH_MARGIN_SECONDS={raw_margin!r} is not a number") from exc
        return cls(relay_api_url=url.rstrip("/"), refresh_margin_seconds=margin)
