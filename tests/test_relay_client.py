"""Tests for the visitor-side relay HTTP client against a local aiohttp server."""
from datetime import datetime, timezone

import pytest
from aiohttp import web
from aiohttp import test_utils

from services.errors import ProviderError
from services.relay_client import RelayClient


@pytest.fixture
async def relay_server():
    """Serve canned relay responses and record every request body."""
    received = []

    async def connect_chat(request):
        body = await request.json()
        received.append(("POST", request.path, body))
        if body.get("displayName") == "Broken":
            return web.json_response({"detail": {"error": "ProviderError", "detail": "throttled"}}, status=400)
        return web.json_response({
            "participantToken": body.get("participantToken") or "PT1",
            "connectionToken": "CT1",
            "streamEndpoint": "wss://x",
            "expiresAt": "2026-10-19T12:01:00+00:00",
        })

    async def end_chat(request):
        received.append(("DELETE", request.path, await request.json()))
        return web.json_response("disconnected")

    async def send(request):
        body = await request.json()
        received.append(("POST", request.path, body))
        if body.get("content") == "boom":
            return web.Response(status=500, text="upstream exploded")
        return web.json_response("message sent")

    app = web.Application()
    app.router.add_post("/connectChat", connect_chat)
    app.router.add_delete("/connectChat", end_chat)
    app.router.add_post("/connectChat/send", send)

    server = test_utils.TestServer(app)
    await server.start_server()
    yield f"http://{server.host}:{server.port}", received
    await server.close()


@pytest.fixture
async def relay_client(relay_server):
    base_url, _ = relay_server
    client = RelayClient(base_url)
    yield client
    await client.close()


@pytest.mark.asyncio
async def test_create_session_parses_connection(relay_client, relay_server):
    _, received = relay_server

    details = await relay_client.create_session("Ann Lee")

    assert received == [("POST", "/connectChat", {"displayName": "Ann Lee", "participantToken": None})]
    assert details.participant_token == "PT1"
    assert details.connection_token == "CT1"
    assert details.stream_endpoint == "wss://x"
    assert details.expires_at == datetime(2026, 10, 19, 12, 1, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_create_session_error_carries_relay_detail(relay_client):
    with pytest.raises(ProviderError) as excinfo:
        await relay_client.create_session("Broken")

    assert excinfo.value.status_code == 400
    assert excinfo.value.detail == "throttled"


@pytest.mark.asyncio
async def test_post_message_and_failure(relay_client, relay_server):
    _, received = relay_server

    assert await relay_client.post_message("CT1", "hello") == "message sent"
    with pytest.raises(ProviderError) as excinfo:
        await relay_client.post_message("CT1", "boom")

    assert excinfo.value.status_code == 500
    assert received[0] == ("POST", "/connectChat/send", {"connectionToken": "CT1", "content": "hello"})


@pytest.mark.asyncio
async def test_end_session_uses_delete(relay_client, relay_server):
    _, received = relay_server

    assert await relay_client.end_session("CT1") == "disconnected"
    assert received == [("DELETE", "/connectChat", {"connectionToken": "CT1"})]


@pytest.mark.asyncio
async def test_unreachable_relay_is_provider_error():
    client = RelayClient("http://127.0.0.1:1")
    try:
        with pytest.raises(ProviderError):
            await client.post_message("CT1", "hello")
    finally:
        await client.close()
