import json

import httpx
import pytest

from helpers.fake_server import BASE_URL
from sovereignconquest.client.errors import ApiError, AuthenticationError, TransportError
from sovereignconquest.client.session_store import MemorySessionStore
from sovereignconquest.client.transport import Transport, extract_error_message


def _transport(handler, store=None):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Transport(BASE_URL, store or MemorySessionStore(), http_client=http_client)


def test_extract_error_message_prefers_error_field():
    response = httpx.Response(400, json={"ok": False, "error": "Not enough credits"})
    assert extract_error_message(response) == "Not enough credits"


def test_extract_error_message_falls_back_to_body():
    assert extract_error_message(httpx.Response(400, json={"detail": "x"})) == '{"detail": "x"}'
    assert extract_error_message(httpx.Response(502, text=" Bad gateway ")) == "Bad gateway"
    assert extract_error_message(httpx.Response(500, text="")) == "HTTP 500"


@pytest.mark.asyncio
async def test_call_sends_bearer_token_and_json():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = request.content
        return httpx.Response(200, json={"ok": True})

    async with _transport(handler, MemorySessionStore("tok")) as transport:
        result = await transport.call("command", "POST", {"type": "SCAN"})

    assert result == {"ok": True}
    assert seen["url"] == f"{BASE_URL}/api/command"
    assert seen["auth"] == "Bearer tok"
    assert json.loads(seen["body"]) == {"type": "SCAN"}


@pytest.mark.asyncio
async def test_call_without_token_sends_no_authorization():
    headers = {}

    def handler(request):
        headers.update(request.headers)
        return httpx.Response(200, json={})

    async with _transport(handler) as transport:
        await transport.call("version")

    assert "authorization" not in headers


@pytest.mark.asyncio
async def test_unauthorized_runs_hooks_before_raising():
    store = MemorySessionStore("stale")
    events = []

    def handler(request):
        return httpx.Response(401, json={"ok": False, "error": "Unauthorized"})

    transport = _transport(handler, store)

    def hook(error):
        events.append(error.endpoint)
        store.clear()

    transport.add_unauthorized_hook(hook)
    with pytest.raises(AuthenticationError) as excinfo:
        await transport.call("state")
    await transport.aclose()

    assert events == ["state"]
    assert excinfo.value.status == 401
    assert excinfo.value.message == "Unauthorized"
    assert store.get() is None


@pytest.mark.asyncio
async def test_api_error_carries_status_and_message():
    def handler(request):
        return httpx.Response(400, json={"ok": False, "error": "Sector 99 is not adjacent"})

    async with _transport(handler, MemorySessionStore("tok")) as transport:
        with pytest.raises(ApiError) as excinfo:
            await transport.call("command", "POST", {"type": "MOVE", "to": 99})

    assert not isinstance(excinfo.value, AuthenticationError)
    assert excinfo.value.status == 400
    assert str(excinfo.value) == "Sector 99 is not adjacent"


@pytest.mark.asyncio
async def test_network_failure_becomes_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _transport(handler) as transport:
        with pytest.raises(TransportError) as excinfo:
            await transport.call("state")

    assert excinfo.value.status == 0


@pytest.mark.asyncio
async def test_malformed_success_body_is_transport_error():
    def handler(request):
        return httpx.Response(200, text="<html>")

    async with _transport(handler) as transport:
        with pytest.raises(TransportError, match="Malformed"):
            await transport.call("state")


@pytest.mark.asyncio
async def test_empty_success_body_returns_empty_mapping():
    async with _transport(lambda request: httpx.Response(200)) as transport:
        assert await transport.call("logout", "POST") == {}


@pytest.mark.asyncio
async def test_files_switch_request_to_multipart():
    seen = {}

    def handler(request):
        seen["content_type"] = request.headers["content-type"]
        seen["body"] = request.content
        return httpx.Response(200, json={"ok": True})

    async with _transport(handler, MemorySessionStore("tok")) as transport:
        await transport.call(
            "messages/send",
            "POST",
            data={"to_username": "admiral"},
            files=[("attachment", ("log.txt", b"hello", "text/plain"))],
        )

    assert seen["content_type"].startswith("multipart/form-data")
    assert b'name="to_username"' in seen["body"]
    assert b'filename="log.txt"' in seen["body"]
