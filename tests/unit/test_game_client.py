import pytest

from helpers.fake_server import BASE_URL, TOKEN, state_payload
from sovereignconquest.client.errors import SessionError
from sovereignconquest.client.game_client import GameClient
from sovereignconquest.client.messages import OutgoingAttachment
from sovereignconquest.client.session import SessionPhase


@pytest.mark.asyncio
async def test_version_prefers_version_endpoint(client, server):
    server.reply("GET", "version", {"version": "1.4.2"})

    assert await client.version() == "1.4.2"


@pytest.mark.asyncio
async def test_version_falls_back_to_healthz(client, server):
    server.reply("GET", "healthz", {"ok": True, "version": "1.4.0"})

    assert await client.version() == "1.4.0"
    assert len(server.calls("version")) == 1


@pytest.mark.asyncio
async def test_version_unavailable_is_none(client, server):
    assert await client.version() is None


@pytest.mark.asyncio
async def test_refresh_state_replaces_the_view(logged_in, server):
    client = logged_in
    server.reply("GET", "state", state_payload(credits=5))

    view = await client.refresh_state()

    assert view.player.credits == 5


@pytest.mark.asyncio
async def test_admin_map_requires_admin(logged_in, server):
    with pytest.raises(SessionError, match="Admin access required."):
        await logged_in.admin_map()
    assert server.calls("admin/ansi_map") == []


@pytest.mark.asyncio
async def test_admin_map_for_admins(client, server):
    server.reply("POST", "login", {"token": TOKEN, **state_payload(is_admin=True)})
    server.reply("GET", "admin/ansi_map", {"map": "\x1b[32m*\x1b[0m"})
    await client.login("root", "secret")

    assert await client.admin_map() == "\x1b[32m*\x1b[0m"


@pytest.mark.asyncio
async def test_bug_report_requires_session(client, server):
    with pytest.raises(SessionError):
        await client.submit_bug_report("Crash", "It crashed.")
    assert server.requests == []


@pytest.mark.asyncio
async def test_bug_report_is_always_multipart(logged_in, server):
    server.reply("POST", "bug_report", {"ok": True, "id": 3})

    await logged_in.submit_bug_report(
        " Crash ", "Client froze on MOVE.", [OutgoingAttachment("log.txt", b"trace", "text/plain")]
    )

    request = server.calls("bug_report")[0]
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'name="subject"\r\n\r\nCrash\r\n' in request.content
    assert b'name="attachments"; filename="log.txt"' in request.content


@pytest.mark.asyncio
async def test_bug_report_requires_title_and_description(logged_in, server):
    with pytest.raises(ValueError, match="Title and description are required."):
        await logged_in.submit_bug_report("", "body")
    assert server.calls("bug_report") == []


@pytest.mark.asyncio
async def test_close_keeps_the_session(server, store, http_client):
    server.reply("POST", "login", {"token": TOKEN, **state_payload()})
    async with GameClient(BASE_URL, store, http_client=http_client) as game:
        await game.login("pilot", "secret")
        assert game.phase is SessionPhase.AUTHENTICATED

    assert not game.poller.running
    assert store.get() == TOKEN
    assert http_client.is_closed
