import asyncio

import httpx
import pytest

from helpers.fake_server import TOKEN, player_state, sector_view
from sovereignconquest.client.session import SessionPhase


@pytest.mark.asyncio
async def test_parse_failure_never_reaches_the_network(logged_in, server):
    client = logged_in
    before = len(server.requests)

    result = await client.submit("TRADE BUY ORE abc")

    assert not result.ok
    assert result.message.startswith("Invalid command:")
    assert len(server.requests) == before


@pytest.mark.asyncio
async def test_successful_command_reconciles_and_refreshes_unread(logged_in, server):
    client = logged_in
    server.unread = 4
    server.reply(
        "POST",
        "command",
        {
            "ok": True,
            "message": "Warped to sector 2.",
            "state": player_state(sector_id=2, turns=89),
            "sector": sector_view(id=2, name="Alpha Centauri", warps=[1, 5]),
            "logs": [{"kind": "MOVE", "message": "Warped to sector 2."}],
        },
    )

    result = await client.submit("move 2")
    await client.dispatcher.drain()

    assert result.ok
    assert result.message == "Warped to sector 2."
    assert server.body(server.calls("command")[-1]) == {"type": "MOVE", "to": 2}
    assert client.view.player.sector_id == 2
    assert client.view.sector.name == "Alpha Centauri"
    assert client.view.logs[0].message == "Warped to sector 2."
    assert client.state.last_message == "Warped to sector 2."
    assert client.unread_count == 4


@pytest.mark.asyncio
async def test_validation_error_leaves_state_untouched(logged_in, server):
    client = logged_in
    before_player = client.view.player
    before_sector = client.view.sector
    server.reply(
        "POST",
        "command",
        {"ok": False, "message": "Sector 9 is not adjacent."},
        status=400,
    )

    result = await client.submit("MOVE 9")

    assert not result.ok
    assert result.message == "Sector 9 is not adjacent."
    assert client.view.player is before_player
    assert client.view.sector is before_sector
    assert client.phase is SessionPhase.AUTHENTICATED


@pytest.mark.asyncio
async def test_unauthorized_command_tears_down_without_stale_credential(logged_in, server, store):
    client = logged_in
    server.reply("POST", "command", {"ok": False, "error": "Unauthorized"}, status=401)

    result = await client.submit("SCAN")

    assert result.unauthorized
    assert client.phase is SessionPhase.ANONYMOUS
    assert store.get() is None
    assert not client.poller.running
    assert client.view.player is None

    # Nothing after the teardown carries the old token.
    requests_before = len(server.requests)
    await client.poller.refresh()
    again = await client.submit("SCAN")
    assert not again.ok
    assert len(server.requests) == requests_before


@pytest.mark.asyncio
async def test_help_text_is_kept(logged_in, server):
    client = logged_in
    server.reply("POST", "command", {"ok": True, "message": "Commands: MOVE, TRADE, ..."})

    await client.submit("HELP")

    assert client.state.help_text == "Commands: MOVE, TRADE, ..."


@pytest.mark.asyncio
async def test_response_after_logout_is_discarded(logged_in, server):
    client = logged_in
    gate = asyncio.Event()

    async def slow_command(request):
        await gate.wait()
        return httpx.Response(
            200, json={"ok": True, "message": "done", "state": player_state(credits=1)}
        )

    server.route("POST", "command", slow_command)
    pending = asyncio.create_task(client.submit("SCAN"))
    await asyncio.sleep(0.01)
    client.logout()
    gate.set()
    result = await pending

    assert not result.ok
    assert result.message == "Session ended."
    assert client.view.player is None


@pytest.mark.asyncio
async def test_submissions_are_applied_in_order(logged_in, server):
    client = logged_in
    credits = iter([100, 200])

    async def command(request):
        await asyncio.sleep(0.01)
        return httpx.Response(200, json={"ok": True, "state": player_state(credits=next(credits))})

    server.route("POST", "command", command)
    await asyncio.gather(client.submit("SCAN"), client.submit("SCAN"))

    assert client.view.player.credits == 200
    assert [r.headers["authorization"] for r in server.calls("command")] == [
        f"Bearer {TOKEN}"
    ] * 2
