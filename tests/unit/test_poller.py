import asyncio

import httpx
import pytest

from helpers.fake_server import BASE_URL
from sovereignconquest.client.poller import NotificationPoller
from sovereignconquest.client.session_store import MemorySessionStore
from sovereignconquest.client.transport import Transport


class CountingServer:
    def __init__(self, unread=3, status=200):
        self.calls = 0
        self.unread = unread
        self.status = status
        self.gate = None

    async def handle(self, request):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.status != 200:
            return httpx.Response(self.status, json={"ok": False, "error": "boom"})
        return httpx.Response(200, json={"unread": self.unread})


def _poller(server, counts, *, token="tok", interval=0.01):
    store = MemorySessionStore(token)
    transport = Transport(
        BASE_URL,
        store,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(server.handle)),
    )
    return NotificationPoller(transport, store, counts.append, interval=interval), transport


@pytest.mark.asyncio
async def test_poller_fetches_until_stopped():
    server = CountingServer()
    counts = []
    poller, transport = _poller(server, counts)

    poller.start()
    await asyncio.sleep(0.1)
    poller.stop()
    calls_at_stop = server.calls
    await asyncio.sleep(0.1)

    assert calls_at_stop >= 2
    assert server.calls == calls_at_stop
    assert counts and set(counts) == {3}
    assert not poller.running
    await transport.aclose()


@pytest.mark.asyncio
async def test_start_is_idempotent():
    server = CountingServer()
    counts = []
    poller, transport = _poller(server, counts, interval=3600)

    poller.start()
    first_task = poller._task
    poller.start()
    poller.start()
    await asyncio.sleep(0.05)

    assert poller._task is first_task
    assert server.calls == 1
    await poller.wait_stopped()
    await transport.aclose()


@pytest.mark.asyncio
async def test_stop_before_first_fetch_issues_nothing():
    server = CountingServer()
    poller, transport = _poller(server, [])

    poller.start()
    poller.stop()
    await asyncio.sleep(0.05)

    assert server.calls == 0
    await transport.aclose()


@pytest.mark.asyncio
async def test_in_flight_result_is_dropped_after_stop():
    server = CountingServer(unread=9)
    server.gate = asyncio.Event()
    counts = []
    poller, transport = _poller(server, counts, interval=3600)

    pending = asyncio.create_task(poller.refresh())
    await asyncio.sleep(0.01)
    assert server.calls == 1
    poller.stop()
    server.gate.set()

    assert await pending is None
    assert counts == []
    await transport.aclose()


@pytest.mark.asyncio
async def test_failures_are_swallowed_and_polling_continues():
    server = CountingServer(status=500)
    counts = []
    poller, transport = _poller(server, counts)

    poller.start()
    await asyncio.sleep(0.1)

    assert poller.running
    assert server.calls >= 2
    assert counts == []
    await poller.wait_stopped()
    await transport.aclose()


@pytest.mark.asyncio
async def test_no_fetch_without_a_session():
    server = CountingServer()
    poller, transport = _poller(server, [], token=None)

    assert await poller.refresh() is None
    assert server.calls == 0
    await transport.aclose()
