"""Shared fixtures for the client unit tests."""

from __future__ import annotations

import sys
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

# Add tests directory to Python path for test helpers
_tests_path = Path(__file__).parent
if str(_tests_path) not in sys.path:
    sys.path.insert(0, str(_tests_path))

from helpers.fake_server import BASE_URL, TOKEN, FakeServer, state_payload  # noqa: E402
from sovereignconquest.client.game_client import GameClient  # noqa: E402
from sovereignconquest.client.session_store import MemorySessionStore  # noqa: E402


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def http_client(server: FakeServer) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(server.handle))


@pytest_asyncio.fixture
async def client(server, store, http_client):
    game = GameClient(BASE_URL, store, poll_interval=3600, http_client=http_client)
    yield game
    await game.close()


@pytest_asyncio.fixture
async def logged_in(client, server, store):
    """A client that has completed a normal login."""
    server.reply("POST", "login", {"token": TOKEN, **state_payload()})
    await client.login("pilot", "secret")
    return client
