"""Sovereign Conquest client: command protocol and state synchronization."""

from sovereignconquest.client.commands import Command, ParseFailure, parse_command, try_parse
from sovereignconquest.client.errors import (
    ApiError,
    AuthenticationError,
    ClientError,
    SessionError,
    TransportError,
)
from sovereignconquest.client.game_client import GameClient
from sovereignconquest.client.session import AppState, SessionPhase
from sovereignconquest.client.session_store import MemorySessionStore, SessionStore

__all__ = [
    "ApiError",
    "AppState",
    "AuthenticationError",
    "ClientError",
    "Command",
    "GameClient",
    "MemorySessionStore",
    "ParseFailure",
    "SessionError",
    "SessionPhase",
    "SessionStore",
    "TransportError",
    "parse_command",
    "try_parse",
]
