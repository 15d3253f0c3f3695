"""Sovereign Conquest game client.

Wires the session store, transport, reconciler, poller, session manager,
command dispatcher and message manager around one :class:`AppState`.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

import httpx

from sovereignconquest.client.dispatcher import CommandDispatcher, DispatchResult
from sovereignconquest.client.errors import ApiError, SessionError
from sovereignconquest.client.messages import MessageThreadManager, OutgoingAttachment
from sovereignconquest.client.poller import DEFAULT_POLL_INTERVAL_SECONDS, NotificationPoller
from sovereignconquest.client.reconciler import GameView, StateReconciler
from sovereignconquest.client.session import AppState, SessionManager, SessionPhase
from sovereignconquest.client.session_store import SessionStore
from sovereignconquest.client.transport import DEFAULT_TIMEOUT_SECONDS, Transport
from sovereignconquest.utils.config import ClientConfig


logger = logging.getLogger(__name__)


class GameClient:
    """Async client for one player session."""

    def __init__(
        self,
        base_url: str,
        store: SessionStore,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.store = store
        self.state = AppState()
        self.transport = Transport(base_url, store, timeout=timeout, http_client=http_client)
        self.reconciler = StateReconciler(self.state.view)
        self.poller = NotificationPoller(
            self.transport, store, self._set_unread_count, interval=poll_interval
        )
        self.session = SessionManager(
            self.transport, store, self.state, self.reconciler, self.poller
        )
        self.dispatcher = CommandDispatcher(
            self.transport, self.session, self.reconciler, self.poller
        )
        self.messages = MessageThreadManager(self.transport, self.session, self.poller)

    @classmethod
    def from_config(
        cls, config: ClientConfig, store: Optional[SessionStore] = None
    ) -> "GameClient":
        return cls(
            config.server_url,
            store if store is not None else SessionStore(config.session_file),
            poll_interval=config.poll_interval,
            timeout=config.http_timeout,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Stop background work and release the HTTP client (the session is kept)."""
        await self.poller.wait_stopped()
        await self.dispatcher.drain()
        await self.transport.aclose()

    def _set_unread_count(self, count: int) -> None:
        self.state.unread_count = count

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def view(self) -> GameView:
        return self.state.view

    @property
    def unread_count(self) -> int:
        return self.state.unread_count

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def login(self, username: str, password: str) -> SessionPhase:
        return await self.session.login(username, password)

    async def register(self, username: str, password: str) -> SessionPhase:
        return await self.session.register(username, password)

    async def change_password(self, old_password: str, new_password: str) -> SessionPhase:
        return await self.session.change_password(old_password, new_password)

    async def resume(self) -> SessionPhase:
        return await self.session.resume()

    async def refresh_state(self) -> GameView:
        self.session.require_game()
        view = await self.session.refresh_state()
        await self.poller.refresh()
        return view

    def logout(self) -> None:
        self.session.logout()

    # ------------------------------------------------------------------
    # Commands and messages
    # ------------------------------------------------------------------

    async def submit(self, line: str) -> DispatchResult:
        return await self.dispatcher.submit(line)

    async def send_message(
        self,
        to: str,
        subject: str,
        body: str,
        attachment: Optional[OutgoingAttachment] = None,
        related_id: Optional[int] = None,
    ) -> Any:
        return await self.messages.send(to, subject, body, attachment, related_id)

    # ------------------------------------------------------------------
    # Informational and admin endpoints
    # ------------------------------------------------------------------

    async def version(self) -> Optional[str]:
        """Server version for display; ``None`` when unavailable."""
        for endpoint in ("version", "healthz"):
            try:
                data = await self.transport.call(endpoint)
            except ApiError:
                logger.debug("client.version_unavailable endpoint=%s", endpoint)
                continue
            if isinstance(data, Mapping) and data.get("version"):
                return str(data["version"])
        return None

    async def admin_map(self) -> str:
        self.session.require_game()
        player = self.state.view.player
        if player is None or not player.is_admin:
            raise SessionError("Admin access required.")
        data = await self.transport.call("admin/ansi_map")
        if isinstance(data, Mapping) and data.get("map"):
            return str(data["map"])
        return "(empty)"

    async def submit_bug_report(
        self,
        subject: str,
        body: str,
        attachments: Iterable[OutgoingAttachment] = (),
    ) -> Any:
        if not self.store.get():
            raise SessionError(
                "You must be logged in before submitting a bug report."
            )
        subject = (subject or "").strip()
        body = (body or "").strip()
        if not subject or not body:
            raise ValueError("Title and description are required.")
        # The bug report endpoint only parses multipart bodies, so plain fields
        # travel as filename-less parts even when nothing is attached.
        files = [("subject", (None, subject)), ("body", (None, body))]
        files.extend(
            ("attachments", (a.filename, a.content, a.content_type)) for a in attachments
        )
        return await self.transport.call("bug_report", "POST", files=files)
