"""Session lifecycle: login, password change, resume and teardown.

Phases::

    ANONYMOUS -> AUTHENTICATED            login/register
    ANONYMOUS -> PASSWORD_CHANGE_REQUIRED login/register, must_change_password set
    PASSWORD_CHANGE_REQUIRED -> AUTHENTICATED   change_password
    any -> ANONYMOUS                      logout, any 401, failed resume

Every transition to ANONYMOUS goes through :meth:`SessionManager.teardown`,
which stops the poller before the token is cleared.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional

from sovereignconquest.client.errors import (
    AuthenticationError,
    ClientError,
    SessionError,
    TransportError,
)
from sovereignconquest.client.models import Message
from sovereignconquest.client.poller import NotificationPoller
from sovereignconquest.client.reconciler import GameView, StateReconciler
from sovereignconquest.client.session_store import SessionStore
from sovereignconquest.client.transport import Transport


logger = logging.getLogger(__name__)


class SessionPhase(Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    PASSWORD_CHANGE_REQUIRED = "password_change_required"


@dataclass
class AppState:
    """All per-session client state, reset as a unit on teardown."""

    phase: SessionPhase = SessionPhase.ANONYMOUS
    view: GameView = field(default_factory=GameView)
    unread_count: int = 0
    inbox: List[Message] = field(default_factory=list)
    sent: List[Message] = field(default_factory=list)
    reply_to: Optional[Message] = None
    help_text: str = ""
    last_message: str = ""
    epoch: int = 0

    def reset(self) -> None:
        self.phase = SessionPhase.ANONYMOUS
        self.unread_count = 0
        self.inbox = []
        self.sent = []
        self.reply_to = None
        self.help_text = ""
        self.last_message = ""
        self.epoch += 1


class SessionManager:
    def __init__(
        self,
        transport: Transport,
        store: SessionStore,
        state: AppState,
        reconciler: StateReconciler,
        poller: NotificationPoller,
    ) -> None:
        self._transport = transport
        self._store = store
        self.state = state
        self._reconciler = reconciler
        self._poller = poller
        transport.add_unauthorized_hook(self._on_unauthorized)

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def has_session(self) -> bool:
        return self._store.get() is not None

    def require_game(self) -> None:
        if self.state.phase is not SessionPhase.AUTHENTICATED:
            raise SessionError(
                "Password change required."
                if self.state.phase is SessionPhase.PASSWORD_CHANGE_REQUIRED
                else "Not logged in."
            )

    def require_session(self) -> None:
        if self.state.phase is SessionPhase.ANONYMOUS or not self.has_session:
            raise SessionError("Not logged in.")

    def _on_unauthorized(self, error: AuthenticationError) -> None:
        self.teardown(reason=f"unauthorized:{error.endpoint}")

    def teardown(self, reason: str = "logout") -> None:
        """Return to ANONYMOUS, discarding every piece of session state."""
        self._poller.stop()
        self._store.clear()
        self._reconciler.reset()
        self.state.reset()
        logger.info("session.teardown reason=%s", reason)

    def logout(self) -> None:
        self.teardown(reason="logout")

    async def login(self, username: str, password: str) -> SessionPhase:
        self.teardown(reason="login")
        response = await self._transport.call(
            "login", "POST", {"username": username, "password": password}
        )
        token = response.get("token") if isinstance(response, Mapping) else None
        if not isinstance(token, str) or not token:
            raise TransportError("login", "missing token")
        self._store.set(token)
        return await self._enter_game(response)

    async def register(self, username: str, password: str) -> SessionPhase:
        self.teardown(reason="register")
        response = await self._transport.call(
            "register", "POST", {"username": username, "password": password}
        )
        token = response.get("token") if isinstance(response, Mapping) else None
        if isinstance(token, str) and token and isinstance(response.get("state"), Mapping):
            self._store.set(token)
            return await self._enter_game(response)
        return await self.login(username, password)

    async def change_password(self, old_password: str, new_password: str) -> SessionPhase:
        self.require_session()
        await self._transport.call(
            "change_password",
            "POST",
            {"old_password": old_password, "new_password": new_password},
        )
        if self.state.phase is SessionPhase.PASSWORD_CHANGE_REQUIRED:
            epoch = self.state.epoch
            await self.refresh_state()
            if epoch == self.state.epoch:
                self.state.phase = SessionPhase.AUTHENTICATED
                self._poller.start()
                logger.info("session.password_changed")
        return self.state.phase

    async def refresh_state(self) -> GameView:
        """Full refresh: replaces player and sector and resets the log."""
        epoch = self.state.epoch
        response = await self._transport.call("state")
        if epoch == self.state.epoch:
            self._reconciler.apply_full(response)
        return self.state.view

    async def resume(self) -> SessionPhase:
        """Re-enter the game with a token persisted by an earlier run.

        Any failure while refreshing is handled like a 401.
        """
        if not self.has_session:
            return self.state.phase
        try:
            return await self._enter_game(None)
        except ClientError as exc:
            logger.info("session.resume_failed error=%s", exc)
            self.teardown(reason="resume_failed")
            return self.state.phase

    async def _enter_game(self, response: Optional[Mapping[str, Any]]) -> SessionPhase:
        epoch = self.state.epoch
        if isinstance(response, Mapping) and isinstance(response.get("state"), Mapping):
            self._reconciler.apply_full(response)
        else:
            await self.refresh_state()
        if epoch != self.state.epoch:
            return self.state.phase

        player = self.state.view.player
        if player is not None and player.must_change_password:
            self.state.phase = SessionPhase.PASSWORD_CHANGE_REQUIRED
            logger.info("session.password_change_required user=%s", player.username)
            return self.state.phase

        self.state.phase = SessionPhase.AUTHENTICATED
        self._poller.start()
        logger.info(
            "session.authenticated user=%s", player.username if player else "unknown"
        )
        return self.state.phase
