"""Single entry point for player-typed commands."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Set

from sovereignconquest.client.commands import Command, ParseFailure, parse_command
from sovereignconquest.client.errors import ApiError, AuthenticationError, SessionError
from sovereignconquest.client.poller import NotificationPoller
from sovereignconquest.client.reconciler import ReconcileResult, StateReconciler
from sovereignconquest.client.session import SessionManager
from sovereignconquest.client.transport import Transport


logger = logging.getLogger(__name__)

COMMAND_ENDPOINT = "command"


@dataclass(frozen=True)
class DispatchResult:
    ok: bool
    message: str = ""
    command: Optional[Command] = None
    reconciled: Optional[ReconcileResult] = None
    error: Optional[Exception] = None
    unauthorized: bool = False


class CommandDispatcher:
    """Parse, send and reconcile one command line.

    Submissions are serialized per session, so responses are always applied
    in submission order.
    """

    def __init__(
        self,
        transport: Transport,
        session: SessionManager,
        reconciler: StateReconciler,
        poller: NotificationPoller,
    ) -> None:
        self._transport = transport
        self._session = session
        self._reconciler = reconciler
        self._poller = poller
        self._lock = asyncio.Lock()
        self._background: Set[asyncio.Task] = set()

    async def submit(self, line: str) -> DispatchResult:
        try:
            command = parse_command(line)
        except ParseFailure as exc:
            return DispatchResult(ok=False, message=f"Invalid command: {exc.reason}", error=exc)

        async with self._lock:
            return await self._dispatch(command)

    async def _dispatch(self, command: Command) -> DispatchResult:
        state = self._session.state
        try:
            self._session.require_game()
        except SessionError as exc:
            return DispatchResult(ok=False, message=str(exc), command=command, error=exc)

        epoch = state.epoch
        try:
            response = await self._transport.call(
                COMMAND_ENDPOINT, "POST", command.to_payload()
            )
        except AuthenticationError as exc:
            return DispatchResult(
                ok=False, message=exc.message, command=command, error=exc, unauthorized=True
            )
        except ApiError as exc:
            logger.info("dispatch.failed type=%s status=%s", command.type, exc.status)
            return DispatchResult(ok=False, message=exc.message, command=command, error=exc)

        if epoch != state.epoch:
            logger.info("dispatch.stale_response type=%s", command.type)
            return DispatchResult(ok=False, message="Session ended.", command=command)

        reconciled = self._reconciler.apply(response)
        message = ""
        ok = True
        if isinstance(response, dict):
            message = str(response.get("message") or "")
            ok = bool(response.get("ok", True))
        state.last_message = message
        if command.type == "HELP" and message:
            state.help_text = message
        self._schedule_unread_refresh()
        return DispatchResult(ok=ok, message=message, command=command, reconciled=reconciled)

    def _schedule_unread_refresh(self) -> None:
        task = asyncio.create_task(self._poller.refresh())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for out-of-band refreshes started by earlier submissions."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
