"""Background polling of the unread-message counter."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Any, Callable, Mapping, Optional

from sovereignconquest.client.session_store import SessionStore
from sovereignconquest.client.transport import Transport


logger = logging.getLogger(__name__)

UNREAD_COUNT_ENDPOINT = "messages/unread_count"
DEFAULT_POLL_INTERVAL_SECONDS = 20.0


def _coerce_unread(data: Any) -> Optional[int]:
    if not isinstance(data, Mapping):
        return None
    value = data.get("unread", 0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return max(0, int(value))


class NotificationPoller:
    """Fetches the unread count on a fixed interval while a session exists.

    ``start`` is idempotent. ``stop`` is synchronous: once it returns no
    further fetch is issued and no in-flight result is applied.
    """

    def __init__(
        self,
        transport: Transport,
        store: SessionStore,
        on_count: Callable[[int], None],
        *,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        self._transport = transport
        self._store = store
        self._on_count = on_count
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._generation += 1
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._poll_loop(self._generation))
        logger.debug("poller.start interval=%s", self.interval)

    def stop(self) -> None:
        self._generation += 1
        self._stop_event.set()
        task, self._task = self._task, None
        if task is not None and not task.done():
            if task is not asyncio.current_task():
                task.cancel()
            logger.debug("poller.stop")

    async def wait_stopped(self) -> None:
        """Stop and wait for the polling task to unwind."""
        task = self._task
        self.stop()
        if task is not None and task is not asyncio.current_task():
            with suppress(asyncio.CancelledError):
                await task

    async def refresh(self) -> Optional[int]:
        """Fetch the unread count once. Failures are logged and swallowed."""
        return await self._fetch(self._generation)

    async def _fetch(self, generation: int) -> Optional[int]:
        if not self._store.get():
            return None
        try:
            data = await self._transport.call(UNREAD_COUNT_ENDPOINT)
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            logger.debug("poller.error", exc_info=True)
            return None
        if generation != self._generation:
            return None
        count = _coerce_unread(data)
        if count is not None:
            self._on_count(count)
        return count

    async def _poll_loop(self, generation: int) -> None:
        stop_event = self._stop_event
        while not stop_event.is_set() and generation == self._generation:
            try:
                await self._fetch(generation)
            except asyncio.CancelledError:
                break
            if stop_event.is_set() or generation != self._generation:
                break
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break
