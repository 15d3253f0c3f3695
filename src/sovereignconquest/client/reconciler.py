"""Merge server snapshots into the client's local game view."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Iterable, List, Mapping, Optional, Tuple

from sovereignconquest.client.models import LogEntry, PlayerState, SectorView


logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_LOG_LIMIT = 200


@dataclass
class GameView:
    """What the player currently sees: one player/sector snapshot plus the log.

    ``logs`` is ordered most recent first and is never truncated; display
    code asks for a bounded slice with :meth:`display_logs`.
    """

    player: Optional[PlayerState] = None
    sector: Optional[SectorView] = None
    logs: Deque[LogEntry] = field(default_factory=deque)

    def display_logs(self, limit: int = DEFAULT_DISPLAY_LOG_LIMIT) -> List[LogEntry]:
        return [entry for _, entry in zip(range(max(0, limit)), self.logs)]


@dataclass(frozen=True)
class ReconcileResult:
    player: Optional[PlayerState]
    sector: Optional[SectorView]
    appended: Tuple[LogEntry, ...] = ()


def _log_entries(raw: Iterable[Any]) -> List[LogEntry]:
    return [LogEntry.from_dict(item) for item in raw if isinstance(item, Mapping)]


class StateReconciler:
    """Applies state-bearing responses to a :class:`GameView`.

    ``state`` and ``sector`` replace the held snapshots wholesale; fields
    are never merged across responses. New log entries go to the head.
    """

    def __init__(self, view: Optional[GameView] = None) -> None:
        self.view = view if view is not None else GameView()

    def apply(self, response: Any) -> ReconcileResult:
        if not isinstance(response, Mapping):
            return ReconcileResult(None, None)

        player: Optional[PlayerState] = None
        sector: Optional[SectorView] = None

        state_data = response.get("state")
        if isinstance(state_data, Mapping):
            player = PlayerState.from_dict(state_data)
            self.view.player = player

        sector_data = response.get("sector")
        if isinstance(sector_data, Mapping):
            sector = SectorView.from_dict(sector_data)
            self.view.sector = sector

        appended: Tuple[LogEntry, ...] = ()
        raw_logs = response.get("logs")
        if isinstance(raw_logs, list):
            entries = _log_entries(raw_logs)
            for entry in entries:
                self.view.logs.appendleft(entry)
            appended = tuple(entries)

        logger.debug(
            "reconciler.apply player=%s sector=%s logs=%d",
            player is not None,
            sector is not None,
            len(appended),
        )
        return ReconcileResult(player, sector, appended)

    def replace_logs(self, raw_logs: Any) -> None:
        """Reset the log from a full state refresh."""
        self.view.logs.clear()
        if isinstance(raw_logs, list):
            for entry in _log_entries(raw_logs):
                self.view.logs.appendleft(entry)

    def apply_full(self, response: Any) -> ReconcileResult:
        """Apply a ``GET /state`` style response whose logs are the full history."""
        if not isinstance(response, Mapping):
            return ReconcileResult(None, None)
        partial = {key: value for key, value in response.items() if key != "logs"}
        result = self.apply(partial)
        if "logs" in response:
            self.replace_logs(response.get("logs"))
        return ReconcileResult(result.player, result.sector, tuple(self.view.logs))

    def reset(self) -> None:
        self.view.player = None
        self.view.sector = None
        self.view.logs.clear()
