"""Persistent storage for the session bearer token."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional


logger = logging.getLogger(__name__)

TOKEN_KEY = "sovereign_token"


class SessionStore:
    """Single token slot persisted to a JSON file.

    The file survives process restarts. Expiry is never tracked here; the
    server rejects stale tokens with a 401 and the session tears down.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] = {}
        self._loaded = False

    def load(self) -> None:
        """Read the slot from disk. Missing or corrupt files read as empty."""
        self._loaded = True
        self._data = {}
        if not self.path.exists():
            return
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("session_store.load_failed path=%s error=%s", self.path, exc)
            return
        if isinstance(data, dict):
            self._data = data

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(self._data, handle, indent=2)
        tmp.replace(self.path)

    def get(self) -> Optional[str]:
        self._ensure_loaded()
        token = self._data.get(TOKEN_KEY)
        if isinstance(token, str) and token:
            return token
        return None

    def set(self, token: str) -> None:
        if not token:
            raise ValueError("token must be a non-empty string")
        self._ensure_loaded()
        self._data[TOKEN_KEY] = token
        self._flush()

    def clear(self) -> None:
        self._ensure_loaded()
        if TOKEN_KEY not in self._data and not self.path.exists():
            return
        self._data.pop(TOKEN_KEY, None)
        self._flush()


class MemorySessionStore(SessionStore):
    """Same contract as :class:`SessionStore` without touching disk."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token or None

    def load(self) -> None:
        return

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        if not token:
            raise ValueError("token must be a non-empty string")
        self._token = token

    def clear(self) -> None:
        self._token = None
