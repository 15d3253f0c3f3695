import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_SERVER_URL = "http://localhost:8080"
DEFAULT_POLL_INTERVAL_SECONDS = 20.0
MIN_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_HTTP_TIMEOUT_SECONDS = 15.0


def get_session_file_path() -> Path:
    """Get the token file path (override with SOVEREIGN_SESSION_FILE)."""
    env_path = os.getenv("SOVEREIGN_SESSION_FILE")
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".sovereignconquest" / "session.json"


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return max(minimum, value)


@dataclass(frozen=True)
class ClientConfig:
    server_url: str = DEFAULT_SERVER_URL
    session_file: Path = Path(".sovereignconquest/session.json")
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    http_timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ClientConfig":
        """Build configuration from the environment (and a .env file if present)."""
        load_dotenv(env_file)
        server_url = (os.getenv("SOVEREIGN_SERVER_URL") or DEFAULT_SERVER_URL).rstrip("/")
        return cls(
            server_url=server_url,
            session_file=get_session_file_path(),
            poll_interval=_env_float(
                "SOVEREIGN_POLL_INTERVAL_SECONDS",
                DEFAULT_POLL_INTERVAL_SECONDS,
                MIN_POLL_INTERVAL_SECONDS,
            ),
            http_timeout=_env_float(
                "SOVEREIGN_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SECONDS, 1.0
            ),
        )
