from pathlib import Path

from sovereignconquest.utils.config import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_SERVER_URL,
    ClientConfig,
)


def _clear_env(monkeypatch):
    for name in (
        "SOVEREIGN_SERVER_URL",
        "SOVEREIGN_SESSION_FILE",
        "SOVEREIGN_POLL_INTERVAL_SECONDS",
        "SOVEREIGN_HTTP_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_config_defaults(monkeypatch, tmp_path):
    _clear_env(monkeypatch)
    monkeypatch.setenv("HOME", str(tmp_path))
    config = ClientConfig.from_env(env_file=str(tmp_path / "missing.env"))

    assert config.server_url == DEFAULT_SERVER_URL
    assert config.poll_interval == DEFAULT_POLL_INTERVAL_SECONDS
    assert config.http_timeout == 15.0
    assert config.session_file == Path(tmp_path) / ".sovereignconquest" / "session.json"


def test_config_reads_environment(monkeypatch, tmp_path):
    _clear_env(monkeypatch)
    monkeypatch.setenv("SOVEREIGN_SERVER_URL", "https://play.example.com/")
    monkeypatch.setenv("SOVEREIGN_SESSION_FILE", str(tmp_path / "token.json"))
    monkeypatch.setenv("SOVEREIGN_POLL_INTERVAL_SECONDS", "0.1")
    monkeypatch.setenv("SOVEREIGN_HTTP_TIMEOUT", "not-a-number")

    config = ClientConfig.from_env(env_file=str(tmp_path / "missing.env"))

    assert config.server_url == "https://play.example.com"
    assert config.session_file == tmp_path / "token.json"
    assert config.poll_interval == 1.0
    assert config.http_timeout == 15.0


def test_config_loads_dotenv_file(monkeypatch, tmp_path):
    _clear_env(monkeypatch)
    # Recorded so the value load_dotenv writes is removed on teardown.
    monkeypatch.setenv("SOVEREIGN_SERVER_URL", "placeholder")
    monkeypatch.delenv("SOVEREIGN_SERVER_URL")
    env_file = tmp_path / ".env"
    env_file.write_text("SOVEREIGN_SERVER_URL=http://dotenv.test:9000\n")

    config = ClientConfig.from_env(env_file=str(env_file))

    assert config.server_url == "http://dotenv.test:9000"
