"""Dataclass-based configuration schema for the Clickploy client."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path


DEFAULT_SERVER_URL = "http://localhost:8080"


def default_config_dir() -> Path:
    """Return ``$XDG_CONFIG_HOME/clickploy`` (``~/.config/clickploy`` by default)."""

    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base).expanduser() if base else Path.home() / ".config"
    return root / "clickploy"


@dataclass(slots=True)
class Session:
    """Endpoint and credential used to authenticate gateway calls."""

    server_url: str
    api_key: str

    def to_payload(self) -> dict[str, str]:
        return {"server_url": self.server_url, "api_key": self.api_key}


@dataclass(slots=True)
class ClientConfig:
    """Runtime options for one client process."""

    config_dir: Path
    log_file: Path | None = None
    log_level: str = "INFO"
    tick_interval: float = 0.1
    request_timeout: float = 10.0
    log_queue_size: int = 1024
    default_server_url: str = DEFAULT_SERVER_URL

    @property
    def session_path(self) -> Path:
        return self.config_dir / "config.json"

    @property
    def resolved_log_file(self) -> Path:
        if self.log_file is not None:
            return self.log_file
        return self.config_dir / "clickploy.log"
