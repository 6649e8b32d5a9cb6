"""Persistent session store: the saved server URL and API key."""

from __future__ import annotations

import json
from pathlib import Path

from clickploy.config.schema import Session
from clickploy.observability.logging import get_logger, log_event
from clickploy.storage.atomic import atomic_write_json, read_json


logger = get_logger("clickploy.session")


class SessionStoreError(RuntimeError):
    """Raised when the session file cannot be written or removed."""


class SessionStore:
    """Load, save and delete the session file at ``path``."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Session | None:
        """Return the stored session, or ``None`` when absent or unreadable."""

        try:
            payload = read_json(self.path)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            log_event(logger, "session_unreadable", path=str(self.path), error=str(exc))
            return None
        if not isinstance(payload, dict):
            return None

        server_url = payload.get("server_url")
        api_key = payload.get("api_key")
        if not isinstance(server_url, str) or not isinstance(api_key, str):
            return None
        if not server_url or not api_key:
            return None
        return Session(server_url=server_url, api_key=api_key)

    def save(self, session: Session) -> None:
        try:
            atomic_write_json(self.path, session.to_payload())
        except OSError as exc:
            raise SessionStoreError(f"Failed to save config: {exc}") from exc
        log_event(logger, "session_saved", path=str(self.path), server_url=session.server_url)

    def delete(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise SessionStoreError(f"Failed to delete config: {exc}") from exc
        log_event(logger, "session_deleted", path=str(self.path))
