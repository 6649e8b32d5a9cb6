"""Atomic writes for small private files such as the stored session."""

from __future__ import annotations

from pathlib import Path
import json
import os
import tempfile
from typing import Any


PRIVATE_FILE_MODE = 0o600
PRIVATE_DIR_MODE = 0o700


def atomic_write_text(path: Path, content: str, *, mode: int = PRIVATE_FILE_MODE) -> None:
    """Replace ``path`` with ``content`` in one rename.

    The temp file lives beside the target and carries ``mode`` before any
    bytes are written, so readers see either the old file or the complete new
    one with its final permissions.
    """

    if not path.parent.exists():
        path.parent.mkdir(mode=PRIVATE_DIR_MODE, parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        os.fchmod(fd, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)


def atomic_write_json(path: Path, payload: Any, *, mode: int = PRIVATE_FILE_MODE) -> None:
    atomic_write_text(path, json.dumps(payload, indent=2, sort_keys=True) + "\n", mode=mode)


def read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
