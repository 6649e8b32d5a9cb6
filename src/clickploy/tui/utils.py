"""Shared formatting helpers for the Clickploy TUI."""

from __future__ import annotations

from clickploy.api.models import DeploymentStatus


_GIB = 1024.0 * 1024.0 * 1024.0

_STATUS_SYMBOLS = {
    DeploymentStatus.LIVE: "●",
    DeploymentStatus.BUILDING: "◐",
    DeploymentStatus.FAILED: "✗",
}


def _clip(value: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(value) <= width:
        return value
    if width <= 3:
        return value[:width]
    return f"{value[: width - 3]}..."


def _short_commit(commit: str) -> str:
    return commit[:7] if commit else "-"


def _date_only(iso_ts: str) -> str:
    if not iso_ts:
        return "-"
    return iso_ts.split("T", 1)[0]


def _bytes_to_gb(value: int) -> str:
    return f"{value / _GIB:.2f} GB"


def _mask_key(api_key: str) -> str:
    if len(api_key) > 10:
        return f"{api_key[:4]}...{api_key[-4:]}"
    return "••••••••"


def _status_symbol(status: DeploymentStatus) -> str:
    return _STATUS_SYMBOLS.get(status, "○")


def _status_style(status: DeploymentStatus | str) -> str:
    normalized = status.value if isinstance(status, DeploymentStatus) else status.lower()
    if normalized in ("live", "running"):
        return "bold green"
    if normalized == "building":
        return "yellow"
    if normalized == "pending":
        return "cyan"
    if normalized == "failed":
        return "bold red"
    if normalized == "stopped":
        return "dim"
    return "bright_black"
