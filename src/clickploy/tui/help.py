"""Static quick reference shown on the Docs screen."""

from __future__ import annotations


DOCS_URL_PATH = "/docs"

QUICK_REFERENCE: tuple[tuple[str, tuple[tuple[str, str], ...]], ...] = (
    (
        "Navigation",
        (
            ("↑↓ / j k", "Navigate lists"),
            ("Enter", "Select / View details"),
            ("Backspace", "Go back"),
            ("Tab", "Next field (forms)"),
            ("q / Ctrl+C", "Quit"),
        ),
    ),
    (
        "Main Screen Shortcuts",
        (
            ("n", "Create new project"),
            ("a", "View activity"),
            ("d", "View deployments"),
            ("w", "Network overview"),
            ("t", "Storage management"),
            ("s", "Settings"),
            ("h", "Help (this screen)"),
            ("r", "Refresh current view"),
        ),
    ),
    (
        "Project Actions",
        (
            ("r", "Redeploy project"),
            ("s", "Stop project"),
            ("l", "View logs"),
            ("c", "View settings"),
        ),
    ),
    (
        "Deployment Logs",
        (
            ("↑↓ / j k", "Scroll one line"),
            ("PgUp / PgDn", "Scroll ten lines"),
            ("Home / End", "Jump to top / follow newest output"),
        ),
    ),
    (
        "Storage",
        (
            ("Enter", "View credentials"),
            ("n", "New database"),
            ("d / s / r", "Delete / Stop / Restart database"),
        ),
    ),
)


def docs_url(server_url: str | None) -> str:
    base = (server_url or "http://localhost:8080").rstrip("/")
    return f"{base}{DOCS_URL_PATH}"
