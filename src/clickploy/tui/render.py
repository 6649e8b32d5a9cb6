"""Renderer: turn the current ``AppState`` into Rich renderables.

Every function here only reads state. The Textual app calls
``render_status_line`` and ``render_main_panel`` once per tick.
"""

from __future__ import annotations

from typing import Callable

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from clickploy.api.models import Database, Deployment, Project
from clickploy.tui.help import QUICK_REFERENCE, docs_url
from clickploy.tui.screens import ScreenKind
from clickploy.tui.state import AppState, ChoiceField, Form, TextField

from .utils import (
    _bytes_to_gb,
    _clip,
    _date_only,
    _mask_key,
    _short_commit,
    _status_style,
    _status_symbol,
)


def _hints(*pairs: tuple[str, str]) -> Text:
    line = Text(style="dim")
    for idx, (key, label) in enumerate(pairs):
        if idx:
            line.append(" | ")
        line.append(key, style="yellow")
        line.append(f" {label}")
    return line


def _feedback(state: AppState) -> list[RenderableType]:
    lines: list[RenderableType] = []
    if state.error:
        lines.append(Text(state.error, style="bold red"))
    elif state.message:
        lines.append(Text(state.message, style="green"))
    return lines


def _list_table(*columns: str) -> Table:
    table = Table(expand=True, show_header=True, pad_edge=False)
    table.add_column(" ", width=1)
    for column in columns:
        table.add_column(column)
    return table


def _marker(state: AppState, idx: int) -> str:
    return ">" if idx == state.selected_index else " "


def render_status_line(state: AppState) -> Text:
    user = state.user.name if state.user is not None else "-"
    server = state.session.server_url if state.session is not None else "-"
    return Text(
        f" Clickploy | user={user} | server={server} | screen={state.screen} | q: Quit",
        style="black on cyan",
    )


def render_main_panel(state: AppState, *, height: int = 24) -> RenderableType:
    renderer = _SCREEN_RENDERERS.get(state.screen.kind)
    if renderer is None:
        return Panel(Text(str(state.screen)), title="Clickploy", border_style="cyan")
    return renderer(state, height)


def _render_form(form: Form, *, show_secret: bool = False) -> Group:
    rows: list[RenderableType] = []
    for idx, item in enumerate(form.fields):
        focused = idx == form.focus
        label_style = "bold yellow" if focused else "bold"
        line = Text()
        line.append(f"{'>' if focused else ' '} {item.label}: ", style=label_style)
        if isinstance(item, TextField):
            shown = "•" * len(item.value) if item.secret and not show_secret else item.value
            line.append(shown)
            if focused:
                line.append("_", style="blink")
        elif isinstance(item, ChoiceField):
            for option in item.options:
                selected = option == item.value
                line.append(f" [{'x' if selected else ' '}] {option}", style="cyan" if selected else "")
        rows.append(line)
    return Group(*rows)


def _render_setup(state: AppState, height: int) -> Panel:
    body = Group(
        Text("Welcome! Let's configure your CLI to connect to Clickploy.", style="bold cyan"),
        Text(""),
        Text("Enter your server URL and press Enter to open the session settings page,", style="dim"),
        Text("then paste the API key shown there and press Enter again.", style="dim"),
        Text(""),
        _render_form(state.setup_form),
        Text(""),
        *_feedback(state),
        _hints(("Tab", "Switch Field"), ("Enter", "Continue"), ("Esc", "Quit")),
    )
    return Panel(body, title="Setup", border_style="cyan")


def _render_projects(state: AppState, height: int) -> Panel:
    table = _list_table("Status", "Name", "Port", "Repository")
    if not state.projects:
        table.add_row("", "(none)", "Press 'n' to create a project", "-", "-")
    for idx, project in enumerate(state.projects):
        status = project.status
        table.add_row(
            _marker(state, idx),
            Text(f"{_status_symbol(status)} {status.value}", style=_status_style(status)),
            project.name,
            str(project.port),
            _clip(project.repo_url, 60),
        )

    header = Text("Clickploy CLI", style="bold cyan")
    if state.user is not None:
        header.append(f" - {state.user.name} ({state.user.email})", style="cyan")

    body = Group(
        header,
        *_feedback(state),
        table,
        _hints(
            ("↑↓", "Navigate"),
            ("Enter", "Details"),
            ("n", "New"),
            ("d", "Deployments"),
            ("w", "Network"),
        ),
        _hints(
            ("a", "Activity"),
            ("t", "Storage"),
            ("h", "Help"),
            ("s", "Settings"),
            ("r", "Refresh"),
            ("q", "Quit"),
        ),
    )
    return Panel(body, title=f"Projects ({len(state.projects)})", border_style="cyan")


def _render_create_project(state: AppState, height: int) -> Panel:
    body = Group(
        Text("Create New Project", style="bold cyan"),
        Text(""),
        _render_form(state.create_project_form),
        Text(""),
        *_feedback(state),
        _hints(("Tab", "Next Field"), ("Enter", "Create"), ("Esc", "Cancel")),
    )
    return Panel(body, title="New Project", border_style="cyan")


def _deployment_row(table: Table, marker: str, deployment: Deployment, *, with_project: bool) -> None:
    status = deployment.status
    cells: list[RenderableType] = [
        marker,
        Text(f"{_status_symbol(status)} {status.value}", style=_status_style(status)),
    ]
    if with_project:
        cells.append(_clip(deployment.project_id, 24))
    cells.extend([_short_commit(deployment.commit), _date_only(deployment.created_at)])
    table.add_row(*cells)


def _project_overview(project: Project) -> Group:
    return Group(
        Text.assemble(("Name: ", "bold"), project.name),
        Text.assemble(("Repository: ", "bold"), project.repo_url),
        Text.assemble(("Port: ", "bold"), str(project.port)),
        Text.assemble(("Runtime: ", "bold"), project.runtime or "auto"),
        Text.assemble(("URL: ", "bold"), (f"http://localhost:{project.port}", "cyan")),
    )


def _render_project_detail(state: AppState, height: int) -> Panel:
    project = state.selected_project
    if project is None:
        return Panel(
            Group(Text("Loading project..."), *_feedback(state)),
            title="Project Detail",
            border_style="cyan",
        )

    table = _list_table("Status", "Commit", "Created")
    if not project.deployments:
        table.add_row("", "No deployments yet", "-", "-")
    for deployment in project.deployments[: max(3, height - 14)]:
        _deployment_row(table, " ", deployment, with_project=False)

    body = Group(
        _project_overview(project),
        Text(""),
        *_feedback(state),
        Text("Deployments", style="bold"),
        table,
        _hints(
            ("Backspace", "Back"),
            ("r", "Redeploy"),
            ("s", "Stop"),
            ("l", "View Logs"),
            ("c", "Settings"),
            ("q", "Quit"),
        ),
    )
    return Panel(body, title=f"Project: {project.name}", border_style="cyan")


def _render_project_settings(state: AppState, height: int) -> Panel:
    project = state.selected_project
    if project is None:
        return Panel(Text("Loading project..."), title="Project Settings", border_style="cyan")

    env_table = Table(expand=True, show_header=True, pad_edge=False)
    env_table.add_column("Key")
    env_table.add_column("Value")
    if not project.env_vars:
        env_table.add_row("(none)", "-")
    for env_var in project.env_vars:
        env_table.add_row(env_var.key, "••••••••")

    body = Group(
        Text("Git Configuration", style="bold cyan"),
        Text.assemble(("Repository: ", "bold"), project.repo_url),
        Text.assemble(("Webhook Secret: ", "bold"), "••••••••"),
        Text(""),
        Text("Build & Output Settings", style="bold cyan"),
        Text.assemble(("Runtime: ", "bold"), project.runtime or "auto (nodejs)"),
        Text.assemble(("Install Cmd: ", "bold"), project.install_command or "default"),
        Text.assemble(("Build Cmd: ", "bold"), project.build_command or "default"),
        Text.assemble(("Start Cmd: ", "bold"), project.start_command or "default"),
        Text(""),
        Text("Networking", style="bold cyan"),
        Text.assemble(("Internal Port: ", "bold"), str(project.port)),
        Text.assemble(("Local URL: ", "bold"), (f"http://localhost:{project.port}", "cyan")),
        Text(""),
        Text("Environment Variables", style="bold cyan"),
        env_table,
        _hints(("Backspace", "Back"), ("q", "Quit")),
    )
    return Panel(body, title=f"Settings: {project.name}", border_style="cyan")


def _log_window(text: str, scroll: int, following: bool, rows: int) -> str:
    lines = text.split("\n")
    rows = max(1, rows)
    if following:
        start = max(0, len(lines) - rows)
    else:
        start = min(max(0, scroll), max(0, len(lines) - 1))
    return "\n".join(lines[start : start + rows])


def _render_deployment_logs(state: AppState, height: int) -> Panel:
    deployment_id = state.screen.target_id or ""
    deployment = state.deployment(deployment_id)
    if deployment is not None:
        header = (
            f"Deployment: {deployment_id} | Status: {deployment.status.value} "
            f"| Commit: {_short_commit(deployment.commit)}"
        )
    else:
        header = f"Deployment: {deployment_id}"

    buffer = state.live_logs
    rows = max(5, height - 6)
    if buffer:
        title = "● Live Stream"
        content = _log_window(buffer.text, buffer.scroll, buffer.following, rows)
    elif deployment is not None and deployment.logs:
        title = "Logs"
        content = _log_window(state.displayed_log_text(), buffer.scroll, buffer.following, rows)
    elif deployment is not None:
        title = "Logs"
        content = "Connecting to log stream..."
    else:
        title = "Logs"
        content = "Loading logs..."

    position = "following" if buffer.following else f"line {buffer.scroll + 1}"
    body = Group(
        Text(header, style="bold cyan"),
        Panel(Text(content), title=title, border_style="dim"),
        _hints(
            ("Backspace", "Back"),
            ("↑↓/PgUp/PgDn", "Scroll"),
            ("Home/End", "Top/Follow"),
            ("q", "Quit"),
        ),
        Text(position, style="dim"),
    )
    return Panel(body, title="Live Logs", border_style="cyan")


def _render_deployments(state: AppState, height: int) -> Panel:
    table = _list_table("Status", "Project", "Commit", "Created")
    if not state.activity:
        table.add_row("", "(none)", "-", "-", "-")
    for idx, deployment in enumerate(state.activity):
        _deployment_row(table, _marker(state, idx), deployment, with_project=True)

    title = "Activity" if state.screen.kind is ScreenKind.ACTIVITY else "Deployments"
    body = Group(
        *_feedback(state),
        table,
        _hints(
            ("↑↓", "Navigate"),
            ("Enter", "View Logs"),
            ("Backspace", "Back"),
            ("r", "Refresh"),
            ("q", "Quit"),
        ),
    )
    return Panel(body, title=f"{title} ({len(state.activity)})", border_style="cyan")


def _render_network(state: AppState, height: int) -> Panel:
    table = _list_table("Status", "Service", "Port", "URL")
    if not state.projects:
        table.add_row("", "(none)", "-", "-", "-")
    for project in state.projects:
        status = project.status
        table.add_row(
            " ",
            Text(_status_symbol(status), style=_status_style(status)),
            project.name,
            str(project.port),
            f"http://localhost:{project.port}",
        )
    body = Group(
        *_feedback(state),
        table,
        _hints(("Backspace", "Back"), ("r", "Refresh"), ("q", "Quit")),
    )
    return Panel(body, title=f"Active Services ({len(state.projects)})", border_style="cyan")


def _render_credentials(state: AppState, database: Database) -> Panel:
    lines: list[RenderableType] = [
        Text.assemble(("Name: ", "bold"), database.name),
        Text.assemble(("Type: ", "bold"), database.engine),
    ]
    if not database.has_credentials:
        lines.extend(
            [
                Text(""),
                Text("SQLite databases are file-based and don't have credentials."),
                Text(f"Database file: data/user_dbs/{database.name}.db"),
            ]
        )
    elif state.db_credentials is not None:
        creds = state.db_credentials
        lines.extend(
            [
                Text.assemble(("Port: ", "bold"), str(database.port)),
                Text(""),
                Text.assemble(("Username: ", "bold"), creds.username),
                Text.assemble(("Password: ", "bold"), creds.password),
                Text(""),
                Text.assemble(("Internal URI: ", "bold"), (creds.uri, "cyan")),
                Text.assemble(("Public URI: ", "bold"), (creds.public_uri, "cyan")),
            ]
        )
    else:
        lines.extend([Text(""), Text("Loading credentials...")])

    lines.extend(_feedback(state))
    lines.append(_hints(("Esc/Backspace", "Back"), ("q", "Quit")))
    return Panel(Group(*lines), title="Database Credentials", border_style="yellow")


def _render_storage(state: AppState, height: int) -> Panel:
    if state.show_db_credentials and state.selected_database is not None:
        return _render_credentials(state, state.selected_database)

    stats = state.storage_stats
    if stats is not None:
        usage = Text.assemble(
            ("Storage: ", "bold"),
            f"{_bytes_to_gb(stats.used)} / {_bytes_to_gb(stats.total)} ({stats.percent:.1f}%)",
        )
    else:
        usage = Text("Loading storage stats...")

    table = _list_table("Name", "Type", "Status", "Port", "Size")
    if not state.databases:
        table.add_row("", "No databases found", "-", "-", "-", "-")
    for idx, database in enumerate(state.databases):
        table.add_row(
            _marker(state, idx),
            database.name,
            database.engine,
            Text(database.status, style=_status_style(database.status)),
            str(database.port),
            f"{database.size_mb:.1f} MB",
        )

    body = Group(
        usage,
        *_feedback(state),
        table,
        _hints(
            ("↑↓", "Navigate"),
            ("Enter", "View Credentials"),
            ("n", "New Database"),
            ("d", "Delete"),
            ("s", "Stop"),
            ("r", "Restart"),
            ("Backspace", "Back"),
            ("q", "Quit"),
        ),
    )
    return Panel(body, title="Storage Management", border_style="cyan")


def _render_create_database(state: AppState, height: int) -> Panel:
    body = Group(
        Text("Create New Database", style="bold cyan"),
        Text(""),
        _render_form(state.create_database_form),
        Text(""),
        *_feedback(state),
        _hints(("Tab", "Switch Field"), ("↑↓", "Select Type"), ("Enter", "Create"), ("Esc", "Cancel")),
    )
    return Panel(body, title="New Database", border_style="cyan")


def _render_docs(state: AppState, height: int) -> Panel:
    sections: list[RenderableType] = [Text("Clickploy CLI Quick Reference", style="bold yellow"), Text("")]
    for title, entries in QUICK_REFERENCE:
        sections.append(Text(f"{title}:", style="bold"))
        for keys, description in entries:
            sections.append(Text(f"  {keys:<12} - {description}"))
        sections.append(Text(""))
    server_url = state.session.server_url if state.session is not None else None
    sections.append(Text("For full documentation, visit:", style="bold"))
    sections.append(Text(f"  {docs_url(server_url)}", style="underline cyan"))
    sections.append(_hints(("Backspace", "Back"), ("q", "Quit")))
    return Panel(Group(*sections), title="Documentation & Help", border_style="cyan")


def _render_settings(state: AppState, height: int) -> Panel:
    session = state.session
    server = session.server_url if session is not None else "-"
    masked = _mask_key(session.api_key) if session is not None else "-"
    body = Group(
        Text("Current Configuration", style="bold cyan"),
        Text.assemble(("Server URL: ", "bold"), (server, "cyan")),
        Text.assemble(("API Key: ", "bold"), (masked, "yellow")),
        Text(""),
        Text("Available Actions:", style="bold"),
        Text.assemble(("c", "yellow"), " - Reconfigure (change server URL and API key)"),
        Text.assemble(("d", "red"), " - Delete configuration (logout)"),
        Text(""),
        *_feedback(state),
        _hints(("Backspace", "Back"), ("q", "Quit")),
    )
    return Panel(body, title="Settings", border_style="cyan")


_SCREEN_RENDERERS: dict[ScreenKind, Callable[[AppState, int], RenderableType]] = {
    ScreenKind.SETUP: _render_setup,
    ScreenKind.PROJECT_LIST: _render_projects,
    ScreenKind.CREATE_PROJECT: _render_create_project,
    ScreenKind.PROJECT_DETAIL: _render_project_detail,
    ScreenKind.PROJECT_SETTINGS: _render_project_settings,
    ScreenKind.DEPLOYMENT_LOGS: _render_deployment_logs,
    ScreenKind.DEPLOYMENT_LIST: _render_deployments,
    ScreenKind.ACTIVITY: _render_deployments,
    ScreenKind.NETWORK: _render_network,
    ScreenKind.STORAGE: _render_storage,
    ScreenKind.CREATE_DATABASE: _render_create_database,
    ScreenKind.DOCS: _render_docs,
    ScreenKind.SETTINGS: _render_settings,
}
