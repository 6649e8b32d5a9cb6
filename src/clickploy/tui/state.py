"""Application state for the Clickploy TUI.

``AppState`` is the single source of truth for the active screen, the cached
collections fetched from the gateway, per-screen transient data (forms, the
live log buffer, database credentials) and the one-line feedback shown to the
operator. It is owned and mutated only by the foreground loop; the transition
methods here never perform I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final, Literal, Sequence

from clickploy.api.models import (
    DATABASE_ENGINES,
    Database,
    DatabaseCredentials,
    Deployment,
    Project,
    StorageStats,
    User,
)
from clickploy.config.schema import DEFAULT_SERVER_URL, Session
from clickploy.tui.screens import Screen, ScreenKind, back_target


BACK: Final = "back"

NavTarget = Screen | Literal["back"]

# Scroll offset meaning "always show the newest output".
FOLLOW_TAIL: Final = -1


class LiveLogBuffer:
    """Append-only text accumulator with a scroll offset."""

    __slots__ = ("_chunks", "_line_count", "scroll")

    def __init__(self) -> None:
        self._chunks: list[str] = []
        self._line_count = 0
        self.scroll = 0

    def __len__(self) -> int:
        return sum(len(chunk) for chunk in self._chunks)

    def __bool__(self) -> bool:
        return bool(self._chunks)

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    @property
    def line_count(self) -> int:
        if not self._chunks:
            return 0
        return self._line_count + 1

    @property
    def following(self) -> bool:
        return self.scroll == FOLLOW_TAIL

    def append(self, chunk: str) -> None:
        if not chunk:
            return
        self._chunks.append(chunk)
        self._line_count += chunk.count("\n")

    def clear(self) -> None:
        self._chunks.clear()
        self._line_count = 0
        self.scroll = 0

    def scroll_by(self, delta: int, line_count: int | None = None) -> None:
        """Move the offset by ``delta`` within ``line_count`` lines.

        ``line_count`` defaults to the buffer's own text; pass the size of
        whatever text is on screen when that is a stored snapshot instead.
        """

        total = self.line_count if line_count is None else line_count
        last_line = max(0, total - 1)
        base = last_line if self.following else self.scroll
        self.scroll = max(0, min(last_line, base + delta))

    def scroll_home(self) -> None:
        self.scroll = 0

    def follow_tail(self) -> None:
        self.scroll = FOLLOW_TAIL


@dataclass(slots=True)
class TextField:
    name: str
    label: str
    value: str = ""
    secret: bool = False

    def insert(self, text: str) -> None:
        self.value += text

    def backspace(self) -> None:
        self.value = self.value[:-1]


@dataclass(slots=True)
class ChoiceField:
    name: str
    label: str
    options: tuple[str, ...]
    index: int = 0

    @property
    def value(self) -> str:
        return self.options[self.index]

    def cycle(self, delta: int) -> None:
        self.index = (self.index + delta) % len(self.options)


FormField = TextField | ChoiceField


@dataclass(slots=True)
class Form:
    """Ordered fields plus the index of the focused one."""

    fields: list[FormField]
    focus: int = 0

    @property
    def focused(self) -> FormField:
        return self.fields[self.focus]

    def next_field(self) -> None:
        self.focus = (self.focus + 1) % len(self.fields)

    def previous_field(self) -> None:
        self.focus = (self.focus - 1) % len(self.fields)

    def field(self, name: str) -> FormField:
        for item in self.fields:
            if item.name == name:
                return item
        raise KeyError(name)

    def value(self, name: str) -> str:
        return self.field(name).value.strip()

    def insert(self, text: str) -> None:
        target = self.focused
        if isinstance(target, TextField):
            target.insert(text)

    def backspace(self) -> None:
        target = self.focused
        if isinstance(target, TextField):
            target.backspace()

    def cycle_choice(self, delta: int) -> None:
        target = self.focused
        if isinstance(target, ChoiceField):
            target.cycle(delta)


def setup_form(server_url: str = DEFAULT_SERVER_URL) -> Form:
    return Form(
        fields=[
            TextField("server_url", "Server URL", value=server_url),
            TextField("api_key", "API Key", secret=True),
        ]
    )


def create_project_form() -> Form:
    return Form(
        fields=[
            TextField("name", "Project Name"),
            TextField("repo_url", "Git Repository URL"),
            TextField("install_command", "Install Command (optional)"),
            TextField("build_command", "Build Command (optional)"),
            TextField("start_command", "Start Command (optional)"),
        ]
    )


def create_database_form() -> Form:
    return Form(
        fields=[
            TextField("name", "Name"),
            ChoiceField("engine", "Type", options=DATABASE_ENGINES),
        ]
    )


class AppState:
    """Canonical client state plus its pure transitions."""

    def __init__(self, *, default_server_url: str = DEFAULT_SERVER_URL) -> None:
        self.screen = Screen.setup()
        self.session: Session | None = None
        self.user: User | None = None

        self.projects: list[Project] = []
        self.selected_project: Project | None = None
        self.activity: list[Deployment] = []
        self.databases: list[Database] = []
        self.storage_stats: StorageStats | None = None

        self.selected_database: Database | None = None
        self.show_db_credentials = False
        self.db_credentials: DatabaseCredentials | None = None

        self.message = ""
        self.error: str | None = None
        self.selected_index = 0
        self.live_logs = LiveLogBuffer()

        self.default_server_url = default_server_url
        self.setup_form = setup_form(default_server_url)
        self.create_project_form = create_project_form()
        self.create_database_form = create_database_form()

        self.should_quit = False
        self.exit_code = 0

    def sign_in(self, session: Session, user: User) -> None:
        self.session = session
        self.user = user
        self.setup_form = setup_form(self.default_server_url)

    def request_quit(self, exit_code: int = 0) -> None:
        self.should_quit = True
        self.exit_code = exit_code

    def active_form(self) -> Form | None:
        kind = self.screen.kind
        if kind is ScreenKind.SETUP:
            return self.setup_form
        if kind is ScreenKind.CREATE_PROJECT:
            return self.create_project_form
        if kind is ScreenKind.CREATE_DATABASE:
            return self.create_database_form
        return None

    def active_list(self) -> Sequence[Any]:
        """Return the collection the selection index currently points into."""

        kind = self.screen.kind
        if kind is ScreenKind.PROJECT_LIST:
            return self.projects
        if kind in (ScreenKind.ACTIVITY, ScreenKind.DEPLOYMENT_LIST):
            return self.activity
        if kind is ScreenKind.STORAGE and not self.show_db_credentials:
            return self.databases
        return ()

    def selected_item(self) -> Any | None:
        items = self.active_list()
        if not items or self.selected_index >= len(items):
            return None
        return items[self.selected_index]

    def select_next(self) -> None:
        size = len(self.active_list())
        if size == 0:
            return
        self.selected_index = (self.selected_index + 1) % size

    def select_previous(self) -> None:
        size = len(self.active_list())
        if size == 0:
            return
        self.selected_index = (self.selected_index - 1) % size

    def clamp_selection(self) -> None:
        size = len(self.active_list())
        if size == 0:
            self.selected_index = 0
        elif self.selected_index >= size:
            self.selected_index = size - 1

    def navigate(self, target: NavTarget) -> Screen:
        """Make ``target`` (or the back-table destination) the active screen.

        Every transition resets the selection, clears the feedback line and
        drops per-screen transient data belonging to the screen being left.
        """

        if target == BACK:
            selected_id = self.selected_project.id if self.selected_project else None
            next_screen = back_target(self.screen, selected_id)
        elif isinstance(target, Screen):
            next_screen = target
        else:
            raise TypeError(f"Unsupported navigation target: {target!r}")

        if self.screen.kind is ScreenKind.DEPLOYMENT_LOGS and next_screen != self.screen:
            self.live_logs.clear()
        self.close_credentials()

        if next_screen.kind is ScreenKind.PROJECT_LIST:
            self.selected_project = None
        elif next_screen.kind in (ScreenKind.PROJECT_DETAIL, ScreenKind.PROJECT_SETTINGS):
            if self.selected_project is not None and self.selected_project.id != next_screen.target_id:
                self.selected_project = None
        elif next_screen.kind is ScreenKind.CREATE_PROJECT:
            self.create_project_form = create_project_form()
        elif next_screen.kind is ScreenKind.CREATE_DATABASE:
            self.create_database_form = create_database_form()

        self.screen = next_screen
        self.selected_index = 0
        self.message = ""
        self.error = None
        return next_screen

    def open_credentials(self) -> Database | None:
        """Show the credentials view for the highlighted database."""

        if self.screen.kind is not ScreenKind.STORAGE or self.show_db_credentials:
            return None
        database = self.selected_item()
        if database is None:
            return None
        self.selected_database = database
        self.show_db_credentials = True
        self.db_credentials = None
        return database

    def set_credentials(self, credentials: DatabaseCredentials) -> None:
        if self.show_db_credentials:
            self.db_credentials = credentials

    def close_credentials(self) -> None:
        self.show_db_credentials = False
        self.db_credentials = None
        self.selected_database = None

    def displayed_log_text(self) -> str:
        """Text shown on the logs screen: the live buffer, else the stored snapshot."""

        if self.live_logs:
            return self.live_logs.text
        if self.screen.kind is not ScreenKind.DEPLOYMENT_LOGS or self.screen.target_id is None:
            return ""
        deployment = self.deployment(self.screen.target_id)
        return deployment.logs if deployment is not None else ""

    def scroll_logs(self, delta: int) -> None:
        text = self.displayed_log_text()
        self.live_logs.scroll_by(delta, line_count=text.count("\n") + 1 if text else 0)

    def deployment(self, deployment_id: str) -> Deployment | None:
        """Find a cached deployment record by id."""

        if self.selected_project is not None:
            for item in self.selected_project.deployments:
                if item.id == deployment_id:
                    return item
        for item in self.activity:
            if item.id == deployment_id:
                return item
        return None
