"""Input dispatcher: map one key press to at most one command.

Dispatch is a lookup keyed on (screen kind, key) with two global overrides
and dedicated routing for the text-entry screens. It only reads state; the
controller performs whatever the returned command asks for.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from clickploy.api.models import Deployment, Project
from clickploy.tui.screens import Screen, ScreenKind
from clickploy.tui.state import BACK, AppState, ChoiceField


class Action(str, Enum):
    QUIT = "quit"
    FORCE_QUIT = "force_quit"
    NAVIGATE = "navigate"
    SHOW_ERROR = "show_error"

    SELECT_NEXT = "select_next"
    SELECT_PREVIOUS = "select_previous"
    SCROLL = "scroll"
    SCROLL_HOME = "scroll_home"
    SCROLL_END = "scroll_end"

    FIELD_INSERT = "field_insert"
    FIELD_BACKSPACE = "field_backspace"
    FIELD_NEXT = "field_next"
    FIELD_PREVIOUS = "field_previous"
    CHOICE_NEXT = "choice_next"
    CHOICE_PREVIOUS = "choice_previous"

    REFRESH_PROJECTS = "refresh_projects"
    REFRESH_ACTIVITY = "refresh_activity"
    SUBMIT_SETUP = "submit_setup"
    SUBMIT_PROJECT = "submit_project"
    SUBMIT_DATABASE = "submit_database"
    REDEPLOY = "redeploy"
    STOP_PROJECT = "stop_project"
    OPEN_CREDENTIALS = "open_credentials"
    CLOSE_CREDENTIALS = "close_credentials"
    DELETE_DATABASE = "delete_database"
    STOP_DATABASE = "stop_database"
    RESTART_DATABASE = "restart_database"
    RECONFIGURE = "reconfigure"
    LOGOUT = "logout"


@dataclass(frozen=True, slots=True)
class KeyPress:
    """A terminal key event: Textual key name plus the typed character, if any."""

    key: str
    character: str | None = None

    @property
    def printable(self) -> str | None:
        char = self.character
        if char is not None and len(char) == 1 and char.isprintable():
            return char
        return None


@dataclass(frozen=True, slots=True)
class Command:
    action: Action
    argument: Any = None


# Placeholders resolved against state at dispatch time.
class _Resolve(str, Enum):
    SELECTED_PROJECT = "selected_project"
    SELECTED_DEPLOYMENT_LOGS = "selected_deployment_logs"
    LATEST_LOGS = "latest_logs"
    PROJECT_SETTINGS = "project_settings"


def _go(kind: ScreenKind) -> Command:
    return Command(Action.NAVIGATE, Screen(kind))


_BACK = Command(Action.NAVIGATE, BACK)

_LIST_MOVES: dict[str, Command] = {
    "down": Command(Action.SELECT_NEXT),
    "j": Command(Action.SELECT_NEXT),
    "up": Command(Action.SELECT_PREVIOUS),
    "k": Command(Action.SELECT_PREVIOUS),
}

KEYMAP: dict[ScreenKind, dict[str, Command | _Resolve]] = {
    ScreenKind.PROJECT_LIST: {
        **_LIST_MOVES,
        "enter": _Resolve.SELECTED_PROJECT,
        "n": _go(ScreenKind.CREATE_PROJECT),
        "r": Command(Action.REFRESH_PROJECTS),
        "a": _go(ScreenKind.ACTIVITY),
        "d": _go(ScreenKind.DEPLOYMENT_LIST),
        "w": _go(ScreenKind.NETWORK),
        "t": _go(ScreenKind.STORAGE),
        "h": _go(ScreenKind.DOCS),
        "s": _go(ScreenKind.SETTINGS),
    },
    ScreenKind.PROJECT_DETAIL: {
        "backspace": _BACK,
        "r": Command(Action.REDEPLOY),
        "s": Command(Action.STOP_PROJECT),
        "l": _Resolve.LATEST_LOGS,
        "c": _Resolve.PROJECT_SETTINGS,
    },
    ScreenKind.PROJECT_SETTINGS: {
        "backspace": _BACK,
    },
    ScreenKind.DEPLOYMENT_LOGS: {
        "backspace": _BACK,
        "down": Command(Action.SCROLL, 1),
        "j": Command(Action.SCROLL, 1),
        "up": Command(Action.SCROLL, -1),
        "k": Command(Action.SCROLL, -1),
        "pagedown": Command(Action.SCROLL, 10),
        "pageup": Command(Action.SCROLL, -10),
        "home": Command(Action.SCROLL_HOME),
        "end": Command(Action.SCROLL_END),
    },
    ScreenKind.DEPLOYMENT_LIST: {
        **_LIST_MOVES,
        "enter": _Resolve.SELECTED_DEPLOYMENT_LOGS,
        "r": Command(Action.REFRESH_ACTIVITY),
        "backspace": _BACK,
    },
    ScreenKind.ACTIVITY: {
        **_LIST_MOVES,
        "enter": _Resolve.SELECTED_DEPLOYMENT_LOGS,
        "r": Command(Action.REFRESH_ACTIVITY),
        "backspace": _BACK,
    },
    ScreenKind.NETWORK: {
        "r": Command(Action.REFRESH_PROJECTS),
        "backspace": _BACK,
    },
    ScreenKind.STORAGE: {
        **_LIST_MOVES,
        "enter": Command(Action.OPEN_CREDENTIALS),
        "n": _go(ScreenKind.CREATE_DATABASE),
        "d": Command(Action.DELETE_DATABASE),
        "s": Command(Action.STOP_DATABASE),
        "r": Command(Action.RESTART_DATABASE),
        "backspace": _BACK,
        "escape": _BACK,
    },
    ScreenKind.DOCS: {
        "backspace": _BACK,
    },
    ScreenKind.SETTINGS: {
        "backspace": _BACK,
        "c": Command(Action.RECONFIGURE),
        "d": Command(Action.LOGOUT),
    },
}

CREDENTIALS_KEYMAP: dict[str, Command] = {
    "backspace": Command(Action.CLOSE_CREDENTIALS),
    "escape": Command(Action.CLOSE_CREDENTIALS),
}

# Keys shared by every form; printable characters and backspace are routed
# to the focused field separately.
_FORM_KEYS: dict[str, Command] = {
    "tab": Command(Action.FIELD_NEXT),
    "shift+tab": Command(Action.FIELD_PREVIOUS),
}

FORM_KEYMAP: dict[ScreenKind, dict[str, Command]] = {
    ScreenKind.SETUP: {
        **_FORM_KEYS,
        "enter": Command(Action.SUBMIT_SETUP),
        "escape": Command(Action.QUIT),
    },
    ScreenKind.CREATE_PROJECT: {
        **_FORM_KEYS,
        "enter": Command(Action.SUBMIT_PROJECT),
        "escape": _BACK,
    },
    ScreenKind.CREATE_DATABASE: {
        **_FORM_KEYS,
        "enter": Command(Action.SUBMIT_DATABASE),
        "escape": _go(ScreenKind.STORAGE),
        "up": Command(Action.CHOICE_PREVIOUS),
        "down": Command(Action.CHOICE_NEXT),
    },
}

FORCE_QUIT_KEY = "ctrl+c"
QUIT_KEY = "q"


def dispatch(state: AppState, key: KeyPress) -> Command | None:
    """Return the command ``key`` triggers on the active screen, if any."""

    if key.key == FORCE_QUIT_KEY:
        return Command(Action.FORCE_QUIT)

    kind = state.screen.kind
    if kind in FORM_KEYMAP:
        return _dispatch_form(state, key)

    if key.key == QUIT_KEY:
        return Command(Action.QUIT)

    if kind is ScreenKind.STORAGE and state.show_db_credentials:
        return CREDENTIALS_KEYMAP.get(key.key)

    entry = KEYMAP.get(kind, {}).get(key.key)
    if isinstance(entry, _Resolve):
        return _resolve(entry, state)
    return entry


def _dispatch_form(state: AppState, key: KeyPress) -> Command | None:
    kind = state.screen.kind
    command = FORM_KEYMAP[kind].get(key.key)
    if command is not None:
        return command
    if key.key == "backspace":
        form = state.active_form()
        # Nothing to erase on a choice field: backspace leaves the form.
        if kind is ScreenKind.CREATE_DATABASE and form is not None and isinstance(form.focused, ChoiceField):
            return _go(ScreenKind.STORAGE)
        return Command(Action.FIELD_BACKSPACE)
    char = key.printable
    if char is not None:
        return Command(Action.FIELD_INSERT, char)
    return None


def _resolve(entry: _Resolve, state: AppState) -> Command | None:
    if entry is _Resolve.SELECTED_PROJECT:
        project = state.selected_item()
        if not isinstance(project, Project):
            return None
        return Command(Action.NAVIGATE, Screen.project_detail(project.id))

    if entry is _Resolve.SELECTED_DEPLOYMENT_LOGS:
        deployment = state.selected_item()
        if not isinstance(deployment, Deployment) or not deployment.id:
            return None
        return Command(Action.NAVIGATE, Screen.deployment_logs(deployment.id))

    if entry is _Resolve.LATEST_LOGS:
        project = state.selected_project
        if project is None:
            return None
        latest = project.latest_deployment
        if latest is None or not latest.id:
            return Command(Action.SHOW_ERROR, "No deployments found")
        return Command(Action.NAVIGATE, Screen.deployment_logs(latest.id))

    if entry is _Resolve.PROJECT_SETTINGS:
        project_id = state.screen.target_id
        if project_id is None:
            return None
        return Command(Action.NAVIGATE, Screen.project_settings(project_id))

    raise ValueError(f"Unknown key resolution: {entry!r}")
