"""Screen variants and the back-navigation table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ScreenKind(str, Enum):
    SETUP = "setup"
    PROJECT_LIST = "project_list"
    CREATE_PROJECT = "create_project"
    PROJECT_DETAIL = "project_detail"
    PROJECT_SETTINGS = "project_settings"
    DEPLOYMENT_LOGS = "deployment_logs"
    DEPLOYMENT_LIST = "deployment_list"
    ACTIVITY = "activity"
    NETWORK = "network"
    STORAGE = "storage"
    CREATE_DATABASE = "create_database"
    DOCS = "docs"
    SETTINGS = "settings"


# Kinds carrying an entity id: project id for detail/settings, deployment id for logs.
PARAMETERIZED_KINDS = frozenset(
    {
        ScreenKind.PROJECT_DETAIL,
        ScreenKind.PROJECT_SETTINGS,
        ScreenKind.DEPLOYMENT_LOGS,
    }
)

TEXT_ENTRY_KINDS = frozenset(
    {
        ScreenKind.SETUP,
        ScreenKind.CREATE_PROJECT,
        ScreenKind.CREATE_DATABASE,
    }
)

_BACK_TO_PROJECT_LIST = frozenset(
    {
        ScreenKind.PROJECT_DETAIL,
        ScreenKind.PROJECT_SETTINGS,
        ScreenKind.ACTIVITY,
        ScreenKind.SETTINGS,
        ScreenKind.CREATE_PROJECT,
        ScreenKind.CREATE_DATABASE,
        ScreenKind.DEPLOYMENT_LIST,
        ScreenKind.NETWORK,
        ScreenKind.STORAGE,
        ScreenKind.DOCS,
    }
)


@dataclass(frozen=True, slots=True)
class Screen:
    """The active UI mode. ``target_id`` is set exactly for parameterized kinds."""

    kind: ScreenKind
    target_id: str | None = None

    def __post_init__(self) -> None:
        if self.kind in PARAMETERIZED_KINDS and not self.target_id:
            raise ValueError(f"{self.kind.value} screen requires an id")
        if self.kind not in PARAMETERIZED_KINDS and self.target_id is not None:
            raise ValueError(f"{self.kind.value} screen takes no id")

    def __str__(self) -> str:
        if self.target_id is None:
            return self.kind.value
        return f"{self.kind.value}({self.target_id})"

    @property
    def is_text_entry(self) -> bool:
        return self.kind in TEXT_ENTRY_KINDS

    @classmethod
    def setup(cls) -> "Screen":
        return cls(ScreenKind.SETUP)

    @classmethod
    def project_list(cls) -> "Screen":
        return cls(ScreenKind.PROJECT_LIST)

    @classmethod
    def project_detail(cls, project_id: str) -> "Screen":
        return cls(ScreenKind.PROJECT_DETAIL, project_id)

    @classmethod
    def project_settings(cls, project_id: str) -> "Screen":
        return cls(ScreenKind.PROJECT_SETTINGS, project_id)

    @classmethod
    def deployment_logs(cls, deployment_id: str) -> "Screen":
        return cls(ScreenKind.DEPLOYMENT_LOGS, deployment_id)


def back_target(screen: Screen, selected_project_id: str | None) -> Screen:
    """Return the screen reached by "go back" from ``screen``.

    Total over every kind: Setup and ProjectList have nowhere further back
    and map to themselves.
    """

    if screen.kind in _BACK_TO_PROJECT_LIST:
        return Screen.project_list()
    if screen.kind is ScreenKind.DEPLOYMENT_LOGS:
        if selected_project_id:
            return Screen.project_detail(selected_project_id)
        return Screen.project_list()
    return screen
