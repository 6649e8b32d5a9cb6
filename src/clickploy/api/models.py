"""Typed records returned by the Clickploy REST API."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DeploymentStatus(str, Enum):
    """Known deployment states. Anything else decodes to ``UNKNOWN``."""

    PENDING = "pending"
    BUILDING = "building"
    LIVE = "live"
    FAILED = "failed"
    STOPPED = "stopped"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire(cls, value: Any) -> "DeploymentStatus":
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return cls.UNKNOWN
        return cls.UNKNOWN


DATABASE_ENGINES: tuple[str, ...] = ("sqlite", "mongodb")

# Engines storing data in a plain file have no credentials to fetch.
FILE_BASED_ENGINES = frozenset({"sqlite"})


@dataclass(slots=True)
class User:
    id: str
    email: str
    name: str
    is_admin: bool = False


@dataclass(slots=True)
class Deployment:
    """One build/run of a project, most recent first in every list."""

    id: str
    project_id: str
    status: DeploymentStatus
    commit: str
    logs: str
    url: str
    created_at: str
    updated_at: str


@dataclass(slots=True)
class EnvVar:
    id: int
    project_id: str
    key: str
    value: str


@dataclass(slots=True)
class Project:
    """Project metadata with its deployment history and environment."""

    id: str
    name: str
    repo_url: str
    port: int
    runtime: str = ""
    install_command: str = ""
    build_command: str = ""
    start_command: str = ""
    webhook_secret: str = ""
    created_at: str = ""
    updated_at: str = ""
    deployments: list[Deployment] = field(default_factory=list)
    env_vars: list[EnvVar] = field(default_factory=list)

    @property
    def latest_deployment(self) -> Deployment | None:
        return self.deployments[0] if self.deployments else None

    @property
    def status(self) -> DeploymentStatus:
        latest = self.latest_deployment
        return latest.status if latest is not None else DeploymentStatus.UNKNOWN


@dataclass(slots=True)
class Database:
    id: int
    name: str
    engine: str
    status: str
    size_mb: float
    port: int
    created_at: str = ""
    updated_at: str = ""

    @property
    def has_credentials(self) -> bool:
        return self.engine not in FILE_BASED_ENGINES


@dataclass(slots=True)
class StorageStats:
    used: int
    total: int
    percent: float


@dataclass(slots=True)
class DatabaseCredentials:
    """Sensitive connection details; never cached beyond the credentials view."""

    username: str
    password: str
    uri: str
    public_uri: str

    def __repr__(self) -> str:
        return f"DatabaseCredentials(username={self.username!r}, password='***')"


@dataclass(slots=True)
class CreateProjectRequest:
    name: str
    repo: str
    port: int | None = 3000
    git_token: str | None = None
    env_vars: dict[str, str] | None = None
    install_command: str | None = None
    build_command: str | None = None
    start_command: str | None = None
    runtime: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "repo": self.repo,
            "port": self.port,
            "git_token": self.git_token,
            "env_vars": self.env_vars,
            "install_command": self.install_command,
            "build_command": self.build_command,
            "start_command": self.start_command,
            "runtime": self.runtime,
        }


def _as_str(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return default
    return str(value)


def _as_int(value: Any, *, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, *, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def user_from_payload(payload: dict[str, Any]) -> User:
    return User(
        id=_as_str(payload.get("id")),
        email=_as_str(payload.get("email")),
        name=_as_str(payload.get("name")),
        is_admin=bool(payload.get("is_admin", False)),
    )


def deployment_from_payload(payload: dict[str, Any]) -> Deployment:
    return Deployment(
        id=_as_str(payload.get("id") if "id" in payload else payload.get("ID")),
        project_id=_as_str(payload.get("project_id")),
        status=DeploymentStatus.from_wire(payload.get("status")),
        commit=_as_str(payload.get("commit")),
        logs=_as_str(payload.get("logs")),
        url=_as_str(payload.get("url")),
        created_at=_as_str(payload.get("created_at")),
        updated_at=_as_str(payload.get("updated_at")),
    )


def env_var_from_payload(payload: dict[str, Any]) -> EnvVar:
    return EnvVar(
        id=_as_int(payload.get("ID", payload.get("id"))),
        project_id=_as_str(payload.get("project_id")),
        key=_as_str(payload.get("key")),
        value=_as_str(payload.get("value")),
    )


def project_from_payload(payload: dict[str, Any]) -> Project:
    return Project(
        id=_as_str(payload.get("id")),
        name=_as_str(payload.get("name")),
        repo_url=_as_str(payload.get("repo_url")),
        port=_as_int(payload.get("port")),
        runtime=_as_str(payload.get("runtime")),
        install_command=_as_str(payload.get("install_command")),
        build_command=_as_str(payload.get("build_command")),
        start_command=_as_str(payload.get("start_command")),
        webhook_secret=_as_str(payload.get("webhook_secret")),
        created_at=_as_str(payload.get("created_at")),
        updated_at=_as_str(payload.get("updated_at")),
        deployments=[
            deployment_from_payload(item)
            for item in _as_list(payload.get("deployments"))
            if isinstance(item, dict)
        ],
        env_vars=[
            env_var_from_payload(item)
            for item in _as_list(payload.get("env_vars"))
            if isinstance(item, dict)
        ],
    )


def database_from_payload(payload: dict[str, Any]) -> Database:
    return Database(
        id=_as_int(payload.get("ID", payload.get("id"))),
        name=_as_str(payload.get("name")),
        engine=_as_str(payload.get("type")),
        status=_as_str(payload.get("status"), "unknown"),
        size_mb=_as_float(payload.get("size_mb")),
        port=_as_int(payload.get("port")),
        created_at=_as_str(payload.get("CreatedAt")),
        updated_at=_as_str(payload.get("UpdatedAt")),
    )


def storage_stats_from_payload(payload: dict[str, Any]) -> StorageStats:
    return StorageStats(
        used=_as_int(payload.get("used")),
        total=_as_int(payload.get("total")),
        percent=_as_float(payload.get("percent")),
    )


def credentials_from_payload(payload: dict[str, Any]) -> DatabaseCredentials:
    return DatabaseCredentials(
        username=_as_str(payload.get("username")),
        password=_as_str(payload.get("password")),
        uri=_as_str(payload.get("uri")),
        public_uri=_as_str(payload.get("public_uri")),
    )
