"""Command execution: apply dispatcher commands to state and the gateway.

All gateway calls happen here, synchronously, inside the tick that produced
the command. ``GatewayError`` and ``SessionStoreError`` are the only
exceptions caught; each becomes the single-line ``error`` shown to the
operator while previously fetched data stays as it was.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol
import webbrowser

from clickploy.api.gateway import Gateway, GatewayError
from clickploy.api.log_feed import LogFeed, WebSocketLogFeed
from clickploy.api.models import (
    CreateProjectRequest,
    Database,
    DatabaseCredentials,
    Deployment,
    Project,
    StorageStats,
    User,
)
from clickploy.config.schema import Session
from clickploy.config.session import SessionStore, SessionStoreError
from clickploy.observability.logging import get_logger, log_event
from clickploy.tui.dispatcher import Action, Command
from clickploy.tui.screens import Screen, ScreenKind
from clickploy.tui.state import BACK, AppState, NavTarget
from clickploy.tui.supervisor import LogStreamSupervisor


logger = get_logger("clickploy.controller")


class GatewayLike(Protocol):
    def validate_connection(self) -> User: ...
    def list_projects(self) -> list[Project]: ...
    def get_project(self, project_id: str) -> Project: ...
    def create_project(self, request: CreateProjectRequest) -> Project: ...
    def redeploy(self, project_id: str, commit: str | None = None) -> Any: ...
    def stop(self, project_id: str) -> Any: ...
    def list_deployments(self) -> list[Deployment]: ...
    def storage_stats(self) -> StorageStats: ...
    def list_databases(self) -> list[Database]: ...
    def create_database(self, name: str, engine: str) -> Any: ...
    def delete_database(self, database_id: int) -> None: ...
    def stop_database(self, database_id: int) -> None: ...
    def restart_database(self, database_id: int) -> None: ...
    def get_database_credentials(self, database_id: int) -> DatabaseCredentials: ...
    def close(self) -> None: ...


GatewayFactory = Callable[[Session], GatewayLike]
FeedFactory = Callable[[Session], LogFeed]


def settings_url(server_url: str) -> str:
    return f"{server_url.rstrip('/')}/settings/session"


class Controller:
    """Executes commands for one client run."""

    def __init__(
        self,
        state: AppState,
        *,
        store: SessionStore,
        supervisor: LogStreamSupervisor,
        gateway_factory: GatewayFactory | None = None,
        feed_factory: FeedFactory | None = None,
        open_browser: Callable[[str], Any] = webbrowser.open,
        request_timeout: float = 10.0,
    ) -> None:
        self.state = state
        self.store = store
        self.supervisor = supervisor
        self.gateway_factory = gateway_factory or (
            lambda session: Gateway(session, timeout=request_timeout)
        )
        self.feed_factory: FeedFactory = feed_factory or WebSocketLogFeed
        self.open_browser = open_browser
        self.gateway: GatewayLike | None = None

        self._handlers: dict[Action, Callable[[Command], None]] = {
            Action.QUIT: lambda _: self.state.request_quit(0),
            Action.FORCE_QUIT: lambda _: self.state.request_quit(0),
            Action.NAVIGATE: lambda command: self.navigate(command.argument),
            Action.SHOW_ERROR: self._show_error,
            Action.SELECT_NEXT: lambda _: self.state.select_next(),
            Action.SELECT_PREVIOUS: lambda _: self.state.select_previous(),
            Action.SCROLL: lambda command: self.state.scroll_logs(int(command.argument)),
            Action.SCROLL_HOME: lambda _: self.state.live_logs.scroll_home(),
            Action.SCROLL_END: lambda _: self.state.live_logs.follow_tail(),
            Action.FIELD_INSERT: self._field_insert,
            Action.FIELD_BACKSPACE: self._field_backspace,
            Action.FIELD_NEXT: lambda _: self._with_form(lambda form: form.next_field()),
            Action.FIELD_PREVIOUS: lambda _: self._with_form(lambda form: form.previous_field()),
            Action.CHOICE_NEXT: lambda _: self._with_form(lambda form: form.cycle_choice(1)),
            Action.CHOICE_PREVIOUS: lambda _: self._with_form(lambda form: form.cycle_choice(-1)),
            Action.REFRESH_PROJECTS: lambda _: self.fetch_projects(),
            Action.REFRESH_ACTIVITY: lambda _: self.fetch_activity(),
            Action.SUBMIT_SETUP: lambda _: self.submit_setup(),
            Action.SUBMIT_PROJECT: lambda _: self.submit_project(),
            Action.SUBMIT_DATABASE: lambda _: self.submit_database(),
            Action.REDEPLOY: lambda _: self.redeploy(),
            Action.STOP_PROJECT: lambda _: self.stop_project(),
            Action.OPEN_CREDENTIALS: lambda _: self.open_credentials(),
            Action.CLOSE_CREDENTIALS: lambda _: self.state.close_credentials(),
            Action.DELETE_DATABASE: lambda _: self.database_action("delete"),
            Action.STOP_DATABASE: lambda _: self.database_action("stop"),
            Action.RESTART_DATABASE: lambda _: self.database_action("restart"),
            Action.RECONFIGURE: lambda _: self.end_session("reconfigure"),
            Action.LOGOUT: lambda _: self.end_session("logout"),
        }

    def handle(self, command: Command) -> None:
        handler = self._handlers.get(command.action)
        if handler is None:
            raise ValueError(f"No handler for {command.action!r}")
        handler(command)

    def close(self) -> None:
        if self.gateway is not None:
            self.gateway.close()
            self.gateway = None

    # -- session ---------------------------------------------------------

    def start_session(self, session: Session, user: User, gateway: GatewayLike | None = None) -> None:
        """Bind a validated session and land on the project list."""

        self.close()
        self.gateway = gateway or self.gateway_factory(session)
        self.supervisor.feed = self.feed_factory(session)
        self.state.sign_in(session, user)
        self.navigate(Screen.project_list())
        self.state.message = f"Welcome, {user.name}!"
        self.fetch_projects(announce=False)
        log_event(logger, "session_started", server_url=session.server_url, user_id=user.id)

    def resume_session(self, session: Session) -> None:
        """Validate a stored session at startup.

        On failure the stored session is deleted before the ``GatewayError``
        propagates, so the next run starts from setup. If the session file
        cannot be removed, ``SessionStoreError`` propagates instead.
        """

        gateway = self.gateway_factory(session)
        try:
            user = gateway.validate_connection()
        except GatewayError as exc:
            gateway.close()
            log_event(logger, "session_rejected", level=logging.ERROR, server_url=session.server_url, error=str(exc))
            try:
                self.store.delete()
            except SessionStoreError as store_exc:
                raise SessionStoreError(f"{exc}; {store_exc}") from exc
            raise
        self.start_session(session, user, gateway)

    def submit_setup(self) -> None:
        form = self.state.setup_form
        server_url = form.value("server_url")
        api_key = form.value("api_key")

        if form.focused.name == "server_url":
            if not server_url:
                self.state.error = "Server URL cannot be empty"
                return
            url = settings_url(server_url)
            try:
                self.open_browser(url)
            except webbrowser.Error as exc:
                log_event(logger, "browser_open_failed", level=logging.WARNING, url=url, error=str(exc))
            form.next_field()
            self.state.error = None
            self.state.message = f"Opened {url}; paste your API key below"
            return

        if not server_url:
            self.state.error = "Server URL cannot be empty"
            return
        if not api_key:
            self.state.error = "API key cannot be empty"
            return

        session = Session(server_url=server_url.rstrip("/"), api_key=api_key)
        gateway = self.gateway_factory(session)
        self.state.message = "Validating connection..."
        try:
            user = gateway.validate_connection()
            self.store.save(session)
        except (GatewayError, SessionStoreError) as exc:
            gateway.close()
            self.state.message = ""
            self.state.error = f"Connection failed: {exc}"
            log_event(logger, "setup_failed", level=logging.WARNING, server_url=session.server_url, error=str(exc))
            return
        self.start_session(session, user, gateway)

    def end_session(self, reason: str) -> None:
        """Forget the stored session and end the run; next start re-runs setup."""

        try:
            self.store.delete()
        except SessionStoreError as exc:
            self.state.error = str(exc)
            return
        log_event(logger, "session_ended", reason=reason)
        self.state.request_quit(0)

    # -- navigation ------------------------------------------------------

    def navigate(self, target: NavTarget) -> None:
        previous = self.state.screen
        screen = self.state.navigate(target)
        if target == BACK or screen == previous:
            return
        self._on_enter(screen)

    def _on_enter(self, screen: Screen) -> None:
        kind = screen.kind
        if kind is ScreenKind.PROJECT_DETAIL and screen.target_id is not None:
            self.fetch_project(screen.target_id)
        elif kind in (ScreenKind.ACTIVITY, ScreenKind.DEPLOYMENT_LIST):
            self.fetch_activity()
        elif kind is ScreenKind.STORAGE:
            self.fetch_storage()

    def _show_error(self, command: Command) -> None:
        self.state.error = str(command.argument)

    # -- form editing ----------------------------------------------------

    def _with_form(self, apply: Callable[[Any], None]) -> None:
        form = self.state.active_form()
        if form is not None:
            apply(form)

    def _field_insert(self, command: Command) -> None:
        self._with_form(lambda form: form.insert(str(command.argument)))

    def _field_backspace(self, _: Command) -> None:
        self._with_form(lambda form: form.backspace())

    # -- fetches ---------------------------------------------------------

    def _require_gateway(self) -> GatewayLike:
        if self.gateway is None:
            raise RuntimeError("no active session")
        return self.gateway

    def fetch_projects(self, *, announce: bool = True) -> bool:
        try:
            projects = self._require_gateway().list_projects()
        except GatewayError as exc:
            self.state.error = str(exc)
            return False
        self.state.projects = projects
        self.state.error = None
        self.state.clamp_selection()
        if announce:
            self.state.message = f"Loaded {len(projects)} projects"
        return True

    def fetch_project(self, project_id: str) -> bool:
        try:
            project = self._require_gateway().get_project(project_id)
        except GatewayError as exc:
            self.state.error = str(exc)
            return False
        if self.state.screen.target_id == project_id:
            self.state.selected_project = project
        self.state.error = None
        return True

    def fetch_activity(self) -> bool:
        try:
            activity = self._require_gateway().list_deployments()
        except GatewayError as exc:
            self.state.error = str(exc)
            return False
        self.state.activity = activity
        self.state.error = None
        self.state.clamp_selection()
        return True

    def fetch_storage(self) -> bool:
        gateway = self._require_gateway()
        try:
            databases = gateway.list_databases()
            stats = gateway.storage_stats()
        except GatewayError as exc:
            self.state.error = str(exc)
            return False
        self.state.databases = databases
        self.state.storage_stats = stats
        self.state.error = None
        self.state.clamp_selection()
        return True

    # -- mutating actions ------------------------------------------------

    def _mutate(
        self,
        action: str,
        progress: str,
        call: Callable[[], Any],
        *,
        success: str,
        refresh: Callable[[], bool] | None = None,
        on_success: Callable[[], None] | None = None,
        **fields: Any,
    ) -> bool:
        """Run one mutating gateway call with the progress/result protocol."""

        self.state.message = progress
        try:
            call()
        except GatewayError as exc:
            self.state.message = ""
            self.state.error = str(exc)
            log_event(logger, "action_failed", level=logging.WARNING, action=action, error=str(exc), **fields)
            return False

        log_event(logger, "action_succeeded", action=action, **fields)
        if on_success is not None:
            on_success()
        self.state.error = None
        self.state.message = success
        if refresh is not None:
            refresh()
        return True

    def submit_project(self) -> None:
        form = self.state.create_project_form
        name = form.value("name")
        repo = form.value("repo_url")
        if not name or not repo:
            self.state.error = "Name and Repo URL are required"
            return

        request = CreateProjectRequest(
            name=name,
            repo=repo,
            install_command=form.value("install_command") or None,
            build_command=form.value("build_command") or None,
            start_command=form.value("start_command") or None,
        )
        gateway = self._require_gateway()
        self._mutate(
            "create_project",
            "Creating project...",
            lambda: gateway.create_project(request),
            success="Project created successfully",
            on_success=lambda: self.state.navigate(Screen.project_list()),
            refresh=lambda: self.fetch_projects(announce=False),
            project_name=name,
        )

    def _current_project_id(self) -> str | None:
        screen = self.state.screen
        if screen.kind is ScreenKind.PROJECT_DETAIL:
            return screen.target_id
        return None

    def redeploy(self) -> None:
        project_id = self._current_project_id()
        if project_id is None:
            return
        gateway = self._require_gateway()
        self._mutate(
            "redeploy",
            "Redeploying...",
            lambda: gateway.redeploy(project_id),
            success="Redeploy started successfully",
            refresh=lambda: self.fetch_project(project_id),
            project_id=project_id,
        )

    def stop_project(self) -> None:
        project_id = self._current_project_id()
        if project_id is None:
            return
        gateway = self._require_gateway()
        self._mutate(
            "stop_project",
            "Stopping project...",
            lambda: gateway.stop(project_id),
            success="Project stopped successfully",
            refresh=lambda: self.fetch_project(project_id),
            project_id=project_id,
        )

    def submit_database(self) -> None:
        form = self.state.create_database_form
        name = form.value("name")
        if not name:
            return
        engine = form.value("engine")
        gateway = self._require_gateway()
        self._mutate(
            "create_database",
            "Creating database...",
            lambda: gateway.create_database(name, engine),
            success="Database created successfully",
            on_success=lambda: self.state.navigate(Screen(ScreenKind.STORAGE)),
            refresh=self.fetch_storage,
            database_name=name,
            engine=engine,
        )

    def database_action(self, verb: str) -> None:
        if self.state.screen.kind is not ScreenKind.STORAGE or self.state.show_db_credentials:
            return
        database = self.state.selected_item()
        if not isinstance(database, Database):
            return

        gateway = self._require_gateway()
        calls: dict[str, tuple[Callable[[int], None], str, str]] = {
            "delete": (gateway.delete_database, "Deleting database...", "Database deleted"),
            "stop": (gateway.stop_database, "Stopping database...", "Database stopped"),
            "restart": (gateway.restart_database, "Restarting database...", "Database restarted"),
        }
        call, progress, success = calls[verb]
        self._mutate(
            f"{verb}_database",
            progress,
            lambda: call(database.id),
            success=success,
            refresh=self.fetch_storage,
            database_id=database.id,
        )

    def open_credentials(self) -> None:
        database = self.state.open_credentials()
        if database is None or not database.has_credentials:
            return
        try:
            credentials = self._require_gateway().get_database_credentials(database.id)
        except GatewayError as exc:
            self.state.error = str(exc)
            return
        self.state.set_credentials(credentials)
