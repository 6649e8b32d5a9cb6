"""Command execution against an in-memory gateway."""

from __future__ import annotations

from dataclasses import replace

import pytest

from clickploy.api.gateway import GatewayError
from clickploy.config.schema import Session
from clickploy.config.session import SessionStoreError
from clickploy.tui.dispatcher import Action, Command, KeyPress, dispatch
from clickploy.tui.screens import Screen, ScreenKind
from clickploy.tui.state import BACK

from conftest import ScriptedFeed, make_database, make_deployment, make_project


def type_text(controller, text: str) -> None:
    for value in text:
        controller.handle(Command(Action.FIELD_INSERT, value))


def press(controller, key: str, character: str | None = None) -> None:
    command = dispatch(controller.state, KeyPress(key, character))
    if command is not None:
        controller.handle(command)


class TestSetup:
    def test_empty_server_url(self, controller, state, store):
        state.setup_form.field("server_url").value = ""
        press(controller, "enter")
        assert state.error == "Server URL cannot be empty"
        assert state.screen == Screen.setup()
        assert not store.exists()

    def test_enter_on_url_opens_settings_page(self, controller, state, opened_urls):
        press(controller, "enter")
        assert opened_urls == ["http://localhost:8080/settings/session"]
        assert state.setup_form.focused.name == "api_key"
        assert state.error is None

    def test_empty_api_key(self, controller, state):
        press(controller, "tab")
        press(controller, "enter")
        assert state.error == "API key cannot be empty"
        assert state.screen == Screen.setup()

    def test_valid_submission_persists_and_lands_on_projects(self, controller, state, store, fake_gateway):
        fake_gateway.projects = [make_project("p1")]
        press(controller, "tab")
        type_text(controller, "secret-key")
        press(controller, "enter")

        assert state.screen == Screen.project_list()
        assert state.message == "Welcome, Ada!"
        assert state.projects == fake_gateway.projects
        assert store.load() == Session(server_url="http://localhost:8080", api_key="secret-key")
        assert isinstance(controller.supervisor.feed, ScriptedFeed)

    def test_connection_failure_stays_on_setup(self, controller, state, store, fake_gateway):
        fake_gateway.failures["validate_connection"] = "Authentication failed: 401 Unauthorized"
        press(controller, "tab")
        type_text(controller, "bad")
        press(controller, "enter")

        assert state.screen == Screen.setup()
        assert state.error == "Connection failed: Authentication failed: 401 Unauthorized"
        assert not store.exists()


class TestResumeSession:
    def test_valid_session(self, controller, state, session, fake_gateway):
        controller.resume_session(session)
        assert state.screen == Screen.project_list()
        assert state.session == session
        assert fake_gateway.called("list_projects") == [None]

    def test_rejected_session_is_deleted(self, controller, store, session, fake_gateway):
        store.save(session)
        fake_gateway.failures["validate_connection"] = "Authentication failed: 401 Unauthorized"
        with pytest.raises(GatewayError):
            controller.resume_session(session)
        assert not store.exists()
        assert fake_gateway.closed

    def test_undeletable_session_reports_store_error(self, controller, store, session, fake_gateway, monkeypatch):
        def fail_delete() -> None:
            raise SessionStoreError("Failed to delete config: read-only file system")

        monkeypatch.setattr(store, "delete", fail_delete)
        fake_gateway.failures["validate_connection"] = "Authentication failed: 401 Unauthorized"
        with pytest.raises(SessionStoreError, match="401 Unauthorized"):
            controller.resume_session(session)
        assert fake_gateway.closed


class TestCreateProject:
    def test_missing_fields(self, signed_in, state, fake_gateway):
        signed_in.navigate(Screen(ScreenKind.CREATE_PROJECT))
        type_text(signed_in, "web")
        press(signed_in, "enter")
        assert state.error == "Name and Repo URL are required"
        assert fake_gateway.called("create_project") == []

    def test_failure_then_success(self, signed_in, state, fake_gateway):
        existing = make_project("p0", name="existing")
        fake_gateway.projects = [existing]
        signed_in.fetch_projects()
        signed_in.navigate(Screen(ScreenKind.CREATE_PROJECT))
        type_text(signed_in, "web")
        press(signed_in, "tab")
        type_text(signed_in, "https://github.com/acme/web")

        fake_gateway.failures["create_project"] = "Failed to create project: name taken"
        press(signed_in, "enter")
        assert state.error == "Failed to create project: name taken"
        assert state.projects == [existing]
        assert state.screen.kind is ScreenKind.CREATE_PROJECT

        del fake_gateway.failures["create_project"]
        press(signed_in, "enter")
        assert state.error is None
        assert state.message == "Project created successfully"
        assert state.screen == Screen.project_list()
        assert [project.name for project in state.projects] == ["existing", "web"]

        request = fake_gateway.called("create_project")[-1]
        assert request.port == 3000
        assert request.build_command is None


class TestProjectActions:
    @pytest.fixture()
    def detail(self, signed_in, state, fake_gateway):
        fake_gateway.projects = [make_project("p1", deployments=[make_deployment("d1")])]
        signed_in.navigate(Screen.project_detail("p1"))
        return signed_in

    def test_entering_detail_fetches_project(self, detail, state):
        assert state.selected_project is not None
        assert state.selected_project.id == "p1"

    def test_redeploy_refreshes_project(self, detail, state, fake_gateway):
        press(detail, "r")
        assert fake_gateway.called("redeploy") == ["p1"]
        assert fake_gateway.called("get_project") == ["p1", "p1"]
        assert state.message == "Redeploy started successfully"

    def test_stop_failure_keeps_project(self, detail, state, fake_gateway):
        fake_gateway.failures["stop"] = "Failed to stop project: 500 Internal Server Error"
        before = state.selected_project
        press(detail, "s")
        assert state.error == "Failed to stop project: 500 Internal Server Error"
        assert state.selected_project is before

    def test_logs_then_back(self, detail, state):
        press(detail, "l")
        assert state.screen == Screen.deployment_logs("d1")
        press(detail, "backspace")
        assert state.screen == Screen.project_detail("p1")

    def test_error_cleared_by_navigation(self, detail, state):
        state.error = "stale"
        detail.navigate(BACK)
        assert state.error is None


class TestStorage:
    @pytest.fixture()
    def storage(self, signed_in, fake_gateway):
        fake_gateway.databases = [make_database(1, name="orders"), make_database(2, name="cache", engine="sqlite")]
        signed_in.navigate(Screen(ScreenKind.STORAGE))
        return signed_in

    def test_entering_fetches_databases_and_stats(self, storage, state):
        assert len(state.databases) == 2
        assert state.storage_stats is not None

    def test_credentials_fetched_for_server_engines(self, storage, state, fake_gateway):
        press(storage, "enter")
        assert state.db_credentials == fake_gateway.credentials
        press(storage, "escape")
        assert state.db_credentials is None
        assert state.screen.kind is ScreenKind.STORAGE

    def test_file_engine_has_no_credentials(self, storage, state, fake_gateway):
        press(storage, "down")
        press(storage, "enter")
        assert state.show_db_credentials
        assert state.db_credentials is None
        assert fake_gateway.called("get_database_credentials") == []

    def test_delete_refreshes(self, storage, state, fake_gateway):
        press(storage, "d")
        assert fake_gateway.called("delete_database") == [1]
        assert [db.id for db in state.databases] == [2]
        assert state.message == "Database deleted"

    def test_restart_failure(self, storage, state, fake_gateway):
        fake_gateway.failures["restart_database"] = "Failed to restart database: 502 Bad Gateway"
        press(storage, "r")
        assert state.error == "Failed to restart database: 502 Bad Gateway"
        assert len(state.databases) == 2

    def test_create_database(self, storage, state, fake_gateway):
        press(storage, "n")
        assert state.screen.kind is ScreenKind.CREATE_DATABASE
        type_text(storage, "events")
        press(storage, "tab")
        press(storage, "down")
        press(storage, "enter")
        assert fake_gateway.called("create_database") == [("events", "mongodb")]
        assert state.screen.kind is ScreenKind.STORAGE
        assert state.message == "Database created successfully"

    def test_create_database_requires_name(self, storage, state, fake_gateway):
        press(storage, "n")
        press(storage, "enter")
        assert fake_gateway.called("create_database") == []
        assert state.screen.kind is ScreenKind.CREATE_DATABASE


class TestSessionEnd:
    @pytest.mark.parametrize("key", ["c", "d"])
    def test_settings_actions_delete_session_and_quit(self, signed_in, state, store, session, key):
        store.save(session)
        signed_in.navigate(Screen(ScreenKind.SETTINGS))
        press(signed_in, key)
        assert not store.exists()
        assert state.should_quit
        assert state.exit_code == 0

    def test_quit_keeps_session(self, signed_in, state, store, session):
        store.save(session)
        press(signed_in, "q")
        assert state.should_quit
        assert store.exists()


class TestActivity:
    def test_fetch_failure_keeps_previous(self, signed_in, state, fake_gateway):
        fake_gateway.activity = [make_deployment("d1")]
        signed_in.navigate(Screen(ScreenKind.ACTIVITY))
        fake_gateway.failures["list_deployments"] = "Failed to fetch activity: 503 Service Unavailable"
        press(signed_in, "r")
        assert [item.id for item in state.activity] == ["d1"]
        assert state.error == "Failed to fetch activity: 503 Service Unavailable"

    def test_successful_refresh_clears_error(self, signed_in, state, fake_gateway):
        fake_gateway.activity = [make_deployment("d1")]
        signed_in.navigate(Screen(ScreenKind.ACTIVITY))
        fake_gateway.failures["list_deployments"] = "Failed to fetch activity: 503 Service Unavailable"
        press(signed_in, "r")
        del fake_gateway.failures["list_deployments"]
        press(signed_in, "r")
        assert state.error is None


class TestProjectRefresh:
    def test_successful_refresh_clears_error(self, signed_in, state, fake_gateway):
        fake_gateway.failures["list_projects"] = "Failed to fetch projects: 503 Service Unavailable"
        press(signed_in, "r")
        assert state.error == "Failed to fetch projects: 503 Service Unavailable"

        del fake_gateway.failures["list_projects"]
        fake_gateway.projects = [make_project("p1")]
        press(signed_in, "r")
        assert state.error is None
        assert state.message == "Loaded 1 projects"

    def test_storage_refresh_after_failure_clears_error(self, signed_in, state, fake_gateway):
        fake_gateway.failures["storage_stats"] = "Failed to fetch storage stats: 500 Internal Server Error"
        signed_in.navigate(Screen(ScreenKind.STORAGE))
        assert state.error is not None
        del fake_gateway.failures["storage_stats"]
        signed_in.fetch_storage()
        assert state.error is None


class TestStoredLogScrolling:
    @pytest.fixture()
    def logs(self, signed_in, state, fake_gateway):
        stored = replace(make_deployment("d1"), logs="\n".join(f"line{n}" for n in range(100)))
        fake_gateway.projects = [make_project("p1", deployments=[stored])]
        signed_in.navigate(Screen.project_detail("p1"))
        press(signed_in, "l")
        assert state.screen == Screen.deployment_logs("d1")
        return signed_in

    def test_scroll_moves_through_stored_text(self, logs, state):
        for _ in range(20):
            press(logs, "j")
        assert state.live_logs.scroll == 20
        press(logs, "k")
        assert state.live_logs.scroll == 19

    def test_scroll_stops_at_last_stored_line(self, logs, state):
        for _ in range(15):
            press(logs, "pagedown")
        assert state.live_logs.scroll == 99
