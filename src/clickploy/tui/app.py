"""Textual app hosting the Clickploy client."""

from __future__ import annotations

import sys

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Static

from clickploy.api.gateway import GatewayError
from clickploy.config.schema import ClientConfig
from clickploy.config.session import SessionStore, SessionStoreError
from clickploy.observability.logging import configure_logging, get_logger, log_event
from clickploy.tui.controller import Controller
from clickploy.tui.dispatcher import KeyPress, dispatch
from clickploy.tui.render import render_main_panel, render_status_line
from clickploy.tui.state import AppState
from clickploy.tui.supervisor import LogStreamSupervisor


logger = get_logger("clickploy.app")

MIN_TICK_INTERVAL = 0.05


class ClickployApp(App[None]):
    """Foreground loop: key intake, supervisor sync and rendering."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #main_panel {
        height: 1fr;
        padding: 0 1;
    }

    #status_line {
        height: 1;
    }
    """

    ENABLE_COMMAND_PALETTE = False

    # Keys Textual would otherwise consume for focus handling or quitting.
    BINDINGS = [
        Binding("ctrl+c", "key_passthrough('ctrl+c')", "Quit", show=False, priority=True),
        Binding("tab", "key_passthrough('tab')", "Next Field", show=False, priority=True),
        Binding("shift+tab", "key_passthrough('shift+tab')", "Prev Field", show=False, priority=True),
    ]

    def __init__(
        self,
        state: AppState,
        controller: Controller,
        *,
        tick_interval: float = 0.1,
    ) -> None:
        super().__init__()
        self.state = state
        self.controller = controller
        self.supervisor = controller.supervisor
        self.tick_interval = max(MIN_TICK_INTERVAL, tick_interval)

        self.status_line: Static | None = None
        self.main_panel: Static | None = None

    def compose(self) -> ComposeResult:
        yield Static(id="main_panel")
        yield Static(id="status_line")

    def on_mount(self) -> None:
        self.status_line = self.query_one("#status_line", Static)
        self.main_panel = self.query_one("#main_panel", Static)
        self._tick()
        self.set_interval(self.tick_interval, self._tick)

    def _tick(self) -> None:
        self.supervisor.sync(self.state)
        self._render()

    def _render(self) -> None:
        if self.status_line is None or self.main_panel is None:
            return
        height = self.main_panel.size.height or 24
        self.status_line.update(render_status_line(self.state))
        self.main_panel.update(render_main_panel(self.state, height=height))

    async def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        await self._handle_key(KeyPress(event.key, event.character))

    async def action_key_passthrough(self, key: str) -> None:
        await self._handle_key(KeyPress(key))

    async def _handle_key(self, key: KeyPress) -> None:
        command = dispatch(self.state, key)
        if command is None:
            return
        self.controller.handle(command)
        if self.state.should_quit:
            await self._shutdown_client()
            return
        self._tick()

    async def _shutdown_client(self) -> None:
        await self.supervisor.aclose()
        self.controller.close()
        log_event(logger, "client_exit", exit_code=self.state.exit_code)
        self.exit(return_code=self.state.exit_code)


def run_client(config: ClientConfig) -> int:
    """Run the interactive client and return the process exit code."""

    if not sys.stdin.isatty() or not sys.stdout.isatty():
        raise SystemExit("clickploy requires an interactive terminal")

    configure_logging(config.log_level, config.resolved_log_file)
    store = SessionStore(config.session_path)
    state = AppState(default_server_url=config.default_server_url)
    supervisor = LogStreamSupervisor(queue_size=config.log_queue_size)
    controller = Controller(
        state,
        store=store,
        supervisor=supervisor,
        request_timeout=config.request_timeout,
    )

    session = store.load()
    if session is not None:
        try:
            controller.resume_session(session)
        except (GatewayError, SessionStoreError) as exc:
            raise SystemExit(f"Could not validate the stored session: {exc}") from exc

    log_event(logger, "client_start", screen=str(state.screen), config_dir=str(config.config_dir))
    app = ClickployApp(state, controller, tick_interval=config.tick_interval)
    app.run()
    controller.close()
    return app.return_code or 0
