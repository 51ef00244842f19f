"""Main Textual application for the Picodata dashboard.

The app is the render/input loop. Every 50 ms it drains the worker's result
queue into the state machine and redraws if anything arrived. Key presses go
straight to the state machine and trigger a redraw. A second timer issues the
periodic refresh.
"""

from __future__ import annotations

import queue
from typing import TYPE_CHECKING, Protocol

import structlog
from textual import events, on
from textual.app import App, ComposeResult

from picotui.core.tokens import TokenStore
from picotui.state.app_state import AppState, InputMode
from picotui.state.keys import handle_key
from picotui.tui.base import StatePanel
from picotui.tui.widgets import (
    AppHeader,
    ClusterPanel,
    Dashboard,
    DetailPopup,
    LoginPanel,
    StatusBar,
    TopologyList,
)
from picotui.worker.api_worker import ApiWorker

if TYPE_CHECKING:
    from picotui.core.config import PicotuiConfig
    from picotui.worker.messages import ApiRequest, ApiResponse

logger = structlog.get_logger()

TICK_INTERVAL = 0.05
WORKER_STOPPED_MESSAGE = "API worker stopped unexpectedly"


class WorkerHandle(Protocol):
    """What the app needs from the background worker."""

    requests: queue.Queue[ApiRequest]
    responses: queue.Queue[ApiResponse]

    def start(self) -> object: ...

    def is_alive(self) -> bool: ...

    def shutdown(self) -> None: ...


class PicotuiApp(App[None]):
    """Terminal dashboard for a Picodata cluster.

    Args:
        config: Runtime settings.
        worker: Background API worker. Built from config when omitted.
        token_store: Persisted session tokens. Defaults to ~/.config/picotui/tokens.json.
    """

    TITLE = "picotui"
    CSS_PATH = "styles.tcss"

    def __init__(
        self,
        config: PicotuiConfig,
        worker: WorkerHandle | None = None,
        token_store: TokenStore | None = None,
    ) -> None:
        """Initialize the dashboard app.

        Args:
            config: Runtime settings.
            worker: Background API worker. Built from config when omitted.
            token_store: Persisted session tokens.
        """
        super().__init__()
        self.config = config
        store = token_store if token_store is not None else TokenStore()
        self.worker: WorkerHandle = worker or ApiWorker(
            config.base_url,
            token_store=store,
            connect_timeout=config.connect_timeout,
            request_timeout=config.request_timeout,
            verify_ssl=config.verify_ssl,
        )
        self.state = AppState(
            config.base_url,
            self.worker.requests,
            self.worker.responses,
            token_store=store,
        )
        self.fatal_error: str | None = None

    def compose(self) -> ComposeResult:
        """Compose the app layout."""
        with Dashboard():
            yield AppHeader()
            yield ClusterPanel()
            yield TopologyList()
            yield LoginPanel()
            yield DetailPopup()
            yield StatusBar()

    def on_mount(self) -> None:
        """Start the worker, request the server config and start the timers."""
        self.worker.start()
        self.state.start_init()
        self.set_interval(TICK_INTERVAL, self._tick)
        if self.config.auto_refresh:
            self.set_interval(self.config.refresh_interval, self._auto_refresh)
        self.query_one(Dashboard).focus()
        self.refresh_view()
        logger.info("Dashboard started", base_url=self.config.base_url)

    def on_unmount(self) -> None:
        """Stop the worker. An in-flight request is abandoned."""
        self.worker.shutdown()

    def on_resize(self, event: events.Resize) -> None:
        self.call_after_refresh(self.refresh_view)

    def refresh_view(self) -> None:
        """Redraw every panel from the current state."""
        for panel in self.query(StatePanel):
            panel.refresh_from(self.state)

    def _tick(self) -> None:
        if self.state.process_responses():
            self.refresh_view()
        if not self.worker.is_alive():
            self._fail(WORKER_STOPPED_MESSAGE)

    def _auto_refresh(self) -> None:
        if self.state.input_mode is InputMode.NORMAL and not self.state.loading:
            self.state.request_refresh()
            self.refresh_view()

    def _fail(self, message: str) -> None:
        if self.fatal_error is not None:
            return
        self.fatal_error = message
        logger.error("Dashboard stopping on fatal error", error=message)
        self.exit(return_code=1, message=message)

    @on(Dashboard.KeyPressed)
    def handle_key_pressed(self, event: Dashboard.KeyPressed) -> None:
        """Apply a key press to the state machine and redraw."""
        page_size = self.query_one(TopologyList).page_size
        handle_key(self.state, event.key, event.character, page_size)
        if not self.state.running:
            self.exit()
            return
        self.refresh_view()
