"""Dashboard panels.

Each panel renders one region of the screen from AppState using the pure
functions in ``picotui.tui.formatting``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.table import Table
from rich.text import Text
from textual import events
from textual.containers import Vertical
from textual.message import Message

from picotui.state.app_state import InputMode
from picotui.state.view import scroll_offset
from picotui.tui.base import StatePanel
from picotui.tui.formatting import (
    cluster_header,
    empty_message,
    instance_detail,
    list_lines,
    list_title,
    login_form,
    status_bar,
    visible_window,
)
from picotui.tui.theme import Colors

if TYPE_CHECKING:
    from picotui.state.app_state import AppState

APP_TITLE = "picotui - Picodata Cluster Monitor"


class Dashboard(Vertical, can_focus=True):
    """Focusable root container that receives every key press.

    Keys are stopped here and re-posted as KeyPressed, so Textual's default
    focus and quit bindings never see them.
    """

    DEFAULT_CSS = """
    Dashboard {
        layers: default overlay;
        align-horizontal: center;
    }
    """

    class KeyPressed(Message):
        """A key press to apply to the state machine."""

        def __init__(self, key: str, character: str | None) -> None:
            super().__init__()
            self.key = key
            self.character = character

    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        self.post_message(self.KeyPressed(event.key, event.character))


class AppHeader(StatePanel):
    """Title bar with the current view mode badge."""

    DEFAULT_CSS = """
    AppHeader {
        height: 1;
        background: $panel;
    }
    """

    def refresh_from(self, state: AppState) -> None:
        grid = Table.grid(expand=True)
        grid.add_column()
        grid.add_column(justify="right")
        grid.add_row(
            Text(f" {APP_TITLE}", style="bold"),
            Text(f"[{state.view_mode.value}] ", style=Colors.ACCENT),
        )
        self.update(grid)


class ClusterPanel(StatePanel):
    """Cluster aggregate and memory gauge."""

    DEFAULT_CSS = """
    ClusterPanel {
        height: 5;
        border: round $primary;
        padding: 0 1;
    }
    """

    def on_mount(self) -> None:
        self.border_title = "Cluster Info"

    def refresh_from(self, state: AppState) -> None:
        self.display = state.input_mode is InputMode.NORMAL
        self.update(cluster_header(state.cluster_info))


class TopologyList(StatePanel):
    """The selectable list for the current view mode.

    Only the rows that fit are rendered. The window scrolls to keep the
    selected row visible.
    """

    DEFAULT_CSS = """
    TopologyList {
        height: 1fr;
        border: round $primary;
        padding: 0 1;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.offset_row = 0

    @property
    def page_size(self) -> int:
        """Rows that fit in the viewport."""
        return max(self.content_size.height, 1)

    def refresh_from(self, state: AppState) -> None:
        self.display = state.input_mode is InputMode.NORMAL
        self.border_title = list_title(state).markup
        lines = list_lines(state)
        if not lines:
            self.offset_row = 0
            self.update(empty_message(state))
            return

        height = self.content_size.height or len(lines)
        self.offset_row = scroll_offset(state.selected_index, self.offset_row, height, len(lines))
        self.update(visible_window(lines, state.selected_index, self.offset_row, height))


class DetailPopup(StatePanel):
    """Overlay describing the selected instance."""

    DEFAULT_CSS = """
    DetailPopup {
        layer: overlay;
        display: none;
        width: 60%;
        height: auto;
        max-height: 80%;
        offset: 20% 4;
        border: round $accent;
        background: $surface;
        padding: 0 1;
    }
    """

    def refresh_from(self, state: AppState) -> None:
        instance = state.selected_instance() if state.show_detail else None
        self.display = instance is not None
        if instance is None:
            return
        self.border_title = Text(f"Instance: {instance.name}").markup
        self.update(instance_detail(instance))


class LoginPanel(StatePanel):
    """Login form, shown instead of the dashboard in login mode."""

    DEFAULT_CSS = """
    LoginPanel {
        display: none;
        width: 64;
        height: auto;
        margin: 4 0 0 0;
        border: round $accent;
        padding: 1 2;
    }
    """

    def on_mount(self) -> None:
        self.border_title = "Picodata Login"

    def refresh_from(self, state: AppState) -> None:
        self.display = state.input_mode is InputMode.LOGIN
        self.update(login_form(state))


class StatusBar(StatePanel):
    """Key hints plus loading or error status."""

    DEFAULT_CSS = """
    StatusBar {
        dock: bottom;
        height: 1;
        background: $panel;
    }
    """

    def refresh_from(self, state: AppState) -> None:
        self.display = state.input_mode is not InputMode.LOGIN
        self.update(status_bar(state))
