"""Base class for dashboard panels.

Every panel is a ``Static`` that redraws itself from the shared ``AppState``.
The app calls ``refresh_from`` on all panels after each key press and after
each batch of worker results.

Usage:
    from picotui.tui.base import StatePanel

    class MyPanel(StatePanel):
        DEFAULT_CSS = '''
        MyPanel { height: auto; }
        '''

        def refresh_from(self, state: AppState) -> None:
            self.update(Text(state.base_url))
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from textual.widgets import Static

if TYPE_CHECKING:
    from picotui.state.app_state import AppState


class StatePanel(Static):
    """Base class for widgets rendered from AppState.

    Subclasses should define:
    - DEFAULT_CSS: Widget-specific styling
    - refresh_from(): Redraw from the current state
    """

    def refresh_from(self, state: AppState) -> None:
        """Redraw the panel. Must be implemented by subclasses."""
        raise NotImplementedError("Subclasses must implement refresh_from()")
