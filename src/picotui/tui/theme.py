"""Theme constants and style utilities for the dashboard.

Usage:
    from picotui.tui.theme import Colors, Styles

    DEFAULT_CSS = f'''
    StatusBar {{ background: {Colors.STATUS_BACKGROUND}; }}
    '''

    text.append("Online", style=Styles.state(StateVariant.ONLINE))
"""

from __future__ import annotations

from picotui.integrations.picodata.models import StateVariant


class Colors:
    """Color constants for TUI theming.

    Textual CSS variables for widget styling, plain Rich color names for
    text spans.
    """

    # Semantic colors (Textual CSS variables)
    PRIMARY = "$primary"
    ERROR = "$error"
    SURFACE = "$surface"
    STATUS_BACKGROUND = "$panel"

    # Span colors (Rich)
    LABEL = "grey62"
    VALUE = "white"
    ACCENT = "cyan"
    KEY_HINT = "yellow"
    ONLINE = "green"
    OFFLINE = "red"
    EXPELLED = "grey42"
    WARNING = "yellow"
    MATCH = "black on yellow"
    SELECTED = "bold on grey23"


_STATE_COLORS = {
    StateVariant.ONLINE: Colors.ONLINE,
    StateVariant.OFFLINE: Colors.OFFLINE,
    StateVariant.EXPELLED: Colors.EXPELLED,
}


class Styles:
    """Style helpers returning Rich style strings."""

    @staticmethod
    def state(state: StateVariant) -> str:
        """Color for an instance or replicaset state."""
        return _STATE_COLORS.get(state, Colors.VALUE)

    @staticmethod
    def usage(ratio: float) -> str:
        """Gauge color: green below 70%, yellow below 90%, red above."""
        if ratio < 0.7:
            return Colors.ONLINE
        if ratio < 0.9:
            return Colors.WARNING
        return Colors.OFFLINE

    @staticmethod
    def instances(online: int, offline: int) -> str:
        """Color for the online/total counter."""
        if offline == 0:
            return Colors.ONLINE
        if online == 0:
            return Colors.OFFLINE
        return Colors.WARNING
