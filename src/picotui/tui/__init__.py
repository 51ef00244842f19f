"""Terminal user interface for picotui.

Usage:
    from picotui.tui import PicotuiApp

    PicotuiApp(PicotuiConfig.load()).run()
"""

from picotui.tui.app import PicotuiApp
from picotui.tui.base import StatePanel
from picotui.tui.theme import Colors, Styles

__all__ = [
    "Colors",
    "PicotuiApp",
    "StatePanel",
    "Styles",
]
