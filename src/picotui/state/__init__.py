"""Dashboard state: view derivations, the application state machine and key dispatch."""

from picotui.state.app_state import AppState, InputMode, LoginFocus, Phase
from picotui.state.keys import handle_key
from picotui.state.view import SortField, SortOrder, ViewMode

__all__ = [
    "AppState",
    "InputMode",
    "LoginFocus",
    "Phase",
    "SortField",
    "SortOrder",
    "ViewMode",
    "handle_key",
]
