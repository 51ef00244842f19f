"""Key dispatch for the dashboard.

Maps Textual key names to state-machine operations. The active handler
depends on the input mode: the login form, the filter input, the detail
popup, or the normal dashboard, checked in that order.
"""

from __future__ import annotations

from picotui.state.app_state import AppState, InputMode, LoginFocus
from picotui.state.view import ViewMode

_VIEW_KEYS = {
    "1": ViewMode.TIERS,
    "2": ViewMode.REPLICASETS,
    "3": ViewMode.INSTANCES,
}


def _printable(character: str | None) -> str | None:
    if character and len(character) == 1 and character.isprintable():
        return character
    return None


def handle_key(
    state: AppState, key: str, character: str | None = None, page_size: int = 10
) -> None:
    """Apply one key press to the state machine.

    Args:
        state: The state machine.
        key: Textual key name, e.g. ``"j"``, ``"ctrl+d"``, ``"shift+tab"``.
        character: The printable character for the key, if any.
        page_size: Rows in the list viewport, used by paging keys.
    """
    if state.input_mode is InputMode.LOGIN:
        handle_login_key(state, key, character)
    elif state.filter_active:
        handle_filter_key(state, key, character)
    elif state.show_detail:
        handle_detail_key(state, _printable(character) or key)
    else:
        handle_normal_key(state, _printable(character) or key, page_size)


def handle_login_key(state: AppState, key: str, character: str | None = None) -> None:
    if key in ("escape", "ctrl+c") or character == "q":
        state.quit()
    elif key == "ctrl+s":
        state.toggle_password_visibility()
    elif key in ("tab", "down"):
        state.login_focus_next()
    elif key in ("shift+tab", "up"):
        state.login_focus_previous()
    elif key == "enter":
        if state.login_focus is LoginFocus.REMEMBER_ME:
            state.toggle_remember_me()
        else:
            state.submit_login()
    elif key == "space" and state.login_focus is LoginFocus.REMEMBER_ME:
        state.toggle_remember_me()
    elif key == "backspace":
        state.login_backspace()
    elif char := _printable(character):
        state.login_type(char)


def handle_filter_key(state: AppState, key: str, character: str | None = None) -> None:
    if key == "escape":
        state.cancel_filter()
    elif key == "enter":
        state.finish_filter()
    elif key == "backspace":
        state.filter_pop()
    elif key == "ctrl+c":
        state.quit()
    elif char := _printable(character):
        state.filter_push(char)


def handle_detail_key(state: AppState, key: str) -> None:
    if key in ("escape", "enter", "q"):
        state.close_detail()
    elif key == "ctrl+c":
        state.quit()


def handle_normal_key(state: AppState, key: str, page_size: int = 10) -> None:
    if key in ("q", "ctrl+c"):
        state.quit()
    elif key in ("up", "k"):
        state.select_previous()
    elif key in ("down", "j"):
        state.select_next()
    elif key in ("home", "g"):
        state.select_first()
    elif key in ("end", "G"):
        state.select_last()
    elif key == "pageup":
        state.page_up(page_size)
    elif key == "pagedown":
        state.page_down(page_size)
    elif key == "ctrl+u":
        state.half_page_up(page_size)
    elif key == "ctrl+d":
        state.half_page_down(page_size)
    elif key in ("right", "l"):
        state.expand_selected()
    elif key in ("left", "h"):
        state.collapse_selected()
    elif key == "enter":
        state.toggle_detail()
    elif key == "r":
        if not state.loading:
            state.request_refresh()
    elif key == "X":
        # Capital X so a stray keypress does not log out
        if state.auth_enabled:
            state.logout()
    elif key == "v":
        state.cycle_view_mode()
    elif key in _VIEW_KEYS:
        state.set_view_mode(_VIEW_KEYS[key])
    elif key == "s":
        state.cycle_sort_field()
    elif key == "S":
        state.toggle_sort_order()
    elif key in ("/", "slash"):
        state.start_filter()
