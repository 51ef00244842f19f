"""Application state machine.

``AppState`` is the only mutable authority over what the dashboard shows. It
advances on two inputs: results drained from the API worker and user
operations called by the key dispatcher. It never blocks and never performs
network I/O itself; it only queues requests for the worker.
"""

from __future__ import annotations

import queue
import re
from enum import Enum

import structlog

from picotui.core.exceptions import TokenStoreError
from picotui.core.tokens import TokenEntry, TokenStore, normalize_url
from picotui.integrations.picodata.models import ClusterInfo, InstanceInfo, TierInfo
from picotui.state.view import (
    InstanceItem,
    InstanceRow,
    ReplicasetItem,
    ReplicasetRow,
    SortField,
    SortOrder,
    TierItem,
    TreeItem,
    ViewMode,
    build_tree,
    clamp_index,
    collect_instances,
    collect_replicasets,
    item_count,
    resolve_instance,
)
from picotui.worker.messages import (
    ApiRequest,
    ApiResponse,
    ClusterInfoResult,
    ConfigResult,
    GetClusterInfo,
    GetConfig,
    GetTiers,
    Login,
    LoginResult,
    SetToken,
    TiersResult,
)

logger = structlog.get_logger()

SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."

# Status as rendered after the endpoint, e.g. "Failed to get tiers: 401 Unauthorized - ..."
UNAUTHORIZED_STATUS = re.compile(r": (401|403)\b")


class Phase(Enum):
    """Lifecycle of the connection to the server."""

    UNINITIALIZED = "uninitialized"
    AWAITING_CONFIG = "awaiting_config"
    NEEDS_LOGIN = "needs_login"
    AWAITING_REFRESH = "awaiting_refresh"
    READY = "ready"


class InputMode(Enum):
    NORMAL = "normal"
    LOGIN = "login"


class LoginFocus(Enum):
    """Focused field of the login form, in Tab order."""

    USERNAME = "username"
    PASSWORD = "password"
    REMEMBER_ME = "remember_me"

    def next(self) -> LoginFocus:
        fields = list(LoginFocus)
        return fields[(fields.index(self) + 1) % len(fields)]

    def previous(self) -> LoginFocus:
        fields = list(LoginFocus)
        return fields[(fields.index(self) - 1) % len(fields)]


def is_unauthorized(message: str) -> bool:
    """Whether an error string looks like a rejected token."""
    return UNAUTHORIZED_STATUS.search(message) is not None or "unauthorized" in message.lower()


class AppState:
    """Single mutable authority over UI-visible state.

    Attributes:
        phase: Connection lifecycle phase.
        input_mode: NORMAL (dashboard) or LOGIN (login form).
        loading: A request the UI is waiting on is outstanding.
        has_saved_token: A persisted token is in play for this server.
        last_error: Passive error shown in the status bar.
        login_error: Error shown on the login form.
    """

    def __init__(
        self,
        base_url: str,
        requests: queue.Queue[ApiRequest],
        responses: queue.Queue[ApiResponse],
        token_store: TokenStore | None = None,
    ) -> None:
        """Initialize state and look up a saved token for the server.

        Args:
            base_url: Picodata HTTP API URL.
            requests: Worker inbound queue.
            responses: Worker outbound queue, drained by process_responses().
            token_store: Persisted tokens. None disables persistence.
        """
        self.base_url = normalize_url(base_url)
        self._requests = requests
        self._responses = responses
        self._token_store = token_store

        self.running = True
        self.phase = Phase.UNINITIALIZED
        self.input_mode = InputMode.NORMAL
        self.loading = False
        self.pending_init = False

        # Auth
        self.auth_enabled = False
        self._saved_token: TokenEntry | None = (
            token_store.load(self.base_url) if token_store is not None else None
        )
        self.has_saved_token = self._saved_token is not None
        self.login_username = ""
        self.login_password = ""
        self.login_focus = LoginFocus.USERNAME
        self.login_remember_me = False
        self.login_show_password = False
        self.login_error: str | None = None

        # Data
        self.cluster_info: ClusterInfo | None = None
        self.tiers: tuple[TierInfo, ...] = ()
        self.last_error: str | None = None

        # View
        self.expanded_tiers: set[int] = set()
        self.expanded_replicasets: set[tuple[int, int]] = set()
        self.tree_items: list[TreeItem] = []
        self.selected_index = 0
        self.show_detail = False
        self.view_mode = ViewMode.TIERS
        self.sort_field = SortField.NAME
        self.sort_order = SortOrder.ASC
        self.filter_text = ""
        self.filter_active = False

    def _submit(self, request: ApiRequest) -> None:
        self._requests.put(request)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start_init(self) -> None:
        """Adopt any saved token, then ask the server for its configuration."""
        if self._saved_token is not None:
            self._submit(SetToken(auth=self._saved_token.auth, refresh=self._saved_token.refresh))
            self.has_saved_token = True
        self._request_config()

    def _request_config(self) -> None:
        self.pending_init = True
        self.loading = True
        self.phase = Phase.AWAITING_CONFIG
        self._submit(GetConfig())

    def request_refresh(self) -> None:
        """Queue a cluster info and tiers fetch.

        Until the configuration has been received, a refresh retries the
        configuration request instead.
        """
        if self.pending_init:
            self._request_config()
            return
        self.loading = True
        if self.phase is not Phase.READY:
            self.phase = Phase.AWAITING_REFRESH
        self._submit(GetClusterInfo())
        self._submit(GetTiers())

    def submit_login(self) -> None:
        """Send the login form, unless the username is empty or a request is pending."""
        if not self.login_username or self.loading:
            return
        self.login_error = None
        self.loading = True
        self._submit(
            Login(
                username=self.login_username,
                password=self.login_password,
                remember_me=self.login_remember_me,
            )
        )

    def logout(self) -> None:
        """Forget the persisted token for this server and stop the app."""
        self._delete_saved_token()
        self.has_saved_token = False
        self.running = False

    def quit(self) -> None:
        self.running = False

    def _delete_saved_token(self) -> None:
        self._saved_token = None
        if self._token_store is None:
            return
        try:
            self._token_store.delete(self.base_url)
        except TokenStoreError as e:
            logger.warning("Failed to delete session tokens", error=str(e))

    # =========================================================================
    # Worker results
    # =========================================================================

    def process_responses(self) -> int:
        """Apply every result currently queued by the worker. Never blocks.

        Returns:
            Number of results applied.
        """
        handled = 0
        while True:
            try:
                response = self._responses.get_nowait()
            except queue.Empty:
                return handled
            self.handle_response(response)
            handled += 1

    def handle_response(self, response: ApiResponse) -> None:
        """Advance the state machine with one worker result."""
        if isinstance(response, ConfigResult):
            self._on_config(response)
        elif isinstance(response, LoginResult):
            self._on_login(response)
        elif isinstance(response, ClusterInfoResult):
            self._on_cluster_info(response)
        elif isinstance(response, TiersResult):
            self._on_tiers(response)

    def _on_config(self, result: ConfigResult) -> None:
        if result.value is None:
            self.last_error = f"Failed to connect: {result.error}"
            self.loading = False
            return

        self.pending_init = False
        self.auth_enabled = result.value.is_auth_enabled
        logger.info("Received server config", auth_enabled=self.auth_enabled)

        if not self.auth_enabled or self.has_saved_token:
            self.request_refresh()
            return

        self.input_mode = InputMode.LOGIN
        self.phase = Phase.NEEDS_LOGIN
        self.loading = False

    def _on_login(self, result: LoginResult) -> None:
        if result.value is None:
            self.login_error = result.error
            self.loading = False
            return

        self.login_password = ""
        self.login_error = None
        self.input_mode = InputMode.NORMAL
        self.login_focus = LoginFocus.USERNAME
        self.has_saved_token = self.login_remember_me
        self.request_refresh()

    def _on_cluster_info(self, result: ClusterInfoResult) -> None:
        if result.value is None:
            self.loading = False
            self._on_data_error("Cluster", result.error or "")
            return

        self.cluster_info = result.value
        self.last_error = None
        self.phase = Phase.READY
        # Tiers may still be outstanding at this point.
        self.loading = False

    def _on_tiers(self, result: TiersResult) -> None:
        if result.value is None:
            self._on_data_error("Tiers", result.error or "")
            return

        self.tiers = result.value
        self.rebuild_tree()

    def _on_data_error(self, source: str, message: str) -> None:
        if is_unauthorized(message) and self.has_saved_token:
            logger.info("Saved session rejected by server", source=source)
            self._delete_saved_token()
            self.has_saved_token = False
            self.input_mode = InputMode.LOGIN
            self.phase = Phase.NEEDS_LOGIN
            self.login_focus = LoginFocus.USERNAME
            self.login_error = SESSION_EXPIRED_MESSAGE
            self.loading = False
            self.show_detail = False
            self.filter_active = False
            return

        if self.input_mode is InputMode.LOGIN and is_unauthorized(message):
            # Second half of a refresh that already sent us to the login form.
            return

        self.last_error = f"{source}: {message}"

    # =========================================================================
    # Derived views
    # =========================================================================

    def rebuild_tree(self) -> None:
        """Rebuild the Tiers-view list and clamp the selection."""
        self.tree_items = build_tree(self.tiers, self.expanded_tiers, self.expanded_replicasets)
        self._clamp_selection()
        if self.show_detail and self.selected_instance() is None:
            self.show_detail = False

    def visible_replicasets(self) -> list[ReplicasetRow]:
        return collect_replicasets(self.tiers)

    def visible_instances(self) -> list[InstanceRow]:
        return collect_instances(self.tiers, self.filter_text, self.sort_field, self.sort_order)

    @property
    def item_count(self) -> int:
        """Selectable rows in the current view mode."""
        return item_count(self.view_mode, self.tree_items, self.tiers, self.filter_text)

    def selected_instance(self) -> InstanceInfo | None:
        """The instance under the cursor, if the selected row is one."""
        if self.view_mode is ViewMode.TIERS:
            if self.selected_index >= len(self.tree_items):
                return None
            return resolve_instance(self.tiers, self.tree_items[self.selected_index])
        if self.view_mode is ViewMode.INSTANCES:
            rows = self.visible_instances()
            if self.selected_index >= len(rows):
                return None
            return rows[self.selected_index].instance
        return None

    def _clamp_selection(self) -> None:
        self.selected_index = clamp_index(self.selected_index, self.item_count)

    # =========================================================================
    # Navigation
    # =========================================================================

    def select_next(self) -> None:
        count = self.item_count
        if count:
            self.selected_index = (self.selected_index + 1) % count

    def select_previous(self) -> None:
        count = self.item_count
        if count:
            self.selected_index = (self.selected_index - 1) % count

    def select_first(self) -> None:
        self.selected_index = 0

    def select_last(self) -> None:
        self.selected_index = clamp_index(self.item_count - 1, self.item_count)

    def page_down(self, page_size: int) -> None:
        self.selected_index = clamp_index(self.selected_index + max(page_size, 1), self.item_count)

    def page_up(self, page_size: int) -> None:
        self.selected_index = clamp_index(self.selected_index - max(page_size, 1), self.item_count)

    def half_page_down(self, page_size: int) -> None:
        self.page_down(max(page_size // 2, 1))

    def half_page_up(self, page_size: int) -> None:
        self.page_up(max(page_size // 2, 1))

    def expand_selected(self) -> None:
        """Expand the selected tier or replicaset, or open an instance's detail."""
        if self.view_mode is ViewMode.INSTANCES:
            if self.selected_instance() is not None:
                self.show_detail = True
            return
        if self.view_mode is not ViewMode.TIERS or self.selected_index >= len(self.tree_items):
            return

        item = self.tree_items[self.selected_index]
        if isinstance(item, TierItem):
            self.expanded_tiers.add(item.tier)
            self.rebuild_tree()
        elif isinstance(item, ReplicasetItem):
            self.expanded_replicasets.add((item.tier, item.replicaset))
            self.rebuild_tree()
        else:
            self.show_detail = True

    def collapse_selected(self) -> None:
        """Collapse the selected row, or the parent replicaset of an instance."""
        if self.view_mode is not ViewMode.TIERS or self.selected_index >= len(self.tree_items):
            return

        item = self.tree_items[self.selected_index]
        if isinstance(item, TierItem):
            self.expanded_tiers.discard(item.tier)
            self.expanded_replicasets = {
                key for key in self.expanded_replicasets if key[0] != item.tier
            }
            self.rebuild_tree()
        elif isinstance(item, ReplicasetItem):
            self.expanded_replicasets.discard((item.tier, item.replicaset))
            self.rebuild_tree()
        elif isinstance(item, InstanceItem):
            parent = ReplicasetItem(item.tier, item.replicaset)
            self.expanded_replicasets.discard((item.tier, item.replicaset))
            self.rebuild_tree()
            if parent in self.tree_items:
                self.selected_index = self.tree_items.index(parent)

    def toggle_detail(self) -> None:
        """Close the detail popup, or open it when an instance is selected."""
        if self.show_detail:
            self.show_detail = False
        elif self.selected_instance() is not None:
            self.show_detail = True

    def close_detail(self) -> None:
        self.show_detail = False

    # =========================================================================
    # View mode, sort and filter
    # =========================================================================

    def set_view_mode(self, mode: ViewMode) -> None:
        self.view_mode = mode
        self.selected_index = 0
        self.show_detail = False
        self.filter_active = False

    def cycle_view_mode(self) -> None:
        self.set_view_mode(self.view_mode.cycle_next())

    def cycle_sort_field(self) -> None:
        if self.view_mode is ViewMode.INSTANCES:
            self.sort_field = self.sort_field.cycle_next()
            self.selected_index = 0

    def toggle_sort_order(self) -> None:
        if self.view_mode is ViewMode.INSTANCES:
            self.sort_order = self.sort_order.toggle()
            self.selected_index = 0

    def start_filter(self) -> None:
        if self.view_mode is ViewMode.INSTANCES:
            self.filter_active = True

    def filter_push(self, char: str) -> None:
        self.filter_text += char
        self.selected_index = 0

    def filter_pop(self) -> None:
        self.filter_text = self.filter_text[:-1]
        self.selected_index = 0

    def finish_filter(self) -> None:
        """Leave filter input, keeping the text."""
        self.filter_active = False

    def cancel_filter(self) -> None:
        """Leave filter input and clear the text."""
        self.filter_active = False
        self.filter_text = ""
        self.selected_index = 0

    # =========================================================================
    # Login form
    # =========================================================================

    def login_focus_next(self) -> None:
        self.login_focus = self.login_focus.next()

    def login_focus_previous(self) -> None:
        self.login_focus = self.login_focus.previous()

    def login_type(self, char: str) -> None:
        if self.login_focus is LoginFocus.USERNAME:
            self.login_username += char
        elif self.login_focus is LoginFocus.PASSWORD:
            self.login_password += char

    def login_backspace(self) -> None:
        if self.login_focus is LoginFocus.USERNAME:
            self.login_username = self.login_username[:-1]
        elif self.login_focus is LoginFocus.PASSWORD:
            self.login_password = self.login_password[:-1]

    def toggle_remember_me(self) -> None:
        self.login_remember_me = not self.login_remember_me

    def toggle_password_visibility(self) -> None:
        self.login_show_password = not self.login_show_password
