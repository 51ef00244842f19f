"""Unit tests for the AppState state machine."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from picotui.core.tokens import TokenStore
from picotui.integrations.picodata.models import ClusterInfo, TierInfo, TokenResponse, UiConfig
from picotui.state.app_state import (
    SESSION_EXPIRED_MESSAGE,
    AppState,
    InputMode,
    LoginFocus,
    Phase,
    is_unauthorized,
)
from picotui.state.keys import handle_key
from picotui.state.view import InstanceItem, ReplicasetItem, SortField, SortOrder, ViewMode
from picotui.worker.messages import (
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
from tests.conftest import AUTH_TOKEN, BASE_URL, REFRESH_TOKEN, FakeWorker

UNAUTHORIZED = "Failed to get cluster info: 401 Unauthorized - unauthorized"

StateFactory = Callable[..., AppState]


def _tokens() -> TokenResponse:
    return TokenResponse(auth=AUTH_TOKEN, refresh=REFRESH_TOKEN)


@pytest.fixture
def saved_store(token_store: TokenStore) -> TokenStore:
    token_store.save(BASE_URL, AUTH_TOKEN, REFRESH_TOKEN)
    return token_store


@pytest.mark.unit
class TestIsUnauthorized:
    @pytest.mark.parametrize(
        "message",
        [UNAUTHORIZED, "Failed to get tiers: 403 Forbidden - no", "Unauthorized"],
    )
    def test_matches(self, message: str) -> None:
        assert is_unauthorized(message)

    def test_other_errors(self) -> None:
        assert not is_unauthorized("Failed to connect to http://h: Connection refused")

    @pytest.mark.parametrize(
        "message",
        [
            "Failed to connect to http://localhost:4011: Connection refused",
            "Request to http://localhost:4030/api/v1/tiers timed out: read timeout",
            "Failed to get cluster info: 500 Internal Server Error - shard 401 down",
        ],
    )
    def test_status_digits_elsewhere_do_not_match(self, message: str) -> None:
        assert not is_unauthorized(message)


@pytest.mark.unit
class TestInitialization:
    """Tests for start_init and the config result."""

    def test_initial_state(self, make_state: StateFactory) -> None:
        state = make_state()

        assert state.running is True
        assert state.phase is Phase.UNINITIALIZED
        assert state.input_mode is InputMode.NORMAL
        assert state.has_saved_token is False
        assert state.view_mode is ViewMode.TIERS

    def test_start_init_requests_config(
        self, make_state: StateFactory, fake_worker: FakeWorker
    ) -> None:
        state = make_state()

        state.start_init()

        assert fake_worker.drain() == [GetConfig()]
        assert state.loading is True
        assert state.pending_init is True
        assert state.phase is Phase.AWAITING_CONFIG

    def test_saved_token_is_sent_first(
        self, make_state: StateFactory, fake_worker: FakeWorker, saved_store: TokenStore
    ) -> None:
        state = make_state(store=saved_store)

        state.start_init()

        assert state.has_saved_token is True
        assert fake_worker.drain() == [SetToken(AUTH_TOKEN, REFRESH_TOKEN), GetConfig()]

    def test_saved_token_lookup_ignores_trailing_slash(
        self, make_state: StateFactory, saved_store: TokenStore
    ) -> None:
        assert make_state(base_url=BASE_URL + "/", store=saved_store).has_saved_token is True

    def test_no_auth_goes_straight_to_refresh(
        self, make_state: StateFactory, fake_worker: FakeWorker
    ) -> None:
        state = make_state()
        state.start_init()
        fake_worker.drain()

        state.handle_response(ConfigResult(value=UiConfig(is_auth_enabled=False)))

        assert fake_worker.drain() == [GetClusterInfo(), GetTiers()]
        assert state.auth_enabled is False
        assert state.loading is True
        assert state.pending_init is False
        assert state.phase is Phase.AWAITING_REFRESH

    def test_auth_without_token_shows_login(
        self, make_state: StateFactory, fake_worker: FakeWorker
    ) -> None:
        state = make_state()
        state.start_init()
        fake_worker.drain()

        state.handle_response(ConfigResult(value=UiConfig(is_auth_enabled=True)))

        assert state.input_mode is InputMode.LOGIN
        assert state.phase is Phase.NEEDS_LOGIN
        assert state.loading is False
        assert fake_worker.drain() == []

    def test_auth_with_saved_token_refreshes(
        self, make_state: StateFactory, fake_worker: FakeWorker, saved_store: TokenStore
    ) -> None:
        state = make_state(store=saved_store)
        state.start_init()
        fake_worker.drain()

        state.handle_response(ConfigResult(value=UiConfig(is_auth_enabled=True)))

        assert state.input_mode is InputMode.NORMAL
        assert fake_worker.drain() == [GetClusterInfo(), GetTiers()]

    def test_config_failure(self, make_state: StateFactory, fake_worker: FakeWorker) -> None:
        state = make_state()
        state.start_init()
        fake_worker.drain()

        state.handle_response(ConfigResult(error="Failed to connect to x: refused"))

        assert state.last_error == "Failed to connect: Failed to connect to x: refused"
        assert state.loading is False
        assert state.pending_init is True

    def test_refresh_before_config_retries_config(
        self, make_state: StateFactory, fake_worker: FakeWorker
    ) -> None:
        state = make_state()
        state.start_init()
        state.handle_response(ConfigResult(error="refused"))
        fake_worker.drain()

        state.request_refresh()

        assert fake_worker.drain() == [GetConfig()]
        assert state.loading is True


@pytest.mark.unit
class TestDataResults:
    """Tests for cluster info and tiers results."""

    def test_full_refresh(
        self,
        make_state: StateFactory,
        cluster_info: ClusterInfo,
        tiers: tuple[TierInfo, ...],
    ) -> None:
        state = make_state()
        state.start_init()
        state.handle_response(ConfigResult(value=UiConfig()))

        state.handle_response(ClusterInfoResult(value=cluster_info))
        assert state.loading is False
        assert state.phase is Phase.READY

        state.handle_response(TiersResult(value=tiers))
        assert state.tiers == tiers
        assert len(state.tree_items) == 2
        assert state.last_error is None

    def test_process_responses_drains_queue(
        self,
        make_state: StateFactory,
        fake_worker: FakeWorker,
        cluster_info: ClusterInfo,
        tiers: tuple[TierInfo, ...],
    ) -> None:
        state = make_state()
        fake_worker.responses.put(ClusterInfoResult(value=cluster_info))
        fake_worker.responses.put(TiersResult(value=tiers))

        assert state.process_responses() == 2
        assert state.process_responses() == 0
        assert state.cluster_info == cluster_info

    def test_other_errors_are_passive(self, loaded_state: AppState) -> None:
        loaded_state.handle_response(TiersResult(error="Failed to get tiers: 500 Internal"))

        assert loaded_state.last_error == "Tiers: Failed to get tiers: 500 Internal"
        assert loaded_state.input_mode is InputMode.NORMAL
        assert len(loaded_state.tiers) == 2

    def test_cluster_error_clears_loading(self, loaded_state: AppState) -> None:
        loaded_state.request_refresh()

        loaded_state.handle_response(ClusterInfoResult(error="boom"))

        assert loaded_state.loading is False
        assert loaded_state.last_error == "Cluster: boom"

    def test_successful_cluster_info_clears_error(
        self, loaded_state: AppState, cluster_info: ClusterInfo
    ) -> None:
        loaded_state.last_error = "Cluster: boom"

        loaded_state.handle_response(ClusterInfoResult(value=cluster_info))

        assert loaded_state.last_error is None

    def test_unauthorized_without_saved_token_is_passive(self, loaded_state: AppState) -> None:
        loaded_state.handle_response(ClusterInfoResult(error=UNAUTHORIZED))

        assert loaded_state.input_mode is InputMode.NORMAL
        assert loaded_state.last_error == f"Cluster: {UNAUTHORIZED}"

    def test_tiers_shrink_clamps_selection(
        self, loaded_state: AppState, tiers: tuple[TierInfo, ...]
    ) -> None:
        loaded_state.select_last()
        assert loaded_state.selected_index == 1

        loaded_state.handle_response(TiersResult(value=tiers[:1]))

        assert loaded_state.selected_index == 0

    def test_tiers_empty_clamps_to_zero(self, loaded_state: AppState) -> None:
        loaded_state.select_last()

        loaded_state.handle_response(TiersResult(value=()))

        assert loaded_state.selected_index == 0
        assert loaded_state.item_count == 0


@pytest.mark.unit
class TestSessionExpiry:
    """A rejected saved token sends the user back to the login form."""

    @pytest.fixture
    def state(
        self, make_state: StateFactory, fake_worker: FakeWorker, saved_store: TokenStore
    ) -> AppState:
        state = make_state(store=saved_store)
        state.start_init()
        state.handle_response(ConfigResult(value=UiConfig(is_auth_enabled=True)))
        fake_worker.drain()
        return state

    @pytest.mark.parametrize("result_type", [ClusterInfoResult, TiersResult])
    def test_unauthorized_returns_to_login(
        self, state: AppState, saved_store: TokenStore, result_type: type
    ) -> None:
        state.handle_response(result_type(error=UNAUTHORIZED))

        assert state.input_mode is InputMode.LOGIN
        assert state.phase is Phase.NEEDS_LOGIN
        assert state.login_error == SESSION_EXPIRED_MESSAGE
        assert state.has_saved_token is False
        assert state.loading is False
        assert saved_store.load(BASE_URL) is None

    def test_second_unauthorized_is_ignored(self, state: AppState) -> None:
        state.handle_response(ClusterInfoResult(error=UNAUTHORIZED))
        state.handle_response(TiersResult(error=UNAUTHORIZED))

        assert state.login_error == SESSION_EXPIRED_MESSAGE
        assert state.last_error is None

    def test_non_auth_error_keeps_token(self, state: AppState, saved_store: TokenStore) -> None:
        state.handle_response(ClusterInfoResult(error="Failed to get cluster info: 500 Boom"))

        assert state.input_mode is InputMode.NORMAL
        assert saved_store.load(BASE_URL) is not None

    def test_connection_error_on_port_401x_keeps_token(
        self, make_state: StateFactory, token_store: TokenStore
    ) -> None:
        url = "http://localhost:4011"
        token_store.save(url, AUTH_TOKEN, REFRESH_TOKEN)
        state = make_state(base_url=url)
        state.start_init()
        state.handle_response(ConfigResult(value=UiConfig(is_auth_enabled=True)))

        state.handle_response(
            ClusterInfoResult(error=f"Failed to connect to {url}: Connection refused")
        )

        assert state.input_mode is InputMode.NORMAL
        assert state.has_saved_token is True
        assert state.last_error == f"Cluster: Failed to connect to {url}: Connection refused"
        assert token_store.load(url) is not None


@pytest.mark.unit
class TestLogin:
    """Tests for the login form and login results."""

    @pytest.fixture
    def state(self, make_state: StateFactory, fake_worker: FakeWorker) -> AppState:
        state = make_state()
        state.start_init()
        state.handle_response(ConfigResult(value=UiConfig(is_auth_enabled=True)))
        fake_worker.drain()
        return state

    def test_submit_requires_username(self, state: AppState, fake_worker: FakeWorker) -> None:
        state.submit_login()

        assert fake_worker.drain() == []
        assert state.loading is False

    def test_submit(self, state: AppState, fake_worker: FakeWorker) -> None:
        state.login_username = "admin"
        state.login_password = "secret"
        state.login_remember_me = True
        state.login_error = "old"

        state.submit_login()

        assert fake_worker.drain() == [Login("admin", "secret", remember_me=True)]
        assert state.loading is True
        assert state.login_error is None

    def test_submit_ignored_while_loading(self, state: AppState, fake_worker: FakeWorker) -> None:
        state.login_username = "admin"
        state.submit_login()
        state.submit_login()

        assert len(fake_worker.drain()) == 1

    def test_success(self, state: AppState, fake_worker: FakeWorker) -> None:
        state.login_username = "admin"
        state.login_password = "secret"
        state.submit_login()
        fake_worker.drain()

        state.handle_response(LoginResult(value=_tokens()))

        assert state.input_mode is InputMode.NORMAL
        assert state.login_password == ""
        assert state.has_saved_token is False
        assert fake_worker.drain() == [GetClusterInfo(), GetTiers()]

    def test_success_with_remember_me(self, state: AppState) -> None:
        state.login_remember_me = True

        state.handle_response(LoginResult(value=_tokens()))

        assert state.has_saved_token is True

    def test_failure(self, state: AppState) -> None:
        state.login_username = "admin"
        state.submit_login()

        state.handle_response(LoginResult(error="Invalid username or password"))

        assert state.input_mode is InputMode.LOGIN
        assert state.login_error == "Invalid username or password"
        assert state.loading is False

    def test_focus_cycle(self, state: AppState) -> None:
        assert state.login_focus is LoginFocus.USERNAME
        state.login_focus_next()
        assert state.login_focus is LoginFocus.PASSWORD
        state.login_focus_next()
        assert state.login_focus is LoginFocus.REMEMBER_ME
        state.login_focus_next()
        assert state.login_focus is LoginFocus.USERNAME
        state.login_focus_previous()
        assert state.login_focus is LoginFocus.REMEMBER_ME

    def test_typing_goes_to_focused_field(self, state: AppState) -> None:
        for char in "adm":
            state.login_type(char)
        state.login_focus_next()
        for char in "pw":
            state.login_type(char)
        state.login_backspace()
        state.login_focus_next()
        state.login_type("z")

        assert state.login_username == "adm"
        assert state.login_password == "p"

    def test_toggles(self, state: AppState) -> None:
        state.toggle_remember_me()
        state.toggle_password_visibility()

        assert state.login_remember_me is True
        assert state.login_show_password is True


@pytest.mark.unit
class TestLogoutAndQuit:
    def test_logout_deletes_saved_token(
        self, make_state: StateFactory, saved_store: TokenStore
    ) -> None:
        state = make_state(store=saved_store)

        state.logout()

        assert state.running is False
        assert state.has_saved_token is False
        assert saved_store.load(BASE_URL) is None

    def test_logout_without_store(self, make_state: StateFactory) -> None:
        state = make_state(store=None)

        state.logout()

        assert state.running is False

    def test_quit(self, make_state: StateFactory) -> None:
        state = make_state()

        state.quit()

        assert state.running is False


@pytest.mark.unit
class TestNavigation:
    """Tests for selection movement in every view."""

    def test_wraps_both_ways(self, loaded_state: AppState) -> None:
        loaded_state.select_previous()
        assert loaded_state.selected_index == 1
        loaded_state.select_next()
        assert loaded_state.selected_index == 0

    def test_empty_list_stays_at_zero(self, make_state: StateFactory) -> None:
        state = make_state()

        state.select_next()
        state.select_previous()
        state.select_last()

        assert state.selected_index == 0

    def test_paging_clamps(self, loaded_state: AppState) -> None:
        loaded_state.set_view_mode(ViewMode.INSTANCES)

        loaded_state.page_down(4)
        assert loaded_state.selected_index == 4
        loaded_state.page_down(4)
        assert loaded_state.selected_index == 5
        loaded_state.half_page_up(4)
        assert loaded_state.selected_index == 3
        loaded_state.page_up(10)
        assert loaded_state.selected_index == 0

    def test_first_and_last(self, loaded_state: AppState) -> None:
        loaded_state.set_view_mode(ViewMode.REPLICASETS)

        loaded_state.select_last()
        assert loaded_state.selected_index == 2
        loaded_state.select_first()
        assert loaded_state.selected_index == 0

    def test_selection_never_leaves_range(self, loaded_state: AppState) -> None:
        for step in (
            loaded_state.select_next,
            loaded_state.expand_selected,
            loaded_state.select_next,
            loaded_state.expand_selected,
            loaded_state.select_last,
            loaded_state.collapse_selected,
            loaded_state.select_first,
            loaded_state.collapse_selected,
        ):
            step()
            assert 0 <= loaded_state.selected_index < max(loaded_state.item_count, 1)


@pytest.mark.unit
class TestExpandCollapse:
    """Tests for the Tiers view tree operations."""

    def _expand_to_instance(self, state: AppState) -> None:
        state.expand_selected()  # tier "default"
        state.select_next()  # r1
        state.expand_selected()
        state.select_next()  # i1

    def test_expand_tier_and_replicaset(self, loaded_state: AppState) -> None:
        self._expand_to_instance(loaded_state)

        assert loaded_state.tree_items[loaded_state.selected_index] == InstanceItem(0, 0, 0)
        assert loaded_state.item_count == 6

    def test_expand_instance_opens_detail(self, loaded_state: AppState) -> None:
        self._expand_to_instance(loaded_state)

        loaded_state.expand_selected()

        assert loaded_state.show_detail is True
        assert loaded_state.selected_instance().name == "i1"  # type: ignore[union-attr]

    def test_collapse_instance_selects_parent(self, loaded_state: AppState) -> None:
        self._expand_to_instance(loaded_state)
        loaded_state.select_next()  # i2

        loaded_state.collapse_selected()

        assert loaded_state.tree_items[loaded_state.selected_index] == ReplicasetItem(0, 0)
        assert (0, 0) not in loaded_state.expanded_replicasets

    def test_collapse_tier_collapses_replicasets(self, loaded_state: AppState) -> None:
        self._expand_to_instance(loaded_state)
        loaded_state.select_first()

        loaded_state.collapse_selected()

        assert loaded_state.expanded_tiers == set()
        assert loaded_state.expanded_replicasets == set()
        assert loaded_state.item_count == 2

    def test_expansion_survives_refresh(
        self, loaded_state: AppState, tiers: tuple[TierInfo, ...]
    ) -> None:
        self._expand_to_instance(loaded_state)

        loaded_state.handle_response(TiersResult(value=tiers))

        assert loaded_state.item_count == 6
        assert loaded_state.selected_index == 2


@pytest.mark.unit
class TestDetail:
    def test_toggle_needs_an_instance(self, loaded_state: AppState) -> None:
        loaded_state.toggle_detail()

        assert loaded_state.show_detail is False

    def test_toggle_in_instances_view(self, loaded_state: AppState) -> None:
        loaded_state.set_view_mode(ViewMode.INSTANCES)
        loaded_state.select_next()

        loaded_state.toggle_detail()
        assert loaded_state.show_detail is True
        assert loaded_state.selected_instance().name == "i2"  # type: ignore[union-attr]

        loaded_state.toggle_detail()
        assert loaded_state.show_detail is False

    def test_replicasets_view_has_no_detail(self, loaded_state: AppState) -> None:
        loaded_state.set_view_mode(ViewMode.REPLICASETS)

        loaded_state.toggle_detail()

        assert loaded_state.show_detail is False

    def test_refresh_without_the_instance_closes_detail(self, loaded_state: AppState) -> None:
        loaded_state.set_view_mode(ViewMode.INSTANCES)
        loaded_state.toggle_detail()
        emptied = tuple(
            tier.model_copy(update={"replicasets": []}) for tier in loaded_state.tiers
        )

        loaded_state.handle_response(TiersResult(value=emptied))

        assert loaded_state.selected_instance() is None
        assert loaded_state.show_detail is False
        handle_key(loaded_state, "1", "1")
        assert loaded_state.view_mode is ViewMode.TIERS

    def test_refresh_keeping_the_instance_keeps_detail(self, loaded_state: AppState) -> None:
        loaded_state.set_view_mode(ViewMode.INSTANCES)
        loaded_state.toggle_detail()

        loaded_state.handle_response(TiersResult(value=loaded_state.tiers))

        assert loaded_state.show_detail is True


@pytest.mark.unit
class TestViewModeSortFilter:
    def test_set_view_mode_resets(self, loaded_state: AppState) -> None:
        loaded_state.set_view_mode(ViewMode.INSTANCES)
        loaded_state.select_next()
        loaded_state.toggle_detail()
        loaded_state.start_filter()

        loaded_state.set_view_mode(ViewMode.TIERS)

        assert loaded_state.selected_index == 0
        assert loaded_state.show_detail is False
        assert loaded_state.filter_active is False

    def test_cycle_view_mode(self, loaded_state: AppState) -> None:
        loaded_state.cycle_view_mode()

        assert loaded_state.view_mode is ViewMode.REPLICASETS

    def test_sort_only_in_instances_view(self, loaded_state: AppState) -> None:
        loaded_state.cycle_sort_field()
        loaded_state.toggle_sort_order()
        assert loaded_state.sort_field is SortField.NAME
        assert loaded_state.sort_order is SortOrder.ASC

        loaded_state.set_view_mode(ViewMode.INSTANCES)
        loaded_state.select_last()
        loaded_state.cycle_sort_field()
        assert loaded_state.sort_field is SortField.FAILURE_DOMAIN
        assert loaded_state.selected_index == 0

        loaded_state.toggle_sort_order()
        assert loaded_state.sort_order is SortOrder.DESC
        assert loaded_state.visible_instances()[0].instance.name == "i4"

    def test_filter_only_in_instances_view(self, loaded_state: AppState) -> None:
        loaded_state.start_filter()

        assert loaded_state.filter_active is False

    def test_filter_editing(self, loaded_state: AppState) -> None:
        loaded_state.set_view_mode(ViewMode.INSTANCES)
        loaded_state.start_filter()
        for char in "s1x":
            loaded_state.filter_push(char)
        loaded_state.filter_pop()

        assert loaded_state.filter_text == "s1"
        assert loaded_state.item_count == 2

        loaded_state.finish_filter()
        assert loaded_state.filter_active is False
        assert loaded_state.filter_text == "s1"

    def test_cancel_filter_clears_text(self, loaded_state: AppState) -> None:
        loaded_state.set_view_mode(ViewMode.INSTANCES)
        loaded_state.start_filter()
        loaded_state.filter_push("s")

        loaded_state.cancel_filter()

        assert loaded_state.filter_text == ""
        assert loaded_state.item_count == 6
