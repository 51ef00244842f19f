"""Rich renderables for every part of the dashboard.

All functions are pure: they take state or model snapshots and return Rich
``Text`` (or a group of renderables) so the widgets stay thin and the output
can be tested without running the app.
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Group, RenderableType
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from picotui.integrations.picodata.models import (
    ClusterInfo,
    InstanceInfo,
    ReplicasetInfo,
    StateVariant,
    TierInfo,
)
from picotui.state.app_state import AppState, LoginFocus
from picotui.state.view import (
    InstanceRow,
    ReplicasetItem,
    ReplicasetRow,
    TierItem,
    TreeItem,
    ViewMode,
    failure_domain_label,
)
from picotui.tui.theme import Colors, Styles

_UNITS = ("B", "KiB", "MiB", "GiB", "TiB")
SEPARATOR = "  │  "
FILTER_CURSOR = "█"


def format_bytes(size: int) -> str:
    """Human-readable binary size with one decimal, e.g. ``1.5 GiB``."""
    if size == 0:
        return "0 B"
    value = float(size)
    for unit in _UNITS:
        if value < 1024.0:
            return f"{value:.1f} {unit}"
        value /= 1024.0
    return f"{value:.1f} PiB"


def _memory(used: int, usable: int, capacity_usage: float) -> str:
    return f"{format_bytes(used)}/{format_bytes(usable)} ({capacity_usage:.1f}%)"


def highlight_match(text: str, filter_text: str, style: str = "") -> Text:
    """Render ``text`` with every case-insensitive occurrence of the filter highlighted."""
    result = Text(text, style=style)
    if not filter_text:
        return result
    needle = filter_text.lower()
    haystack = text.lower()
    start = haystack.find(needle)
    while start != -1:
        end = start + len(needle)
        result.stylize(Colors.MATCH, start, end)
        start = haystack.find(needle, end)
    return result


def _state(text: Text, state: StateVariant) -> None:
    text.append(" [")
    text.append(str(state), style=Styles.state(state))
    text.append("]  ")


# =============================================================================
# Cluster header
# =============================================================================


def cluster_header(info: ClusterInfo | None) -> RenderableType:
    """Cluster name, versions, instance counts, plugins and a memory gauge."""
    if info is None:
        return Text("Loading...", style=Colors.LABEL)

    first = Text()
    first.append("Cluster: ", style=Colors.LABEL)
    first.append(info.cluster_name, style=Colors.VALUE)
    first.append(SEPARATOR)
    first.append("Version: ", style=Colors.LABEL)
    first.append(info.cluster_version, style=Colors.ACCENT)
    first.append(SEPARATOR)
    first.append("Picodata: ", style=Colors.LABEL)
    first.append(info.current_instance_version, style=Colors.ACCENT)
    first.append(SEPARATOR)
    first.append("Replicasets: ", style=Colors.LABEL)
    first.append(str(info.replicasets_count), style=Colors.VALUE)

    online = info.instances_current_state_online
    offline = info.instances_current_state_offline
    second = Text()
    second.append("Instances: ", style=Colors.LABEL)
    second.append(str(online), style=Colors.ONLINE)
    second.append("/", style=Colors.LABEL)
    second.append(str(info.instances_total), style=Styles.instances(online, offline))
    second.append(" online", style=Colors.LABEL)
    if offline:
        second.append(f" ({offline} offline)", style=Colors.OFFLINE)
    second.append(SEPARATOR)
    second.append("Plugins: ", style=Colors.LABEL)
    second.append(", ".join(info.plugins) if info.plugins else "none", style=Colors.VALUE)

    ratio = info.memory.ratio
    label = (
        f"Memory: {format_bytes(info.memory.used)} / {format_bytes(info.memory.usable)}"
        f" ({info.capacity_usage:.1f}%) "
    )
    gauge = Table.grid(expand=True)
    gauge.add_column(no_wrap=True)
    gauge.add_column(ratio=1)
    gauge.add_row(
        Text(label, style=Colors.LABEL),
        ProgressBar(
            total=100.0,
            completed=ratio * 100.0,
            complete_style=Styles.usage(ratio),
            finished_style=Styles.usage(ratio),
        ),
    )
    return Group(first, second, gauge)


# =============================================================================
# Tiers view
# =============================================================================


def tier_line(tier: TierInfo, expanded: bool) -> Text:
    text = Text()
    text.append("▼" if expanded else "▶", style=Colors.KEY_HINT)
    text.append(" ")
    text.append(tier.name, style=Colors.ACCENT)
    text.append("  ")
    text.append("RS:", style=Colors.LABEL)
    text.append(f" {tier.replicaset_count}  ")
    text.append("Inst:", style=Colors.LABEL)
    text.append(f" {tier.instance_count}  ")
    text.append("RF:", style=Colors.LABEL)
    text.append(f" {tier.rf}  ")
    text.append("Buckets:", style=Colors.LABEL)
    text.append(f" {tier.bucket_count}  ")
    text.append("Vote:", style=Colors.LABEL)
    text.append(" ✓  " if tier.can_vote else " ✗  ")
    text.append("Mem:", style=Colors.LABEL)
    text.append(f" {_memory(tier.memory.used, tier.memory.usable, tier.capacity_usage)}")
    return text


def replicaset_tree_line(replicaset: ReplicasetInfo, expanded: bool) -> Text:
    text = Text("  ├─")
    text.append("▼" if expanded else "▶", style=Colors.KEY_HINT)
    text.append(" ")
    text.append(replicaset.name, style=Colors.VALUE)
    _state(text, replicaset.state)
    text.append("Inst:", style=Colors.LABEL)
    text.append(f" {replicaset.instance_count}  ")
    text.append("Mem:", style=Colors.LABEL)
    text.append(
        f" {_memory(replicaset.memory.used, replicaset.memory.usable, replicaset.capacity_usage)}"
    )
    return text


def instance_tree_line(instance: InstanceInfo, is_last: bool) -> Text:
    text = Text("  │  └─" if is_last else "  │  ├─")
    text.append(" ★" if instance.is_leader else "  ", style=Colors.KEY_HINT)
    text.append(" ")
    text.append(instance.name, style=Colors.VALUE)
    _state(text, instance.current_state)
    text.append(instance.binary_address, style=Colors.LABEL)
    if instance.pg_address:
        text.append(f"  pg:{instance.pg_address}", style=Colors.LABEL)
    return text


def tree_line(state: AppState, item: TreeItem) -> Text:
    """Render one row of the Tiers view."""
    tier = state.tiers[item.tier]
    if isinstance(item, TierItem):
        return tier_line(tier, item.tier in state.expanded_tiers)
    replicaset = tier.replicasets[item.replicaset]
    if isinstance(item, ReplicasetItem):
        expanded = (item.tier, item.replicaset) in state.expanded_replicasets
        return replicaset_tree_line(replicaset, expanded)
    is_last = item.instance == len(replicaset.instances) - 1
    return instance_tree_line(replicaset.instances[item.instance], is_last)


# =============================================================================
# Replicasets and Instances views
# =============================================================================


def replicaset_row(row: ReplicasetRow) -> Text:
    replicaset = row.replicaset
    text = Text()
    text.append(replicaset.name, style=Colors.VALUE)
    _state(text, replicaset.state)
    text.append("Tier:", style=Colors.LABEL)
    text.append(f" {row.tier_name}  ", style=Colors.ACCENT)
    text.append("Inst:", style=Colors.LABEL)
    text.append(f" {replicaset.instance_count}  ")
    text.append("Mem:", style=Colors.LABEL)
    text.append(
        f" {_memory(replicaset.memory.used, replicaset.memory.usable, replicaset.capacity_usage)}"
    )
    return text


def instance_row(row: InstanceRow, filter_text: str = "") -> Text:
    instance = row.instance
    text = Text()
    text.append("★ " if instance.is_leader else "  ", style=Colors.KEY_HINT)
    text.append_text(highlight_match(instance.name, filter_text, Colors.VALUE))
    _state(text, instance.current_state)
    text.append("RS:", style=Colors.LABEL)
    text.append(" ")
    text.append_text(highlight_match(row.replicaset_name, filter_text))
    text.append("  ")
    text.append_text(highlight_match(instance.binary_address, filter_text, Colors.LABEL))
    if instance.failure_domain:
        text.append("  ")
        text.append_text(
            highlight_match(
                failure_domain_label(instance.failure_domain), filter_text, Colors.EXPELLED
            )
        )
    return text


def list_title(state: AppState) -> Text:
    """Panel title for the current view mode, with sort and filter indicators."""
    if state.view_mode is ViewMode.TIERS:
        return Text(" Tiers / Replicasets / Instances ")
    if state.view_mode is ViewMode.REPLICASETS:
        return Text(" Replicasets ")

    title = Text(" Instances ")
    if state.filter_active:
        title.append(f' Filter: "{state.filter_text}{FILTER_CURSOR}" ', style=Colors.KEY_HINT)
    elif state.filter_text:
        title.append(f' Filter: "{state.filter_text}" ', style=Colors.KEY_HINT)
    title.append(
        f" Sort: {state.sort_field.value} {state.sort_order.arrow} ", style=Colors.ACCENT
    )
    return title


def list_lines(state: AppState) -> list[Text]:
    """Every row of the current view, unselected."""
    if state.view_mode is ViewMode.TIERS:
        return [tree_line(state, item) for item in state.tree_items]
    if state.view_mode is ViewMode.REPLICASETS:
        return [replicaset_row(row) for row in state.visible_replicasets()]
    return [instance_row(row, state.filter_text) for row in state.visible_instances()]


def empty_message(state: AppState) -> Text:
    """Placeholder shown when the current view has no rows."""
    if state.view_mode is ViewMode.INSTANCES and state.filter_text:
        return Text(f'No instances match filter "{state.filter_text}". Press Esc to clear.')
    noun = {
        ViewMode.TIERS: "tiers",
        ViewMode.REPLICASETS: "replicasets",
        ViewMode.INSTANCES: "instances",
    }[state.view_mode]
    return Text(f"No {noun} found. Press 'r' to refresh.", style=Colors.LABEL)


def visible_window(lines: Sequence[Text], selected: int, offset: int, height: int) -> Text:
    """Join ``height`` lines starting at ``offset``, highlighting the selected one."""
    window = Text()
    for index in range(offset, min(offset + height, len(lines))):
        line = lines[index].copy()
        if index == selected:
            line.stylize(Colors.SELECTED)
        if index > offset:
            window.append("\n")
        window.append_text(line)
    return window


# =============================================================================
# Status bar, login form and detail popup
# =============================================================================


def _hint(text: Text, key: str, label: str) -> None:
    text.append(key, style=Colors.KEY_HINT)
    text.append(f" {label}  ")


def status_bar(state: AppState) -> Text:
    """Key hints for the current mode, then ``Loading...`` or the last error."""
    text = Text(" ")
    if state.filter_active:
        _hint(text, "Enter", "Apply")
        _hint(text, "Esc", "Clear")
        _hint(text, "Backspace", "Delete")
    elif state.show_detail:
        _hint(text, "Esc/Enter", "Close")
    else:
        _hint(text, "↑↓/jk", "Navigate")
        if state.view_mode is ViewMode.TIERS:
            _hint(text, "←→/hl", "Collapse/Expand")
        _hint(text, "Enter", "Details")
        _hint(text, "v/1-3", "View")
        if state.view_mode is ViewMode.INSTANCES:
            _hint(text, "s", "Sort")
            _hint(text, "S", "Order")
            _hint(text, "/", "Filter")
        _hint(text, "r", "Refresh")
        if state.auth_enabled:
            _hint(text, "X", "Logout")
        text.append("q", style=Colors.KEY_HINT)
        text.append(" Quit")

    if state.loading:
        text.append(SEPARATOR)
        text.append("Loading...", style=Colors.ACCENT)
    elif state.last_error:
        text.append(SEPARATOR)
        text.append(f"Error: {state.last_error}", style=Colors.OFFLINE)
    return text


def _field(text: Text, label: str, value: str, focused: bool) -> None:
    marker = "> " if focused else "  "
    style = Colors.KEY_HINT if focused else Colors.VALUE
    text.append(f"{marker}{label}: ", style=style)
    text.append(value, style=Colors.VALUE)
    if focused:
        text.append(FILTER_CURSOR, style=Colors.KEY_HINT)
    text.append("\n")


def login_form(state: AppState) -> Text:
    """The login dialog body."""
    text = Text()
    text.append("Enter your credentials to connect to ")
    text.append("Picodata", style=Colors.ACCENT)
    text.append("\n")
    text.append(state.base_url, style=Colors.LABEL)
    text.append("\n\n")

    _field(text, "Username", state.login_username, state.login_focus is LoginFocus.USERNAME)
    password = (
        state.login_password if state.login_show_password else "*" * len(state.login_password)
    )
    _field(text, "Password", password, state.login_focus is LoginFocus.PASSWORD)

    focused = state.login_focus is LoginFocus.REMEMBER_ME
    checkbox = "[x]" if state.login_remember_me else "[ ]"
    text.append(
        f"{'> ' if focused else '  '}{checkbox} Remember me",
        style=Colors.KEY_HINT if focused else Colors.VALUE,
    )
    text.append("\n\n")

    if state.login_error:
        text.append(state.login_error, style=Colors.OFFLINE)
        text.append("\n")
    elif state.loading:
        text.append("Logging in...", style=Colors.ACCENT)
        text.append("\n")
    text.append("\n")

    _hint(text, "Tab", "Switch field")
    _hint(text, "Enter", "Login")
    _hint(text, "Ctrl-S", "Show/hide password")
    text.append("Esc/q", style=Colors.KEY_HINT)
    text.append(" Quit")
    return text


def _detail_row(text: Text, label: str, value: str, style: str = Colors.VALUE) -> None:
    text.append(f"{label:<15}", style=Colors.LABEL)
    text.append(value, style=style)
    text.append("\n")


def instance_detail(instance: InstanceInfo) -> Text:
    """Full description of one instance for the detail popup."""
    text = Text()
    _detail_row(text, "Name:", instance.name)
    _detail_row(
        text, "Current State:", str(instance.current_state), Styles.state(instance.current_state)
    )
    _detail_row(
        text, "Target State:", str(instance.target_state), Styles.state(instance.target_state)
    )
    _detail_row(
        text,
        "Is Leader:",
        "Yes ★" if instance.is_leader else "No",
        Colors.KEY_HINT if instance.is_leader else Colors.VALUE,
    )
    _detail_row(text, "Version:", instance.version, Colors.ACCENT)

    text.append("\nAddresses:\n", style=f"bold {Colors.KEY_HINT}")
    _detail_row(text, "  Binary:", instance.binary_address)
    if instance.pg_address:
        _detail_row(text, "  PostgreSQL:", instance.pg_address)
    if instance.http_address:
        _detail_row(text, "  HTTP:", instance.http_address)

    if instance.failure_domain:
        text.append("\nFailure Domain:\n", style=f"bold {Colors.KEY_HINT}")
        for key, value in sorted(instance.failure_domain.items()):
            _detail_row(text, f"  {key}:", value)

    text.append("\nPress Esc or Enter to close", style=Colors.EXPELLED)
    return text
