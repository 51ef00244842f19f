"""Pure derivations of the visible lists from the tier snapshot.

Nothing here mutates its inputs. The state machine calls these after every
refresh, expand/collapse, filter or sort change. Rebuilding eagerly is cheap
for clusters of tens to hundreds of instances.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from picotui.integrations.picodata.models import InstanceInfo, ReplicasetInfo, TierInfo


class ViewMode(Enum):
    """Which list the main panel shows."""

    TIERS = "Tiers"
    REPLICASETS = "Replicasets"
    INSTANCES = "Instances"

    def cycle_next(self) -> ViewMode:
        modes = list(ViewMode)
        return modes[(modes.index(self) + 1) % len(modes)]


class SortField(Enum):
    """Instance list sort key."""

    NAME = "Name"
    FAILURE_DOMAIN = "Failure Domain"

    def cycle_next(self) -> SortField:
        fields = list(SortField)
        return fields[(fields.index(self) + 1) % len(fields)]


class SortOrder(Enum):
    """Instance list sort direction."""

    ASC = "asc"
    DESC = "desc"

    def toggle(self) -> SortOrder:
        return SortOrder.DESC if self is SortOrder.ASC else SortOrder.ASC

    @property
    def arrow(self) -> str:
        return "↑" if self is SortOrder.ASC else "↓"


# =============================================================================
# Tiers view
# =============================================================================


@dataclass(frozen=True)
class TierItem:
    tier: int


@dataclass(frozen=True)
class ReplicasetItem:
    tier: int
    replicaset: int


@dataclass(frozen=True)
class InstanceItem:
    tier: int
    replicaset: int
    instance: int


TreeItem = TierItem | ReplicasetItem | InstanceItem


def build_tree(
    tiers: Sequence[TierInfo],
    expanded_tiers: Collection[int],
    expanded_replicasets: Collection[tuple[int, int]],
) -> list[TreeItem]:
    """Flatten the topology in pre-order, honouring the expansion sets.

    Each tier is followed (if expanded) by its replicasets in server order,
    each followed (if expanded) by its instances. Expansion entries pointing
    at indices that no longer exist are ignored.
    """
    items: list[TreeItem] = []
    for tier_idx, tier in enumerate(tiers):
        items.append(TierItem(tier_idx))
        if tier_idx not in expanded_tiers:
            continue
        for rs_idx, replicaset in enumerate(tier.replicasets):
            items.append(ReplicasetItem(tier_idx, rs_idx))
            if (tier_idx, rs_idx) not in expanded_replicasets:
                continue
            items.extend(
                InstanceItem(tier_idx, rs_idx, inst_idx)
                for inst_idx in range(len(replicaset.instances))
            )
    return items


def resolve_instance(tiers: Sequence[TierInfo], item: TreeItem) -> InstanceInfo | None:
    """Look up the instance a tree item points at, if it is an instance row."""
    if not isinstance(item, InstanceItem):
        return None
    try:
        return tiers[item.tier].replicasets[item.replicaset].instances[item.instance]
    except IndexError:
        return None


# =============================================================================
# Replicasets view
# =============================================================================


@dataclass(frozen=True)
class ReplicasetRow:
    tier_name: str
    replicaset: ReplicasetInfo


def collect_replicasets(tiers: Sequence[TierInfo]) -> list[ReplicasetRow]:
    """All replicasets of all tiers, tier order then server order."""
    return [
        ReplicasetRow(tier.name, replicaset) for tier in tiers for replicaset in tier.replicasets
    ]


# =============================================================================
# Instances view
# =============================================================================


@dataclass(frozen=True)
class InstanceRow:
    tier_name: str
    replicaset_name: str
    instance: InstanceInfo


def failure_domain_label(failure_domain: Mapping[str, str]) -> str:
    """Canonical rendering: keys ascending, ``key:value`` joined by ``, ``."""
    return ", ".join(f"{key}:{value}" for key, value in sorted(failure_domain.items()))


def matches_filter(row: InstanceRow, filter_text: str) -> bool:
    """Case-insensitive substring match over the row's searchable fields."""
    if not filter_text:
        return True
    needle = filter_text.lower()
    instance = row.instance
    haystack = [
        instance.name,
        row.tier_name,
        row.replicaset_name,
        instance.binary_address,
        *instance.failure_domain.values(),
    ]
    return any(needle in value.lower() for value in haystack)


def _sort_key(field: SortField):
    if field is SortField.FAILURE_DOMAIN:
        return lambda row: (failure_domain_label(row.instance.failure_domain), row.instance.name)
    return lambda row: row.instance.name


def collect_instances(
    tiers: Sequence[TierInfo],
    filter_text: str = "",
    sort_field: SortField = SortField.NAME,
    sort_order: SortOrder = SortOrder.ASC,
) -> list[InstanceRow]:
    """Flatten, filter, then sort every instance.

    Sorting is stable, so instances with equal keys keep topology order when
    ascending. Descending is the exact reverse of the ascending list.
    """
    rows = [
        InstanceRow(tier.name, replicaset.name, instance)
        for tier in tiers
        for replicaset in tier.replicasets
        for instance in replicaset.instances
    ]
    rows = [row for row in rows if matches_filter(row, filter_text)]
    rows.sort(key=_sort_key(sort_field))
    if sort_order is SortOrder.DESC:
        rows.reverse()
    return rows


# =============================================================================
# Selection helpers
# =============================================================================


def item_count(
    mode: ViewMode,
    tree: Sequence[TreeItem],
    tiers: Sequence[TierInfo],
    filter_text: str = "",
) -> int:
    """Number of selectable rows in the given view mode."""
    if mode is ViewMode.TIERS:
        return len(tree)
    if mode is ViewMode.REPLICASETS:
        return sum(len(tier.replicasets) for tier in tiers)
    return len(collect_instances(tiers, filter_text))


def clamp_index(index: int, count: int) -> int:
    """Clamp a selection index into ``[0, count)``; 0 for an empty list."""
    if count <= 0:
        return 0
    return max(0, min(index, count - 1))


def scroll_offset(selected: int, offset: int, height: int, count: int) -> int:
    """First visible row so that ``selected`` stays inside a viewport of ``height`` rows."""
    if height <= 0 or count <= height:
        return 0
    if selected < offset:
        offset = selected
    elif selected >= offset + height:
        offset = selected - height + 1
    return max(0, min(offset, count - height))
