"""Marker panel selection for cluster-marker dot plots."""

import logging
from dataclasses import dataclass, field
from itertools import accumulate, groupby
from numbers import Integral
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from ..errors import EmptyGroupSubset, InvalidPanelRequest
from .technical import FilterPredicate, get_technical_filter

logger = logging.getLogger(__name__)

RankedMarkerTable = Mapping[str, Sequence[str]]


@dataclass
class MarkerPanel:
    """Ordered, duplicate-free marker features with their owning groups."""

    features: List[str] = field(default_factory=list)
    groups: List[str] = field(default_factory=list)
    boundaries: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.features)

    def to_frame(self) -> pd.DataFrame:
        """Return the panel as a long dataframe with columns feature, group."""
        return pd.DataFrame({"feature": self.features, "group": self.groups})

    def to_marker_table(self) -> Dict[str, List[str]]:
        """Return the panel pivoted back to one ranked list per group."""
        table: Dict[str, List[str]] = {}
        for feature, group in zip(self.features, self.groups):
            table.setdefault(group, []).append(feature)
        return table

    def group_sizes(self) -> Dict[str, int]:
        """Number of features contributed by each group, in panel order."""
        return {group: len(features) for group, features in self.to_marker_table().items()}


def _validate_table(marker_table: RankedMarkerTable) -> Dict[str, List[str]]:
    if not marker_table:
        raise InvalidPanelRequest("Marker table is empty")

    table = {}
    for group, features in marker_table.items():
        features = [str(f) for f in features]
        if len(set(features)) != len(features):
            repeated = sorted({f for f in features if features.count(f) > 1})
            raise InvalidPanelRequest(f"Group '{group}' lists duplicate features: {repeated}")
        table[str(group)] = features
    return table


def filter_technical(
    marker_table: RankedMarkerTable, predicate: FilterPredicate
) -> Dict[str, List[str]]:
    """
    Remove technical features from every group, preserving rank order.

    Parameters
    ----------
    marker_table : mapping of str to sequence of str
        Ranked features per group.
    predicate : callable
        Returns True for features to exclude.

    Returns
    -------
    dict
        Filtered ranked features per group.
    """
    return {
        group: [feature for feature in features if not predicate(feature)]
        for group, features in marker_table.items()
    }


def truncate_to_shortest(marker_table: RankedMarkerTable) -> Dict[str, List[str]]:
    """Cap every group at the length of the shortest group."""
    min_length = min(len(features) for features in marker_table.values())
    return {group: list(features[:min_length]) for group, features in marker_table.items()}


def deduplicate_markers(marker_table: RankedMarkerTable) -> Dict[str, List[str]]:
    """
    Assign each feature to the single group where it ranks best.

    Occurrences are ordered by feature, then rank (1 is best), then group
    identifier; the first occurrence of each feature owns it and the feature
    is dropped from all other groups. Groups left without features are
    omitted.

    Parameters
    ----------
    marker_table : mapping of str to sequence of str
        Ranked features per group.

    Returns
    -------
    dict
        Ranked features per group with every feature in exactly one group.
    """
    occurrences = [
        (feature, rank, group)
        for group, features in marker_table.items()
        for rank, feature in enumerate(features, start=1)
    ]
    occurrences.sort()

    owners: Dict[str, str] = {}
    for feature, _, group in occurrences:
        owners.setdefault(feature, group)

    deduplicated = {}
    for group, features in marker_table.items():
        kept = [feature for feature in features if owners[feature] == group]
        if kept:
            deduplicated[group] = kept
        else:
            logger.info(f"Group '{group}' has no unique markers left")
    return deduplicated


def _drop_repeats(entries: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    seen = set()
    unique = []
    for feature, group in entries:
        if feature not in seen:
            seen.add(feature)
            unique.append((feature, group))
    return unique


def compute_group_boundaries(groups: Sequence[str]) -> List[float]:
    """
    Compute separator positions between contiguous group blocks.

    Parameters
    ----------
    groups : sequence of str
        Group label of each panel entry, in panel order.

    Returns
    -------
    list of float
        Cumulative block sizes except the last, each offset by 0.5.
    """
    block_sizes = [len(list(block)) for _, block in groupby(groups)]
    return [total + 0.5 for total in accumulate(block_sizes)][:-1]


def _resolve_group_order(
    table: Mapping[str, Sequence[str]], group_order: Optional[Sequence[str]]
) -> List[str]:
    if group_order is None:
        return list(table)
    requested = [str(g) for g in group_order if str(g) in table]
    return requested + [g for g in table if g not in requested]


def build_marker_panel(
    marker_table: RankedMarkerTable,
    panel_size: int = 5,
    technical_filter: Optional[str] = None,
    unique_only: bool = False,
    group_subset: Optional[Iterable[str]] = None,
    num_markers: Optional[int] = None,
    pseudogenes: Optional[Iterable[str]] = None,
    group_order: Optional[Sequence[str]] = None,
) -> MarkerPanel:
    """
    Select an ordered, duplicate-free panel of marker features per group.

    Parameters
    ----------
    marker_table : mapping of str to sequence of str
        Features per group ordered best marker first.
    panel_size : int
        Number of markers to keep per group (default: 5).
    technical_filter : {None, 'none', 'pseudo', 'mito_ribo', 'all'}
        Technical features to exclude before selection. When set, every group
        is capped at the length of the shortest filtered group.
    unique_only : bool
        If True, each feature is kept only in the group where it ranks best.
    group_subset : iterable of str, optional
        Groups to retain in the panel.
    num_markers : int, optional
        Overrides panel_size when given.
    pseudogenes : iterable of str, optional
        Pseudogene identifiers used by the 'pseudo' and 'all' filters.
    group_order : sequence of str, optional
        Order of group blocks in the panel. Defaults to table order.

    Returns
    -------
    MarkerPanel
        Panel features, their groups and the separator positions between
        group blocks.
    """
    if num_markers is not None:
        panel_size = num_markers
    if isinstance(panel_size, bool) or not isinstance(panel_size, Integral) or panel_size <= 0:
        raise InvalidPanelRequest(f"Panel size must be a positive integer, got {panel_size!r}")

    table = _validate_table(marker_table)

    subset = None
    if group_subset is not None:
        if isinstance(group_subset, str):
            group_subset = [group_subset]
        subset = {str(g) for g in group_subset}
        if not subset & set(table):
            raise EmptyGroupSubset(sorted(subset), list(table))

    logger.info(f"Building marker panel for {len(table)} groups (panel size {panel_size})")

    predicate = get_technical_filter(technical_filter, pseudogenes)
    if predicate is not None:
        table = filter_technical(table, predicate)

    empty_groups = [group for group, features in table.items() if not features]
    if empty_groups:
        raise InvalidPanelRequest(f"No markers left for groups: {empty_groups}")

    if predicate is not None:
        table = truncate_to_shortest(table)
        logger.info(
            f"Filtered technical features ({technical_filter}); "
            f"{len(next(iter(table.values())))} markers per group remain"
        )

    if unique_only:
        table = deduplicate_markers(table)

    entries = [
        (feature, group)
        for group in _resolve_group_order(table, group_order)
        for feature in table[group][:panel_size]
    ]
    entries = _drop_repeats(entries)

    if subset is not None:
        entries = _drop_repeats(entry for entry in entries if entry[1] in subset)
        if not entries:
            raise EmptyGroupSubset(sorted(subset), list(table))

    features = [feature for feature, _ in entries]
    groups = [group for _, group in entries]
    panel = MarkerPanel(
        features=features,
        groups=groups,
        boundaries=compute_group_boundaries(groups),
    )

    logger.info(f"Selected {len(panel)} markers across {len(panel.group_sizes())} groups")

    return panel
