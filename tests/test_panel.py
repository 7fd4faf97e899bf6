"""Tests for marker panel selection."""

import numpy as np
import pytest

from chevreul_plot.errors import EmptyGroupSubset, InvalidPanelRequest
from chevreul_plot.markers import (
    build_marker_panel,
    compute_group_boundaries,
    deduplicate_markers,
    get_technical_filter,
    is_mito_ribo,
)


def assert_panel_invariants(panel):
    """Panel features are unique and boundaries separate contiguous group blocks."""
    assert len(set(panel.features)) == len(panel.features)
    assert len(panel.boundaries) == max(len(set(panel.groups)) - 1, 0)
    assert all(a < b for a, b in zip(panel.boundaries, panel.boundaries[1:]))


class TestBuildMarkerPanel:
    """Tests for build_marker_panel."""

    def test_unique_markers_resolve_to_best_rank(self):
        """Each shared feature goes to the group where it ranks best."""
        table = {"A": ["g1", "g2", "g3"], "B": ["g2", "g1", "g4"]}

        panel = build_marker_panel(table, panel_size=2, unique_only=True)

        assert panel.features == ["g1", "g3", "g2", "g4"]
        assert panel.groups == ["A", "A", "B", "B"]
        assert panel.boundaries == [2.5]

    def test_result_is_deterministic(self):
        """Identical input gives identical panels."""
        table = {"A": ["g1", "g2", "g3"], "B": ["g2", "g1", "g4"]}

        first = build_marker_panel(table, panel_size=2, unique_only=True)
        second = build_marker_panel(dict(table), panel_size=2, unique_only=True)

        assert first == second

    def test_without_dedup_repeats_keep_first_occurrence(self):
        """Later repeats are dropped even without unique_only."""
        table = {"A": ["g1", "g2"], "B": ["g2", "g3"]}

        panel = build_marker_panel(table, panel_size=2)

        assert panel.features == ["g1", "g2", "g3"]
        assert panel.groups == ["A", "A", "B"]
        assert panel.boundaries == [2.5]
        assert_panel_invariants(panel)

    def test_group_fully_absorbed_has_no_boundary(self):
        """A group whose features all repeat earlier ones contributes no block."""
        table = {"A": ["g1", "g2"], "B": ["g2", "g1"]}

        panel = build_marker_panel(table, panel_size=2)

        assert panel.features == ["g1", "g2"]
        assert panel.boundaries == []
        assert_panel_invariants(panel)

    def test_equal_rank_tie_broken_by_group_id(self):
        """Equal ranks go to the lexicographically smaller group, regardless of table order."""
        table = {"B": ["x", "z"], "A": ["x", "y"]}

        panel = build_marker_panel(table, panel_size=2, unique_only=True)

        assert panel.to_marker_table() == {"B": ["z"], "A": ["x", "y"]}
        assert panel.features == ["z", "x", "y"]
        assert panel.boundaries == [1.5]

    def test_dedup_is_idempotent(self):
        """Rebuilding from a deduplicated panel changes nothing."""
        table = {
            "A": ["g1", "g2", "g3", "g5"],
            "B": ["g2", "g1", "g4", "g6"],
            "C": ["g5", "g6", "g7", "g1"],
        }

        panel = build_marker_panel(table, panel_size=3, unique_only=True)
        again = build_marker_panel(panel.to_marker_table(), panel_size=3, unique_only=True)

        assert again == panel
        assert_panel_invariants(panel)

    def test_exactly_panel_size_per_group(self):
        """Groups with enough distinct features contribute exactly panel_size."""
        table = {
            "A": [f"a{i}" for i in range(10)],
            "B": [f"b{i}" for i in range(7)],
            "C": [f"c{i}" for i in range(5)],
        }

        panel = build_marker_panel(table, panel_size=4)

        assert panel.group_sizes() == {"A": 4, "B": 4, "C": 4}
        assert panel.boundaries == [4.5, 8.5]

    def test_short_group_contributes_what_it_has(self):
        """Without filtering, shorter groups are not padded or truncated further."""
        table = {"A": ["a1", "a2", "a3"], "B": ["b1"]}

        panel = build_marker_panel(table, panel_size=3)

        assert panel.group_sizes() == {"A": 3, "B": 1}

    def test_numpy_integer_panel_size(self):
        """Integer counts taken from numpy arrays are accepted."""
        table = {"A": ["a1", "a2"], "B": ["b1", "b2"]}

        panel = build_marker_panel(table, panel_size=np.int64(1))

        assert panel.features == ["a1", "b1"]

    def test_num_markers_overrides_panel_size(self):
        """num_markers takes precedence over panel_size."""
        table = {"A": ["a1", "a2", "a3"], "B": ["b1", "b2", "b3"]}

        panel = build_marker_panel(table, panel_size=0, num_markers=1)

        assert panel.features == ["a1", "b1"]

    @pytest.mark.parametrize("size", [0, -1, 2.5, True])
    def test_invalid_panel_size(self, size):
        """Non-positive or non-integer panel sizes are rejected."""
        with pytest.raises(InvalidPanelRequest):
            build_marker_panel({"A": ["a1"]}, panel_size=size)

    def test_empty_table(self):
        """An empty marker table is rejected."""
        with pytest.raises(InvalidPanelRequest):
            build_marker_panel({})

    def test_duplicate_within_group(self):
        """A group may not list the same feature twice."""
        with pytest.raises(InvalidPanelRequest, match="duplicate"):
            build_marker_panel({"A": ["a1", "a2", "a1"]})

    def test_group_order(self):
        """Blocks follow the requested group order, remaining groups after."""
        table = {"A": ["a1"], "B": ["b1"], "C": ["c1"]}

        panel = build_marker_panel(table, group_order=["C", "A"])

        assert panel.groups == ["C", "A", "B"]


class TestTechnicalFiltering:
    """Tests for technical feature exclusion."""

    def test_mito_ribo_filter_preserves_order(self):
        """Surviving features keep their relative rank order."""
        table = {
            "A": ["MT-CO1", "g1", "RPL5", "g2", "g3"],
            "B": ["g4", "RPS2", "g5", "g6"],
        }

        panel = build_marker_panel(table, panel_size=5, technical_filter="mito_ribo")

        assert panel.to_marker_table() == {"A": ["g1", "g2", "g3"], "B": ["g4", "g5", "g6"]}

    def test_groups_truncated_to_shortest(self):
        """After filtering every group is capped at the shortest group's length."""
        table = {"A": ["g1", "g2", "g3", "g4"], "B": ["MT-ND1", "g5", "g6"]}

        panel = build_marker_panel(table, panel_size=5, technical_filter="mito_ribo")

        assert panel.group_sizes() == {"A": 2, "B": 2}
        assert panel.features == ["g1", "g2", "g5", "g6"]

    def test_filter_emptying_group_fails(self):
        """A group left with no features is an invalid request."""
        table = {"A": ["g1", "g2"], "B": ["MT-ND1", "RPS3"]}

        with pytest.raises(InvalidPanelRequest, match="B"):
            build_marker_panel(table, technical_filter="mito_ribo")

    def test_pseudo_filter_requires_pseudogenes(self):
        """The pseudogene filter needs a pseudogene set."""
        with pytest.raises(InvalidPanelRequest):
            build_marker_panel({"A": ["g1"]}, technical_filter="pseudo")

    def test_all_filter(self):
        """'all' excludes pseudogenes as well as mito/ribo genes."""
        table = {"A": ["PSG1", "g1", "MT-CO2", "g2"], "B": ["g3", "RPL7", "g4", "PSG2"]}

        panel = build_marker_panel(
            table, technical_filter="all", pseudogenes={"PSG1", "PSG2"}
        )

        assert panel.features == ["g1", "g2", "g3", "g4"]

    def test_none_filter(self):
        """'none' and None leave the table untouched."""
        assert get_technical_filter(None) is None
        assert get_technical_filter("none") is None

    def test_unknown_filter(self):
        """Unknown filter names are rejected."""
        with pytest.raises(InvalidPanelRequest, match="bogus"):
            get_technical_filter("bogus")

    @pytest.mark.parametrize(
        "feature,expected",
        [
            ("MT-CO1", True),
            ("mt-Nd1", True),
            ("RPS27", True),
            ("Rpl13", True),
            ("CD3E", False),
            ("SMT-1", False),
        ],
    )
    def test_is_mito_ribo(self, feature, expected):
        """Mitochondrial and ribosomal prefixes are matched at the start only."""
        assert is_mito_ribo(feature) is expected


class TestGroupSubset:
    """Tests for restricting the panel to selected groups."""

    def test_subset_keeps_selected_groups(self):
        """Only entries of selected groups remain."""
        table = {"A": ["a1", "a2"], "B": ["b1", "b2"], "C": ["c1", "c2"]}

        panel = build_marker_panel(table, panel_size=2, group_subset=["C", "A"])

        assert panel.groups == ["A", "A", "C", "C"]
        assert panel.boundaries == [2.5]

    def test_subset_as_string(self):
        """A single group name is accepted."""
        panel = build_marker_panel({"A": ["a1"], "B": ["b1"]}, group_subset="B")

        assert panel.features == ["b1"]
        assert panel.boundaries == []

    def test_subset_emptied_by_dedup(self):
        """A subset whose groups lose every feature to deduplication fails."""
        table = {"A": ["g1", "g2"], "B": ["g1", "g2"]}

        with pytest.raises(EmptyGroupSubset) as excinfo:
            build_marker_panel(table, panel_size=2, unique_only=True, group_subset=["B"])

        assert excinfo.value.requested == ["B"]

    def test_subset_emptied_by_repeats(self):
        """A subset whose features all repeat an earlier group's fails."""
        table = {"A": ["g1", "g2"], "B": ["g2", "g1"]}

        with pytest.raises(EmptyGroupSubset):
            build_marker_panel(table, panel_size=2, group_subset="B")

    def test_empty_subset_intersection(self):
        """A subset sharing no groups with the table fails."""
        with pytest.raises(EmptyGroupSubset) as excinfo:
            build_marker_panel({"A": ["a1"], "B": ["b1"]}, group_subset=["Z"])

        assert excinfo.value.requested == ["Z"]
        assert excinfo.value.available == ["A", "B"]


class TestHelpers:
    """Tests for deduplication and boundary helpers."""

    def test_compute_group_boundaries(self):
        """Boundaries are cumulative block sizes offset by 0.5, without the last."""
        groups = ["a", "a", "b", "c", "c", "c"]

        assert compute_group_boundaries(groups) == [2.5, 3.5]
        assert compute_group_boundaries(["a", "a"]) == []
        assert compute_group_boundaries([]) == []

    def test_deduplicate_drops_empty_groups(self):
        """Groups losing all their features are omitted."""
        table = {"A": ["g1", "g2"], "B": ["g2", "g1"], "C": ["g1"]}

        result = deduplicate_markers(table)

        assert result == {"A": ["g1"], "B": ["g2"]}
