"""Tests for marker discovery."""

import numpy as np
import pandas as pd
import pytest

from chevreul_plot.markers import build_marker_panel, find_all_markers, marker_table_from_frame
from chevreul_plot.markers.discovery import MARKER_COLUMNS, benjamini_hochberg, prepare_expression_data

from conftest import MARKER_GENES


class TestFindAllMarkers:
    """Tests for find_all_markers."""

    def test_columns_and_ranks(self, sample_adata):
        """Markers come back as a long table ranked from 1 within each group."""
        markers = find_all_markers(sample_adata, "ident")

        assert list(markers.columns) == MARKER_COLUMNS
        assert list(pd.unique(markers["group"])) == ["A", "B", "C"]
        for _, group_markers in markers.groupby("group"):
            assert group_markers["rank"].tolist() == list(range(1, len(group_markers) + 1))
        assert (markers["logFC"] > 0).all()

    def test_planted_markers_rank_first(self, sample_adata):
        """Strongly expressed genes are the top markers of their group."""
        markers = find_all_markers(sample_adata, "ident")
        table = marker_table_from_frame(markers)

        for group, genes in MARKER_GENES.items():
            assert set(table[group][:3]) == set(genes)

    def test_n_genes_and_cutoff(self, sample_adata):
        """n_genes caps every group; the cutoff drops weak markers."""
        markers = find_all_markers(sample_adata, "ident", n_genes=2, p_val_cutoff=0.05)

        assert markers.groupby("group").size().max() <= 2
        assert (markers["adj_p_value"] <= 0.05).all()

    def test_stores_result(self, sample_adata):
        """Results are cached in adata.uns['markers']."""
        markers = find_all_markers(sample_adata, "ident")

        assert sample_adata.uns["markers"]["ident"] is markers

    def test_unknown_column(self, sample_adata):
        """Unknown group columns raise ValueError."""
        with pytest.raises(ValueError, match="not found"):
            find_all_markers(sample_adata, "missing")

    def test_single_group(self, sample_adata):
        """At least two groups are needed."""
        sample_adata.obs["single"] = "only"

        with pytest.raises(ValueError, match="at least 2"):
            find_all_markers(sample_adata, "single")

    def test_markers_feed_panel(self, sample_adata):
        """Discovered markers build a panel with one block per group."""
        table = marker_table_from_frame(find_all_markers(sample_adata, "ident"))

        panel = build_marker_panel(table, panel_size=3, technical_filter="mito_ribo", unique_only=True)

        assert "MT-CO1" not in panel.features
        assert "RPL13" not in panel.features
        assert list(panel.group_sizes()) == ["A", "B", "C"]
        assert len(panel.boundaries) == 2


class TestHelpers:
    """Tests for discovery helpers."""

    def test_benjamini_hochberg(self):
        """Adjusted p-values follow the step-up procedure."""
        adjusted = benjamini_hochberg(np.array([0.01, 0.04, 0.03, 0.005]))

        np.testing.assert_allclose(adjusted, [0.02, 0.04, 0.04, 0.02])

    def test_benjamini_hochberg_capped(self):
        """Adjusted p-values never exceed 1."""
        adjusted = benjamini_hochberg(np.array([0.9, 0.95, 1.0]))

        assert (adjusted <= 1).all()

    def test_prepare_expression_data(self, sample_adata):
        """Raw counts become a dense log-normalized matrix."""
        sample_adata.X[0, 0] = 500
        expr = prepare_expression_data(sample_adata, normalize=True)

        assert expr.shape == sample_adata.X.shape
        assert isinstance(expr, np.ndarray)
        assert expr.max() < 100

    def test_marker_table_from_frame_uses_rank(self):
        """Rows are reordered by rank within each group."""
        frame = pd.DataFrame(
            {
                "feature": ["g2", "g1", "g3"],
                "group": ["A", "A", "B"],
                "rank": [2, 1, 1],
            }
        )

        assert marker_table_from_frame(frame) == {"A": ["g1", "g2"], "B": ["g3"]}

    def test_marker_table_from_frame_missing_columns(self):
        """Tables without feature and group columns are rejected."""
        with pytest.raises(ValueError):
            marker_table_from_frame(pd.DataFrame({"gene": ["g1"]}))
