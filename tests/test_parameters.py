"""Tests for parameter objects."""

from chevreul_plot.parameters import (
    HeatmapParameters,
    MarkerPanelParameters,
    validate_heatmap_parameters,
    validate_panel_parameters,
)


class TestMarkerPanelParameters:
    """Tests for marker dot plot parameters."""

    def test_defaults_valid(self):
        """Default parameters pass validation."""
        is_valid, errors = validate_panel_parameters(MarkerPanelParameters())

        assert is_valid
        assert errors == []

    def test_from_dict_ignores_unknown_keys(self):
        """Unknown keys are dropped."""
        params = MarkerPanelParameters.from_dict({"group_by": "ident", "color": "red"})

        assert params.group_by == "ident"
        assert params.to_dict()["num_markers"] == 5

    def test_invalid(self):
        """Every problem is reported."""
        params = MarkerPanelParameters(
            num_markers=0, hide_technical="junk", p_val_cutoff=0, selected_values=[]
        )

        is_valid, errors = validate_panel_parameters(params)

        assert not is_valid
        assert len(errors) == 4


class TestHeatmapParameters:
    """Tests for heatmap parameters."""

    def test_defaults_valid(self):
        """Default parameters pass validation."""
        params = HeatmapParameters()

        assert validate_heatmap_parameters(params) == (True, [])
        assert params.group_by == ["ident"]

    def test_by_metadata_requires_sort_by(self):
        """Sorting by metadata needs sort columns."""
        is_valid, errors = validate_heatmap_parameters(HeatmapParameters(col_arrangement="by-metadata"))

        assert not is_valid
        assert "sort_by" in errors[0]

    def test_round_trip(self):
        """to_dict and from_dict are inverse."""
        params = HeatmapParameters(col_arrangement="average", column_split="batch")

        assert HeatmapParameters.from_dict(params.to_dict()) == params
