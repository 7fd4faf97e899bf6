"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from chevreul_plot import __version__
from chevreul_plot.cli import main


@pytest.fixture
def h5ad_file(sample_adata, tmp_path):
    """Sample dataset written to disk."""
    path = tmp_path / "data.h5ad"
    sample_adata.write_h5ad(path)
    return str(path)


class TestCli:
    """Tests for chevreul-plot commands."""

    def test_version(self):
        """--version prints the package version."""
        result = CliRunner().invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_markers(self, h5ad_file, tmp_path):
        """The markers command writes an HTML plot and the panel."""
        output = tmp_path / "markers.html"
        panel_json = tmp_path / "panel.json"

        result = CliRunner().invoke(
            main,
            [
                "markers", h5ad_file,
                "-o", str(output),
                "--group-by", "ident",
                "--num-markers", "2",
                "--hide-technical", "mito_ribo",
                "--panel-json", str(panel_json),
            ],
        )

        assert result.exit_code == 0, result.output
        assert output.exists()
        panel = json.loads(panel_json.read_text())
        assert len(panel["features"]) == 6
        assert len(panel["boundaries"]) == 2
        assert "MT-CO1" not in panel["features"]

    def test_markers_invalid_parameters(self, h5ad_file, tmp_path):
        """Invalid parameters exit with an error before loading data."""
        result = CliRunner().invoke(
            main,
            ["markers", h5ad_file, "-o", str(tmp_path / "x.html"), "--num-markers", "0"],
        )

        assert result.exit_code == 1
        assert "num_markers" in result.output

    def test_markers_pseudo_without_list(self, h5ad_file, tmp_path):
        """Panel errors are reported without a traceback."""
        result = CliRunner().invoke(
            main,
            [
                "markers", h5ad_file,
                "-o", str(tmp_path / "x.html"),
                "--group-by", "ident",
                "--hide-technical", "pseudo",
            ],
        )

        assert result.exit_code == 1
        assert "pseudogene" in result.output

    def test_heatmap(self, h5ad_file, tmp_path):
        """The heatmap command writes an HTML plot."""
        output = tmp_path / "heatmap.html"

        result = CliRunner().invoke(
            main,
            [
                "heatmap", h5ad_file,
                "-o", str(output),
                "-f", "CD3E", "-f", "LYZ",
                "-g", "ident",
                "--col-arrangement", "by-metadata",
                "--sort-by", "batch",
            ],
        )

        assert result.exit_code == 0, result.output
        assert output.exists()

    def test_heatmap_unknown_method(self, h5ad_file, tmp_path):
        """Unknown arrangements are rejected."""
        result = CliRunner().invoke(
            main,
            ["heatmap", h5ad_file, "-o", str(tmp_path / "x.html"), "--col-arrangement", "kmeans"],
        )

        assert result.exit_code == 1
        assert "col_arrangement" in result.output

    def test_embedding(self, h5ad_file, tmp_path):
        """The embedding command colors by metadata or by a gene."""
        runner = CliRunner()
        by_group = tmp_path / "group.html"
        by_gene = tmp_path / "gene.html"

        first = runner.invoke(main, ["embedding", h5ad_file, "-o", str(by_group), "--group", "ident"])
        second = runner.invoke(main, ["embedding", h5ad_file, "-o", str(by_gene), "--feature", "CD3E"])

        assert first.exit_code == 0, first.output
        assert second.exit_code == 0, second.output
        assert by_group.exists() and by_gene.exists()
