"""Command-line interface for chevreul-plot."""

import json
import logging
import sys

import click

from . import __version__, io, viz
from .errors import ChevreulPlotError
from .parameters import (
    HeatmapParameters,
    MarkerPanelParameters,
    validate_heatmap_parameters,
    validate_panel_parameters,
)
from .viz.settings import figure_config


# Configure logging
def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _check(is_valid, errors):
    if not is_valid:
        click.echo("ERROR: invalid parameters", err=True)
        for msg in errors:
            click.echo(f"  {msg}", err=True)
        sys.exit(1)


def _write_html(fig, output):
    fig.write_html(output, config=figure_config(fig), include_plotlyjs="cdn")
    click.echo(f"Plot saved to: {output}")


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def main(verbose):
    """chevreul-plot: exploratory plots for single-cell H5AD datasets."""
    setup_logging(verbose)


@main.command()
@click.argument("input_file", type=click.Path(exists=True))
@click.option("--output", "-o", type=click.Path(), required=True, help="Output HTML file")
@click.option("--group-by", default="batch", help="Metadata column defining groups")
@click.option("--num-markers", type=int, default=5, help="Markers per group")
@click.option(
    "--hide-technical",
    type=click.Choice(["pseudo", "mito_ribo", "all"]),
    default=None,
    help="Exclude technical genes",
)
@click.option("--unique", "unique_markers", is_flag=True, help="Show each marker for one group only")
@click.option("--p-val-cutoff", type=float, default=1.0, help="Adjusted p-value cutoff")
@click.option("--selected", multiple=True, help="Group to display (repeatable)")
@click.option("--pseudogenes", type=click.Path(exists=True), help="Pseudogene list file")
@click.option("--layer", default=None, help="Expression layer [default: X]")
@click.option("--panel-json", type=click.Path(), help="Write the selected panel as JSON")
def markers(
    input_file, output, group_by, num_markers, hide_technical, unique_markers,
    p_val_cutoff, selected, pseudogenes, layer, panel_json,
):
    """
    Dot plot of the top marker genes of each group.

    INPUT_FILE: Path to H5AD file
    """
    logger = logging.getLogger(__name__)

    params = MarkerPanelParameters(
        group_by=group_by,
        num_markers=num_markers,
        hide_technical=hide_technical,
        unique_markers=unique_markers,
        p_val_cutoff=p_val_cutoff,
        selected_values=list(selected) or None,
    )
    _check(*validate_panel_parameters(params))

    adata = io.load_h5ad(input_file)
    pseudogene_set = io.load_pseudogenes(pseudogenes) if pseudogenes else None

    logger.info(f"Plotting markers of '{group_by}'")
    try:
        result = viz.plot_marker_features(
            adata,
            **params.to_dict(),
            layer=layer,
            pseudogenes=pseudogene_set,
            interactive=True,
        )
    except ChevreulPlotError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    _write_html(result["plot"], output)

    panel = result["panel"]
    click.echo(f"Markers: {len(panel)} across {len(panel.group_sizes())} groups")

    if panel_json:
        with open(panel_json, "w") as f:
            json.dump(
                {
                    "parameters": params.to_dict(),
                    "features": panel.features,
                    "groups": panel.groups,
                    "boundaries": panel.boundaries,
                },
                f,
                indent=2,
            )
        click.echo(f"Panel saved to: {panel_json}")


@main.command()
@click.argument("input_file", type=click.Path(exists=True))
@click.option("--output", "-o", type=click.Path(), required=True, help="Output HTML file")
@click.option("--features", "-f", multiple=True, help="Feature to plot (repeatable) [default: HVGs]")
@click.option("--group-by", "-g", multiple=True, help="Annotation column (repeatable)")
@click.option("--col-arrangement", default="ward", help="Linkage method or 'by-metadata'")
@click.option("--sort-by", multiple=True, help="Column ordering cells for 'by-metadata'")
@click.option("--reduction", default="X_pca", help="Embedding used for clustering")
@click.option("--column-split", default=None, help="Column whose levels are arranged separately")
@click.option("--layer", default=None, help="Expression layer [default: X]")
def heatmap(
    input_file, output, features, group_by, col_arrangement, sort_by, reduction,
    column_split, layer,
):
    """
    Expression heatmap with annotation tracks.

    INPUT_FILE: Path to H5AD file
    """
    params = HeatmapParameters(
        group_by=list(group_by) or ["ident"],
        col_arrangement=col_arrangement,
        sort_by=list(sort_by) or None,
        reduction=reduction,
        column_split=column_split,
    )
    _check(*validate_heatmap_parameters(params))

    adata = io.load_h5ad(input_file)

    try:
        result = viz.make_complex_heatmap(
            adata,
            features=list(features) or None,
            layer=layer,
            **params.to_dict(),
        )
    except ChevreulPlotError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    layout = result["layout"]
    for msg in layout.warnings:
        click.echo(f"WARNING: {msg}", err=True)

    _write_html(viz.plotly_settings(result["plot"]), output)


@main.command()
@click.argument("input_file", type=click.Path(exists=True))
@click.option("--output", "-o", type=click.Path(), required=True, help="Output HTML file")
@click.option("--group", default="batch", help="Metadata column to color by")
@click.option("--feature", default=None, help="Gene to color by instead of metadata")
@click.option("--embedding", default="X_umap", help="Embedding key in obsm")
def embedding(input_file, output, group, feature, embedding):
    """
    Embedding scatter plot colored by metadata or a gene.

    INPUT_FILE: Path to H5AD file
    """
    adata = io.load_h5ad(input_file)

    try:
        if feature:
            fig = viz.plot_feature_on_embedding(adata, feature, embedding=embedding)
        else:
            fig = viz.plot_colData_on_embedding(adata, group=group, embedding=embedding)
    except ValueError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    _write_html(fig, output)


if __name__ == "__main__":
    main()
