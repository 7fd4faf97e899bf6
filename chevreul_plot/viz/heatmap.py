"""Expression heatmaps with annotation tracks and ordered columns."""

import logging
from typing import List, Optional, Sequence, Union

import anndata
import numpy as np
import pandas as pd
import plotly.graph_objects as go
import scanpy as sc
from plotly.subplots import make_subplots
from scipy.cluster.hierarchy import dendrogram

from ..io.loader import get_expression
from ..layout.arrangement import BY_METADATA, HeatmapLayout, arrange_heatmap
from ..layout.colors import CategoricalColorRule, to_levels

logger = logging.getLogger(__name__)


def top_variable_features(
    adata: anndata.AnnData, n_top: int = 50, layer: Optional[str] = None
) -> List[str]:
    """
    Highly variable genes, from adata.var['highly_variable'] or computed.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object (log-normalized expression).
    n_top : int
        Number of genes to compute when none are flagged.
    layer : str, optional
        Layer used when computing highly variable genes.

    Returns
    -------
    list of str
        Gene names.
    """
    if "highly_variable" in adata.var.columns:
        flagged = adata.var_names[adata.var["highly_variable"].astype(bool).values]
        if len(flagged) > 0:
            return flagged.astype(str).tolist()

    logger.info(f"Computing top {n_top} highly variable genes")
    hvg = sc.pp.highly_variable_genes(
        adata,
        layer=layer,
        n_top_genes=min(n_top, adata.n_vars),
        flavor="seurat",
        inplace=False,
    )
    return adata.var_names[hvg["highly_variable"].values].astype(str).tolist()


def _resolve_features(
    adata: anndata.AnnData, features: Optional[Sequence[str]], n_top: int, layer: Optional[str]
) -> List[str]:
    if features is None:
        features = top_variable_features(adata, n_top=n_top, layer=layer)
    features = list(dict.fromkeys(features))[::-1]

    missing = [f for f in features if f not in adata.var_names]
    features = [f for f in features if f in adata.var_names]
    if not features:
        raise ValueError("No requested features found in the expression data")
    if missing:
        logger.warning(
            f"The following features were omitted as they were not found: {', '.join(missing)}"
        )
    return features


def _discrete_colorscale(colors: List[str]) -> list:
    n = len(colors)
    scale = []
    for i, color in enumerate(colors):
        scale += [[i / n, color], [(i + 1) / n, color]]
    return scale


def _annotation_trace(column: str, values: pd.Series, rule) -> go.Heatmap:
    x = np.arange(len(values))
    if isinstance(rule, CategoricalColorRule):
        levels = to_levels(values)
        codes = levels.map({level: i for i, level in enumerate(rule.levels)})
        return go.Heatmap(
            z=[codes.to_numpy(dtype=float)],
            x=x,
            y=[column],
            text=[levels.tolist()],
            hovertemplate=f"{column}: %{{text}}<extra></extra>",
            colorscale=_discrete_colorscale(list(rule.colors.values())),
            zmin=-0.5,
            zmax=len(rule.levels) - 0.5,
            showscale=False,
        )

    numeric = pd.to_numeric(values, errors="coerce")
    zmin, zmax = (0.0, 1.0) if np.isnan(rule.vmin) else (rule.vmin, rule.vmax)
    if zmax <= zmin:
        zmin = zmax - 1
    return go.Heatmap(
        z=[numeric.to_numpy(dtype=float)],
        x=x,
        y=[column],
        hovertemplate=f"{column}: %{{z}}<extra></extra>",
        colorscale=rule.colorscale(),
        zmin=zmin,
        zmax=zmax,
        showscale=False,
    )


def _add_dendrogram(fig: go.Figure, linkage_matrix: np.ndarray, row: int) -> None:
    tree = dendrogram(linkage_matrix, no_plot=True)
    # Leaves sit at 5, 15, 25, ... in dendrogram coordinates
    for xs, ys in zip(tree["icoord"], tree["dcoord"]):
        fig.add_trace(
            go.Scatter(
                x=(np.asarray(xs) - 5) / 10,
                y=ys,
                mode="lines",
                line=dict(color="black", width=1),
                hoverinfo="skip",
                showlegend=False,
            ),
            row=row,
            col=1,
        )


def plot_heatmap(
    data: pd.DataFrame,
    layout: HeatmapLayout,
    metadata: pd.DataFrame,
    show_dendrogram: bool = True,
    color_map: str = "Viridis",
    width: int = 900,
    height: int = 700,
) -> go.Figure:
    """
    Draw an expression heatmap with annotation tracks above it.

    Parameters
    ----------
    data : pd.DataFrame
        Expression values (samples × features).
    layout : HeatmapLayout
        Column order and annotation color rules.
    metadata : pd.DataFrame
        Per-sample metadata holding the annotation columns.
    show_dendrogram : bool
        If True and the columns were clustered in one piece, draws the
        column dendrogram on top.
    color_map : str
        Colorscale for expression values.
    width : int
        Figure width.
    height : int
        Figure height.

    Returns
    -------
    plotly.graph_objects.Figure
        Plotly figure object.
    """
    order = layout.column_order.order
    data = data.loc[order]
    metadata = metadata.loc[order]
    tracks = layout.annotation_columns

    linkage_matrix = layout.column_order.linkage
    draw_dendrogram = show_dendrogram and linkage_matrix is not None
    n_rows = len(tracks) + 1 + int(draw_dendrogram)

    # Relative heights: dendrogram, one strip per track, then the heatmap
    row_heights = [1] * len(tracks)
    if draw_dendrogram:
        row_heights = [5] + row_heights
    row_heights.append(max(20, 2 * len(row_heights)))

    fig = make_subplots(
        rows=n_rows,
        cols=1,
        shared_xaxes=True,
        vertical_spacing=0.004,
        row_heights=row_heights,
    )

    row = 1
    if draw_dendrogram:
        _add_dendrogram(fig, linkage_matrix, row)
        row += 1

    for column in tracks:
        rule = layout.annotation_colors[column]
        fig.add_trace(_annotation_trace(column, metadata[column], rule), row=row, col=1)
        row += 1

    fig.add_trace(
        go.Heatmap(
            z=data.to_numpy(dtype=float).T,
            x=np.arange(len(order)),
            y=list(data.columns),
            text=[list(order)] * data.shape[1],
            hovertemplate="%{text}<br>%{y}: %{z:.2f}<extra></extra>",
            colorscale=color_map,
            colorbar=dict(title="log expression"),
        ),
        row=row,
        col=1,
    )

    for boundary in np.cumsum(layout.column_order.split_sizes)[:-1]:
        fig.add_vline(x=boundary - 0.5, line_color="white", line_width=3)

    fig.update_xaxes(showticklabels=False, showgrid=False, zeroline=False)
    fig.update_yaxes(showgrid=False, zeroline=False)
    if draw_dendrogram:
        fig.update_yaxes(showticklabels=False, row=1, col=1)
    fig.update_layout(width=width, height=height, plot_bgcolor="white", showlegend=False)

    return fig


def make_complex_heatmap(
    adata: anndata.AnnData,
    features: Optional[Sequence[str]] = None,
    group_by: Union[str, Sequence[str]] = "ident",
    cells: Optional[Sequence] = None,
    layer: Optional[str] = None,
    col_arrangement: str = "ward",
    sort_by: Optional[Union[str, Sequence[str]]] = None,
    reduction: str = "X_pca",
    column_split: Optional[str] = None,
    n_top_features: int = 50,
    show_dendrogram: bool = True,
    width: int = 900,
    height: int = 700,
) -> dict:
    """
    Heatmap of feature expression across cells with annotation tracks.

    Columns are ordered by hierarchical clustering on the reduction
    (falling back to the displayed values when it is missing) or, with
    col_arrangement='by-metadata', sorted by the sort_by columns.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object.
    features : list of str, optional
        Genes to show. Defaults to highly variable genes.
    group_by : str or list of str
        Metadata columns drawn as annotation tracks.
    cells : list of str or int, optional
        Cells to keep, by name or position. Defaults to all cells.
    layer : str, optional
        Layer to read expression from. If None, uses adata.X.
    col_arrangement : str
        Linkage method (ward, average, complete, single, mcquitty, median,
        centroid) or 'by-metadata'.
    sort_by : str or list of str, optional
        Metadata columns ordering cells for 'by-metadata'.
    reduction : str
        Key in adata.obsm used for clustering.
    column_split : str, optional
        Metadata column whose levels are arranged separately.
    n_top_features : int
        Number of highly variable genes to compute when features is None.
    show_dendrogram : bool
        Draw the column dendrogram when columns are clustered.
    width : int
        Figure width.
    height : int
        Figure height.

    Returns
    -------
    dict
        'plot' (plotly Figure), 'layout' (HeatmapLayout) and 'data'
        (ordered samples × features values).
    """
    if cells is not None:
        cells = list(cells)
        if cells and all(isinstance(c, (int, np.integer)) for c in cells):
            cells = adata.obs_names[cells]
        adata = adata[cells]

    features = _resolve_features(adata, features, n_top_features, layer)
    data = get_expression(adata, features, layer=layer)
    metadata = adata.obs.copy()
    metadata.index = metadata.index.astype(str)
    data.index = metadata.index

    coordinates = None
    if col_arrangement != BY_METADATA and reduction in adata.obsm:
        coordinates = pd.DataFrame(np.asarray(adata.obsm[reduction]), index=metadata.index)

    logger.info(
        f"Heatmap of {len(features)} features × {adata.n_obs} cells "
        f"(arrangement: {col_arrangement})"
    )

    layout = arrange_heatmap(
        metadata,
        annotation_columns=group_by,
        method=col_arrangement,
        coordinates=coordinates,
        feature_matrix=data,
        sort_by=sort_by,
        column_split=column_split,
    )

    fig = plot_heatmap(
        data,
        layout,
        metadata,
        show_dendrogram=show_dendrogram,
        width=width,
        height=height,
    )

    return {"plot": fig, "layout": layout, "data": data.loc[layout.column_order.order]}
