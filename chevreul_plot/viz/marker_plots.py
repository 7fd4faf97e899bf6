"""Cluster marker dot plots."""

import logging
from typing import Iterable, List, Optional, Sequence

import anndata
import numpy as np
import pandas as pd
import plotly.graph_objects as go

from ..io.loader import get_expression
from ..layout.colors import observed_levels, to_levels
from ..markers.discovery import find_all_markers, marker_table_from_frame
from ..markers.panel import MarkerPanel, build_marker_panel
from .settings import plotly_settings

logger = logging.getLogger(__name__)

MAX_DOT_SIZE = 24


def compute_dot_data(
    adata: anndata.AnnData,
    features: Sequence[str],
    group_by: str,
    layer: Optional[str] = None,
) -> pd.DataFrame:
    """
    Summarize expression of features per group.

    Missing group values are collected in an explicit 'NA' group.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object.
    features : list of str
        Genes to summarize.
    group_by : str
        Column in adata.obs to group cells by.
    layer : str, optional
        Layer to read expression from. If None, uses adata.X.

    Returns
    -------
    pd.DataFrame
        Columns group, feature, mean_expression, pct_expressing.
    """
    values = get_expression(adata, list(features), layer=layer)
    groups = to_levels(adata.obs[group_by]).values

    mean_expr = values.groupby(groups).mean()
    frac_expr = (values > 0).groupby(groups).mean()

    dot_data = pd.DataFrame({
        "group": np.repeat(mean_expr.index.values, len(mean_expr.columns)),
        "feature": np.tile(mean_expr.columns.values, len(mean_expr.index)),
        "mean_expression": mean_expr.to_numpy().ravel(),
        "pct_expressing": frac_expr.to_numpy().ravel() * 100,
    })
    return dot_data


def plot_dots(
    dot_data: pd.DataFrame,
    features: Sequence[str],
    groups: Sequence[str],
    boundaries: Iterable[float] = (),
    color_map: str = "Reds",
    width: int = 600,
    height: int = 750,
) -> go.Figure:
    """
    Draw a dot plot with groups on the x axis and features on the y axis.

    Dot size encodes the percentage of expressing cells, dot color the mean
    expression. A dashed line is drawn at each group boundary.

    Parameters
    ----------
    dot_data : pd.DataFrame
        Output of compute_dot_data.
    features : list of str
        Feature order along the y axis.
    groups : list of str
        Group order along the x axis.
    boundaries : iterable of float
        Panel boundaries (1-based positions offset by 0.5).
    color_map : str
        Continuous colormap name.
    width : int
        Figure width.
    height : int
        Figure height.

    Returns
    -------
    plotly.graph_objects.Figure
        Plotly figure object.
    """
    fig = go.Figure(go.Scatter(
        x=dot_data["group"],
        y=dot_data["feature"],
        mode="markers",
        marker=dict(
            size=dot_data["pct_expressing"] / 100 * MAX_DOT_SIZE,
            sizemode="diameter",
            color=dot_data["mean_expression"],
            colorscale=color_map,
            showscale=True,
            colorbar=dict(title="Average"),
            line=dict(color="gray", width=0.5),
        ),
        customdata=dot_data[["pct_expressing"]],
        hovertemplate=(
            "<b>%{y}</b> in %{x}<br>mean: %{marker.color:.2f}"
            "<br>expressing: %{customdata[0]:.1f}%<extra></extra>"
        ),
    ))

    # Categorical axes place items at 0, 1, ...
    for boundary in boundaries:
        fig.add_hline(y=boundary - 1, line_dash="dash", line_color="black", line_width=1)

    fig.update_layout(
        width=width,
        height=height,
        plot_bgcolor="white",
        xaxis=dict(
            categoryorder="array",
            categoryarray=list(groups),
            tickangle=-45,
            tickfont=dict(size=10),
            showgrid=True,
            gridcolor="lightgray",
        ),
        yaxis=dict(
            categoryorder="array",
            categoryarray=list(features),
            tickfont=dict(size=10),
            showgrid=True,
            gridcolor="lightgray",
        ),
    )
    return fig


def _axis_groups(panel: MarkerPanel, levels: List[str]) -> List[str]:
    panel_groups = [g for g in panel.group_sizes() if g in levels]
    return panel_groups + [g for g in levels if g not in panel_groups]


def plot_marker_features(
    adata: anndata.AnnData,
    group_by: str = "batch",
    num_markers: int = 5,
    selected_values: Optional[Sequence] = None,
    marker_method: str = "wilcox",
    layer: Optional[str] = None,
    hide_technical: Optional[str] = None,
    unique_markers: bool = False,
    p_val_cutoff: float = 1.0,
    pseudogenes: Optional[Iterable[str]] = None,
    markers: Optional[pd.DataFrame] = None,
    interactive: bool = False,
) -> dict:
    """
    Dot plot of the top marker genes of every group.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object.
    group_by : str
        Column in adata.obs defining groups.
    num_markers : int
        Number of markers per group (default: 5).
    selected_values : list, optional
        Groups to display. Cells of other groups are dropped.
    marker_method : str
        Marker test; only 'wilcox' is supported.
    layer : str, optional
        Layer to read expression from. If None, uses adata.X.
    hide_technical : {None, 'pseudo', 'mito_ribo', 'all'}
        Technical genes to exclude from the panel.
    unique_markers : bool
        If True, each gene is shown only for the group where it ranks best.
    p_val_cutoff : float
        Maximum adjusted p-value for markers.
    pseudogenes : iterable of str, optional
        Pseudogene identifiers for the 'pseudo' and 'all' filters.
    markers : pd.DataFrame, optional
        Precomputed long marker table (columns feature, group, rank). If
        None, markers cached in adata.uns['markers'] are reused, otherwise
        they are computed with find_all_markers.
    interactive : bool
        If True, applies lasso selection and SVG export settings.

    Returns
    -------
    dict
        'plot' (plotly Figure), 'markers' (long marker table) and 'panel'
        (MarkerPanel).
    """
    if group_by not in adata.obs.columns:
        raise ValueError(f"Group column '{group_by}' not found in adata.obs")
    if marker_method != "wilcox":
        raise ValueError(f"Unknown marker method: {marker_method}")

    if markers is None:
        markers = adata.uns.get("markers", {}).get(group_by)
        if markers is not None:
            logger.info(f"Using cached markers for '{group_by}'")
            markers = markers[markers["adj_p_value"] <= p_val_cutoff]
    if markers is None:
        markers = find_all_markers(adata, group_by, use_layer=layer, p_val_cutoff=p_val_cutoff)

    panel = build_marker_panel(
        marker_table_from_frame(markers),
        num_markers=num_markers,
        technical_filter=hide_technical,
        unique_only=unique_markers,
        group_subset=selected_values,
        pseudogenes=pseudogenes,
    )

    if selected_values is not None:
        if isinstance(selected_values, str):
            selected_values = [selected_values]
        selected = {str(v) for v in selected_values}
        adata = adata[adata.obs[group_by].astype(str).isin(selected).values]

    dot_data = compute_dot_data(adata, panel.features, group_by, layer=layer)
    groups = _axis_groups(panel, observed_levels(adata.obs[group_by]))

    fig = plot_dots(
        dot_data,
        features=panel.features,
        groups=groups,
        boundaries=panel.boundaries,
        width=max(400, 100 * len(groups)),
        height=max(400, 150 * num_markers),
    )
    fig.update_layout(title=f"Markers of {group_by}")

    if interactive:
        plotly_settings(fig, width=fig.layout.width, height=fig.layout.height)

    return {"plot": fig, "markers": markers, "panel": panel}
