"""Violin plots and per-cell metadata bar plots."""

import logging
from typing import Literal, Optional, Sequence, Union

import anndata
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from ..io.loader import get_expression
from .settings import plotly_settings

logger = logging.getLogger(__name__)


def plot_violin(
    adata: anndata.AnnData,
    group_by: str = "batch",
    plot_vals: Optional[Sequence] = None,
    features: Union[str, Sequence[str]] = "NRL",
    layer: Optional[str] = None,
    width: int = 700,
    height: int = 450,
) -> go.Figure:
    """
    Violin plot of feature values grouped by a metadata column.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object.
    group_by : str
        Column in adata.obs to group (and color) cells by.
    plot_vals : list, optional
        Group values to show. Defaults to every non-missing value.
    features : str or list of str
        Genes or obs columns to plot; one facet per feature.
    layer : str, optional
        Layer to read expression from. If None, uses adata.X.
    width : int
        Figure width.
    height : int
        Figure height per feature.

    Returns
    -------
    plotly.graph_objects.Figure
        Plotly figure object.
    """
    if group_by not in adata.obs.columns:
        raise ValueError(f"Column '{group_by}' not found in adata.obs")
    if isinstance(features, str):
        features = [features]

    groups = adata.obs[group_by]
    if plot_vals is None:
        plot_vals = list(pd.unique(groups.dropna()))
    keep = groups.isin(plot_vals).values
    if not keep.any():
        raise ValueError(f"No cells with {group_by} in {list(plot_vals)}")

    subset = adata[keep]
    values = get_expression(subset, features, layer=layer)
    values[group_by] = subset.obs[group_by].astype(str).values
    long_data = values.melt(id_vars=group_by, var_name="feature", value_name="expression")

    logger.info(f"Violin plot of {len(features)} features across {len(plot_vals)} groups")

    fig = px.violin(
        long_data,
        x=group_by,
        y="expression",
        color=group_by,
        facet_row="feature" if len(features) > 1 else None,
        box=True,
        points=False,
        category_orders={group_by: [str(v) for v in plot_vals]},
        title=features[0] if len(features) == 1 else None,
    )
    fig.update_yaxes(matches=None)
    fig.update_layout(
        width=width,
        height=height * len(features),
        plot_bgcolor="white",
        yaxis_title="expression",
    )

    return fig


def plot_colData_histogram(
    adata: anndata.AnnData,
    group_by: Optional[str] = None,
    fill_by: Optional[str] = None,
    yscale: Literal["linear", "log"] = "linear",
    experiment: str = "RNA",
    width: int = 800,
    height: int = 500,
    interactive: bool = False,
) -> go.Figure:
    """
    Bar plot of a per-cell metadata value, one bar per cell.

    Bars are sorted by decreasing value and colored by fill_by.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object.
    group_by : str, optional
        Numeric column in adata.obs to plot. Defaults to 'nCount_<experiment>'.
    fill_by : str, optional
        Column in adata.obs to color bars by. Defaults to group_by.
    yscale : {'linear', 'log'}
        Scale of the y axis.
    experiment : str
        Experiment name used for the default columns.
    width : int
        Figure width.
    height : int
        Figure height.
    interactive : bool
        If True, applies lasso selection and SVG export settings.

    Returns
    -------
    plotly.graph_objects.Figure
        Plotly figure object.
    """
    group_by = group_by or f"nCount_{experiment}"
    fill_by = fill_by or f"nCount_{experiment}"

    for col in (group_by, fill_by):
        if col not in adata.obs.columns:
            raise ValueError(f"Column '{col}' not found in adata.obs")
    if yscale not in ("linear", "log"):
        raise ValueError(f"Unknown yscale: {yscale}")

    plot_data = adata.obs[[group_by]].copy()
    if fill_by != group_by:
        fill = adata.obs[fill_by]
        plot_data[fill_by] = fill.values if pd.api.types.is_numeric_dtype(fill) else fill.astype(str).values
    plot_data["SID"] = adata.obs_names.astype(str)
    plot_data = plot_data.sort_values(group_by, ascending=False, kind="mergesort")

    fig = px.bar(plot_data, x="SID", y=group_by, color=fill_by, title=group_by)
    fig.update_traces(marker_line_width=0)
    fig.update_layout(
        width=width,
        height=height,
        xaxis_title="Sample",
        bargap=0,
        plot_bgcolor="white",
        xaxis=dict(showticklabels=False, categoryorder="array", categoryarray=plot_data["SID"]),
    )
    if yscale == "log":
        fig.update_yaxes(type="log")

    if interactive:
        plotly_settings(fig)

    return fig
