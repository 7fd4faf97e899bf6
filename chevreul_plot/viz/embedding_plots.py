"""Embedding plots (UMAP, PCA, etc.) colored by metadata or expression."""

import logging
from typing import Dict, List, Optional, Sequence, Union

import anndata
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import scanpy as sc

from ..io.loader import get_embedding, get_expression
from ..io.references import genes_to_transcripts
from .settings import plotly_settings

logger = logging.getLogger(__name__)


def _style_embedding(fig: go.Figure, x: str, y: str, size: float, width: int, height: int):
    fig.update_traces(marker=dict(size=size))
    fig.update_layout(
        width=width,
        height=height,
        xaxis_title=x,
        yaxis_title=y,
        plot_bgcolor="white",
        xaxis=dict(showgrid=True, gridcolor="lightgray"),
        yaxis=dict(showgrid=True, gridcolor="lightgray"),
    )


def plot_colData_on_embedding(
    adata: anndata.AnnData,
    group: str = "batch",
    embedding: str = "X_umap",
    dims: Sequence[int] = (0, 1),
    highlight: Optional[List[Sequence[str]]] = None,
    size: float = 4,
    width: int = 600,
    height: int = 500,
    interactive: bool = True,
) -> go.Figure:
    """
    Plot cells on an embedding, colored by a metadata column.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object.
    group : str
        Column in adata.obs to color by.
    embedding : str
        Key in adata.obsm (e.g. 'X_umap' or 'UMAP').
    dims : tuple of int
        Zero-based embedding dimensions to plot.
    highlight : list of lists of str, optional
        Sets of cell ids drawn as outlined overlays.
    size : float
        Marker size.
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
    if group not in adata.obs.columns:
        raise ValueError(f"Column '{group}' not found in adata.obs")

    plot_data = get_embedding(adata, embedding, dims)
    x, y = plot_data.columns
    values = adata.obs[group]
    plot_data[group] = values.values if pd.api.types.is_numeric_dtype(values) else values.astype(str).values
    plot_data["cellid"] = adata.obs_names

    fig = px.scatter(
        plot_data,
        x=x,
        y=y,
        color=group,
        hover_name="cellid",
        render_mode="webgl",
        title=f"{embedding}: {group}",
    )
    _style_embedding(fig, x, y, size, width, height)

    for i, cells in enumerate(highlight or []):
        selected = plot_data.loc[plot_data.index.intersection(list(cells))]
        fig.add_trace(go.Scattergl(
            x=selected[x],
            y=selected[y],
            mode="markers",
            marker=dict(size=size + 4, color="rgba(0,0,0,0)", line=dict(color="black", width=1.5)),
            name=f"highlight {i + 1}",
            hovertext=selected["cellid"],
        ))

    if interactive:
        plotly_settings(fig)

    return fig


def plot_feature_on_embedding(
    adata: anndata.AnnData,
    feature: str,
    embedding: str = "X_umap",
    dims: Sequence[int] = (0, 1),
    layer: Optional[str] = None,
    color_map: str = "viridis",
    size: float = 4,
    width: int = 600,
    height: int = 500,
    interactive: bool = True,
) -> go.Figure:
    """
    Plot cells on an embedding, colored by expression of a feature.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object.
    feature : str
        Gene in adata.var_names or numeric column in adata.obs.
    embedding : str
        Key in adata.obsm.
    dims : tuple of int
        Zero-based embedding dimensions to plot.
    layer : str, optional
        Layer to read expression from. If None, uses adata.X.
    color_map : str
        Continuous colormap name.
    size : float
        Marker size.
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
    plot_data = get_embedding(adata, embedding, dims)
    x, y = plot_data.columns
    plot_data[feature] = get_expression(adata, feature, layer=layer)[feature]
    plot_data["cellid"] = adata.obs_names

    fig = px.scatter(
        plot_data,
        x=x,
        y=y,
        color=feature,
        color_continuous_scale=color_map,
        opacity=0.7,
        hover_name="cellid",
        render_mode="webgl",
        title=feature,
    )
    _style_embedding(fig, x, y, size, width, height)

    if interactive:
        plotly_settings(fig)

    return fig


def plot_all_transcripts(
    adata: anndata.AnnData,
    transcripts: anndata.AnnData,
    features: Union[str, Sequence[str]],
    tx2gene: Optional[pd.DataFrame] = None,
    from_gene: bool = True,
    embedding: str = "X_umap",
    **kwargs,
) -> Dict[str, go.Figure]:
    """
    Plot every transcript of a gene on the gene-level embedding.

    Parameters
    ----------
    adata : anndata.AnnData
        Gene-level AnnData holding the embedding.
    transcripts : anndata.AnnData
        Transcript-level counts for the same cells.
    features : str or list of str
        Gene symbols (from_gene=True) or transcript identifiers.
    tx2gene : pd.DataFrame, optional
        Reference with columns symbol and enstxp. Required if from_gene.
    from_gene : bool
        If True, features are gene symbols looked up in tx2gene.
    embedding : str
        Key in adata.obsm.
    **kwargs
        Additional arguments passed to plot_feature_on_embedding.

    Returns
    -------
    dict
        Transcript identifier to plotly figure.
    """
    if isinstance(features, str):
        features = [features]
    if from_gene:
        if tx2gene is None:
            raise ValueError("tx2gene reference is required when from_gene=True")
        features = genes_to_transcripts(features, tx2gene)

    features = [f for f in features if f in transcripts.var_names]
    if not features:
        raise ValueError("None of the requested transcripts are present in the transcript data")

    if not transcripts.obs_names.equals(adata.obs_names):
        transcripts = transcripts[adata.obs_names]

    logger.info(f"Plotting {len(features)} transcripts on {embedding}")

    normalized = transcripts.copy()
    sc.pp.normalize_total(normalized)
    sc.pp.log1p(normalized)
    normalized = normalized[:, features].copy()
    for key, coords in adata.obsm.items():
        normalized.obsm[key] = coords

    return {
        feature: plot_feature_on_embedding(normalized, feature, embedding=embedding, **kwargs)
        for feature in features
    }
