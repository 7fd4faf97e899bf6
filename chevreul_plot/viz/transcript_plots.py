"""Transcript composition of a gene across groups."""

import logging

import anndata
import numpy as np
import pandas as pd
import plotly.express as px
import scanpy as sc

from ..io.references import genes_to_transcripts
from ..layout.colors import to_levels

logger = logging.getLogger(__name__)


def plot_transcript_composition(
    adata: anndata.AnnData,
    transcripts: anndata.AnnData,
    gene_symbol: str,
    tx2gene: pd.DataFrame,
    group_by: str = "batch",
    standardize: bool = False,
    drop_zero: bool = False,
    width: int = 700,
    height: int = 500,
) -> dict:
    """
    Stacked bar plot of mean transcript expression per group for one gene.

    Parameters
    ----------
    adata : anndata.AnnData
        Gene-level AnnData holding the cell metadata.
    transcripts : anndata.AnnData
        Transcript-level counts for the same cells.
    gene_symbol : str
        Gene whose transcripts are plotted.
    tx2gene : pd.DataFrame
        Reference with columns symbol and enstxp.
    group_by : str
        Column in adata.obs to group cells by.
    standardize : bool
        If True, bars show the proportion of each transcript per group.
    drop_zero : bool
        If True, zero values are excluded from the means.
    width : int
        Figure width.
    height : int
        Figure height.

    Returns
    -------
    dict
        'plot' (plotly Figure) and 'data' (mean expression per group and
        transcript).
    """
    if group_by not in adata.obs.columns:
        raise ValueError(f"Column '{group_by}' not found in adata.obs")

    gene_transcripts = genes_to_transcripts(gene_symbol, tx2gene)
    if not gene_transcripts:
        raise ValueError(f"Gene '{gene_symbol}' not found in the transcript reference")

    present = [t for t in gene_transcripts if t in transcripts.var_names]
    if not present:
        raise ValueError(f"No transcripts of '{gene_symbol}' found in the transcript data")

    if not transcripts.obs_names.equals(adata.obs_names):
        transcripts = transcripts[adata.obs_names]

    logger.info(f"Transcript composition of {gene_symbol}: {len(present)} transcripts")

    normalized = transcripts.copy()
    sc.pp.normalize_total(normalized)
    values = normalized[:, present].X
    if hasattr(values, "toarray"):
        values = values.toarray()

    expression = pd.DataFrame(np.asarray(values), index=adata.obs_names, columns=present)
    expression[group_by] = to_levels(adata.obs[group_by]).values
    long_data = expression.melt(id_vars=group_by, var_name="transcript", value_name="expression")

    if drop_zero:
        long_data = long_data[long_data["expression"] != 0]

    data = (
        long_data.groupby([group_by, "transcript"], observed=True)["expression"]
        .mean()
        .reset_index()
    )

    y = "expression"
    if standardize:
        totals = data.groupby(group_by)["expression"].transform("sum")
        data["proportion"] = data["expression"] / totals.replace(0, np.nan)
        y = "proportion"

    fig = px.bar(
        data,
        x=group_by,
        y=y,
        color="transcript",
        barmode="stack",
        title=f"Mean expression by {group_by} - {gene_symbol}",
    )
    fig.update_layout(
        width=width,
        height=height,
        plot_bgcolor="white",
        xaxis_title=None,
        xaxis=dict(tickangle=-45, tickfont=dict(size=12)),
    )

    return {"plot": fig, "data": data}
