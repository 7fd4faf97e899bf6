"""Marker gene discovery for every group of a metadata column."""

import logging
from typing import Dict, List, Optional

import anndata
import numpy as np
import pandas as pd
from scipy import stats

logger = logging.getLogger(__name__)

MARKER_COLUMNS = [
    "feature",
    "group",
    "rank",
    "logFC",
    "p_value",
    "adj_p_value",
    "pct_in_group",
    "pct_out_group",
]


def prepare_expression_data(
    adata: anndata.AnnData,
    use_layer: Optional[str] = None,
    normalize: bool = True,
) -> np.ndarray:
    """
    Prepare a dense expression matrix for marker testing.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object.
    use_layer : str, optional
        Layer to use for expression data. If None, uses adata.X.
    normalize : bool
        If True and the data look like raw counts, normalize each cell to
        10,000 counts and apply log1p.

    Returns
    -------
    np.ndarray
        Expression matrix (cells × genes).
    """
    if use_layer is not None:
        if use_layer not in adata.layers:
            raise ValueError(f"Layer '{use_layer}' not found in adata.layers")
        expr = adata.layers[use_layer]
    else:
        expr = adata.X

    if hasattr(expr, "toarray"):
        expr = expr.toarray()
    expr = np.asarray(expr, dtype=float)

    # Large values indicate raw counts
    if normalize and expr.size and expr.max() > 100:
        logger.info("Applying log1p normalization")
        cell_sums = expr.sum(axis=1, keepdims=True)
        cell_sums[cell_sums == 0] = 1
        expr = np.log1p(expr / cell_sums * 1e4)

    return expr


def benjamini_hochberg(p_values: np.ndarray) -> np.ndarray:
    """
    Apply Benjamini-Hochberg FDR correction.

    Parameters
    ----------
    p_values : np.ndarray
        Array of p-values.

    Returns
    -------
    np.ndarray
        Adjusted p-values, capped at 1.
    """
    p_values = np.asarray(p_values, dtype=float)
    n = len(p_values)
    if n == 0:
        return p_values

    order = np.argsort(p_values)
    scaled = p_values[order] * n / np.arange(1, n + 1)
    # Adjusted p-values are non-decreasing in p
    scaled = np.minimum.accumulate(scaled[::-1])[::-1]

    adjusted = np.empty(n)
    adjusted[order] = np.minimum(scaled, 1.0)
    return adjusted


def _test_group(
    expr: np.ndarray,
    gene_names: List[str],
    in_mask: np.ndarray,
    out_mask: np.ndarray,
) -> pd.DataFrame:
    expr_in = expr[in_mask, :]
    expr_out = expr[out_mask, :]

    _, p_values = stats.ranksums(expr_in, expr_out, axis=0)
    # Constant genes give NaN statistics
    p_values = np.nan_to_num(p_values, nan=1.0)

    mean_in = expr_in.mean(axis=0)
    mean_out = expr_out.mean(axis=0)

    return pd.DataFrame({
        "feature": gene_names,
        "logFC": np.log2((mean_in + 1e-9) / (mean_out + 1e-9)),
        "p_value": p_values,
        "adj_p_value": benjamini_hochberg(p_values),
        "pct_in_group": (expr_in > 0).mean(axis=0) * 100,
        "pct_out_group": (expr_out > 0).mean(axis=0) * 100,
    })


def find_all_markers(
    adata: anndata.AnnData,
    group_by: str,
    use_layer: Optional[str] = None,
    p_val_cutoff: float = 1.0,
    n_genes: Optional[int] = None,
    normalize: bool = True,
    store: bool = True,
) -> pd.DataFrame:
    """
    Find up-regulated marker genes for every group of a metadata column.

    Each group is compared against all other non-missing cells with a
    Wilcoxon rank-sum test and Benjamini-Hochberg correction.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object.
    group_by : str
        Column in adata.obs containing group labels.
    use_layer : str, optional
        Layer to use for expression data. If None, uses adata.X.
    p_val_cutoff : float
        Maximum adjusted p-value for a gene to be reported (default: 1).
    n_genes : int, optional
        Maximum number of markers per group. All passing genes if None.
    normalize : bool
        If True, applies log1p normalization to raw counts.
    store : bool
        If True, caches the result in adata.uns['markers'][group_by].

    Returns
    -------
    pd.DataFrame
        Long table with columns feature, group, rank, logFC, p_value,
        adj_p_value, pct_in_group, pct_out_group, ordered by group then rank.
    """
    if group_by not in adata.obs.columns:
        raise ValueError(f"Group column '{group_by}' not found in adata.obs")

    labels = adata.obs[group_by]
    groups = [str(g) for g in pd.unique(labels.dropna())]
    if len(groups) < 2:
        raise ValueError(f"Column '{group_by}' needs at least 2 groups to find markers")

    logger.info(f"Finding markers for {len(groups)} groups in '{group_by}'")

    expr = prepare_expression_data(adata, use_layer=use_layer, normalize=normalize)
    gene_names = adata.var_names.astype(str).tolist()
    label_strings = labels.astype(str).values
    observed = labels.notna().values

    results = []
    for group in groups:
        in_mask = observed & (label_strings == group)
        out_mask = observed & ~in_mask

        markers = _test_group(expr, gene_names, in_mask, out_mask)
        markers = markers[(markers["logFC"] > 0) & (markers["adj_p_value"] <= p_val_cutoff)]
        markers = markers.sort_values(
            ["adj_p_value", "logFC", "feature"],
            ascending=[True, False, True],
            kind="mergesort",
        )
        if n_genes is not None:
            markers = markers.head(n_genes)

        markers = markers.assign(group=group, rank=np.arange(1, len(markers) + 1))
        logger.debug(f"Group {group}: {len(markers)} markers")
        results.append(markers)

    all_markers = pd.concat(results, ignore_index=True)[MARKER_COLUMNS]

    if store:
        adata.uns.setdefault("markers", {})[group_by] = all_markers

    logger.info(f"Found {len(all_markers)} markers across {len(groups)} groups")

    return all_markers


def marker_table_from_frame(markers: pd.DataFrame) -> Dict[str, List[str]]:
    """
    Pivot a long marker table into one ranked feature list per group.

    Parameters
    ----------
    markers : pd.DataFrame
        Table with columns feature and group, plus rank if available.
        Without a rank column, row order within each group is the rank.

    Returns
    -------
    dict
        Mapping of group to features ordered best marker first. Groups keep
        their order of first appearance.
    """
    missing = {"feature", "group"} - set(markers.columns)
    if missing:
        raise ValueError(f"Marker table is missing columns: {sorted(missing)}")

    if "rank" in markers.columns:
        markers = markers.sort_values("rank", kind="mergesort")

    table: Dict[str, List[str]] = {str(g): [] for g in pd.unique(markers["group"])}
    for feature, group in zip(markers["feature"], markers["group"]):
        table[str(group)].append(str(feature))
    return table
