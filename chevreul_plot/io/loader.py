"""Loading datasets and reading expression and metadata for plotting."""

import logging
from typing import List, Optional, Sequence, Union

import anndata
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

GROUP_KEYWORDS = ["cluster", "leiden", "louvain", "batch", "cell_type", "ident"]


def load_h5ad(file_path: str) -> anndata.AnnData:
    """
    Load an H5AD file.

    Parameters
    ----------
    file_path : str
        Path to H5AD file.

    Returns
    -------
    anndata.AnnData
        Loaded AnnData object.
    """
    logger.info(f"Loading H5AD file: {file_path}")
    adata = anndata.read_h5ad(file_path)
    logger.info(f"Loaded {adata.n_obs} cells × {adata.n_vars} features from {file_path}")
    return adata


def get_candidate_group_columns(adata: anndata.AnnData) -> List[str]:
    """
    Get candidate grouping columns from adata.obs.

    Columns whose name contains cluster, leiden, louvain, batch, cell_type or
    ident come first; numeric columns are excluded unless they match.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object.

    Returns
    -------
    list of str
        Candidate column names, prioritized ones first.
    """
    priority_cols = [
        col for col in adata.obs.columns
        if any(kw in col.lower() for kw in GROUP_KEYWORDS)
    ]
    other_cols = [
        col for col in adata.obs.columns
        if col not in priority_cols and not pd.api.types.is_float_dtype(adata.obs[col])
    ]
    return priority_cols + other_cols


def get_expression(
    adata: anndata.AnnData,
    features: Union[str, Sequence[str]],
    layer: Optional[str] = None,
) -> pd.DataFrame:
    """
    Get per-cell values of genes or metadata columns.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object.
    features : str or list of str
        Gene names (adata.var_names) or columns of adata.obs.
    layer : str, optional
        Layer to read gene values from. If None, uses adata.X.

    Returns
    -------
    pd.DataFrame
        Cells × features, indexed by adata.obs_names.
    """
    if isinstance(features, str):
        features = [features]

    if layer is not None and layer not in adata.layers:
        raise ValueError(f"Layer '{layer}' not found in adata.layers")

    columns = {}
    for feature in features:
        if feature in adata.var_names:
            values = adata[:, feature].layers[layer] if layer else adata[:, feature].X
            if hasattr(values, "toarray"):
                values = values.toarray()
            columns[feature] = np.asarray(values).ravel()
        elif feature in adata.obs.columns:
            columns[feature] = adata.obs[feature].to_numpy()
        else:
            raise ValueError(f"Feature '{feature}' not found in adata.var_names or adata.obs")

    return pd.DataFrame(columns, index=adata.obs_names)


def get_embedding(
    adata: anndata.AnnData, embedding: str, dims: Sequence[int] = (0, 1)
) -> pd.DataFrame:
    """
    Get two embedding dimensions as a dataframe.

    Parameters
    ----------
    adata : anndata.AnnData
        Input AnnData object.
    embedding : str
        Key in adata.obsm. 'UMAP' style names are tried as 'X_umap'.
    dims : tuple of int
        Zero-based dimensions to return.

    Returns
    -------
    pd.DataFrame
        Columns named '<embedding>_<dim + 1>', indexed by adata.obs_names.
    """
    key = resolve_embedding_key(adata, embedding)
    coords = np.asarray(adata.obsm[key])

    if coords.ndim != 2 or max(dims) >= coords.shape[1] or min(dims) < 0:
        raise ValueError(f"Embedding '{key}' has no dimensions {tuple(dims)}")

    label = key[2:] if key.startswith("X_") else key
    return pd.DataFrame(
        {f"{label.upper()}_{d + 1}": coords[:, d] for d in dims},
        index=adata.obs_names,
    )


def resolve_embedding_key(adata: anndata.AnnData, embedding: str) -> str:
    """Find the adata.obsm key for an embedding name such as 'UMAP' or 'X_pca'."""
    for key in (embedding, f"X_{embedding.lower()}", f"X_{embedding}"):
        if key in adata.obsm:
            return key
    raise ValueError(f"Embedding '{embedding}' not found in adata.obsm")
