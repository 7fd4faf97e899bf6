"""Shared fixtures for chevreul_plot tests."""

import numpy as np
import pandas as pd
import pytest
import anndata as ad


MARKER_GENES = {
    "A": ["CD3E", "CD3D", "MT-CO1"],
    "B": ["MS4A1", "CD79A", "RPL13"],
    "C": ["LYZ", "CST3", "S100A8"],
}


def create_test_adata(n_per_group=20, n_background=12, seed=0):
    """Create counts for three groups, each with three strongly expressed marker genes."""
    rng = np.random.default_rng(seed)
    groups = list(MARKER_GENES)
    marker_names = [g for group in groups for g in MARKER_GENES[group]]
    gene_names = marker_names + [f"gene_{i}" for i in range(n_background)]
    n_cells = n_per_group * len(groups)

    rates = np.full((n_cells, len(gene_names)), 2.0)
    for i, group in enumerate(groups):
        rows = slice(i * n_per_group, (i + 1) * n_per_group)
        for gene in MARKER_GENES[group]:
            rates[rows, gene_names.index(gene)] = 60.0
    X = rng.poisson(rates).astype(float)

    obs = pd.DataFrame(
        {
            "ident": np.repeat(groups, n_per_group),
            "batch": np.tile(["b1", "b2"], n_cells // 2),
            "nCount_RNA": X.sum(axis=1),
            "percent_mt": rng.uniform(0, 10, n_cells),
        },
        index=[f"cell_{i}" for i in range(n_cells)],
    )
    var = pd.DataFrame(index=gene_names)

    adata = ad.AnnData(X=X, obs=obs, var=var)
    adata.obsm["X_umap"] = rng.normal(size=(n_cells, 2))
    adata.obsm["X_pca"] = rng.normal(size=(n_cells, 5))
    return adata


@pytest.fixture
def sample_adata():
    """Three-group AnnData with UMAP and PCA embeddings."""
    return create_test_adata()
