"""
Example workflow demonstrating the chevreul-plot API.

This script shows how to:
1. Load an H5AD file
2. Find marker genes and build a deduplicated marker panel
3. Draw the marker dot plot
4. Draw a heatmap with columns clustered on PCA
5. Draw embedding plots
6. Save everything as interactive HTML
"""

import logging
from pathlib import Path

from chevreul_plot import io, markers, viz

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    """Run the example workflow."""

    # ==================== 1. Load Data ====================
    logger.info("Step 1: Loading H5AD file")

    input_file = "data/seurat_export.h5ad"  # Replace with your file
    adata = io.load_h5ad(input_file)

    candidates = io.get_candidate_group_columns(adata)
    if not candidates:
        logger.error("No grouping column found in adata.obs")
        return
    group_by = candidates[0]
    logger.info(f"Grouping cells by '{group_by}'")

    # ==================== 2. Markers ====================
    logger.info("Step 2: Finding markers")

    marker_frame = markers.find_all_markers(adata, group_by, p_val_cutoff=0.05)
    panel = markers.build_marker_panel(
        markers.marker_table_from_frame(marker_frame),
        panel_size=5,
        technical_filter="mito_ribo",
        unique_only=True,
    )

    logger.info(f"Panel: {len(panel)} markers, boundaries at {panel.boundaries}")

    # ==================== 3. Dot Plot ====================
    logger.info("Step 3: Marker dot plot")

    dot_plot = viz.plot_marker_features(
        adata,
        group_by=group_by,
        markers=marker_frame,
        hide_technical="mito_ribo",
        unique_markers=True,
        interactive=True,
    )

    # ==================== 4. Heatmap ====================
    logger.info("Step 4: Heatmap")

    heatmap = viz.make_complex_heatmap(
        adata,
        features=panel.features,
        group_by=[group_by],
        col_arrangement="ward",
        reduction="X_pca",
    )
    for msg in heatmap["layout"].warnings:
        logger.warning(msg)

    # ==================== 5. Embeddings ====================
    logger.info("Step 5: Embedding plots")

    embedding_plot = viz.plot_colData_on_embedding(adata, group=group_by, embedding="X_umap")
    feature_plot = viz.plot_feature_on_embedding(adata, panel.features[0], embedding="X_umap")

    # ==================== 6. Save ====================
    output_dir = Path("results")
    output_dir.mkdir(parents=True, exist_ok=True)

    figures = {
        "markers.html": dot_plot["plot"],
        "heatmap.html": viz.plotly_settings(heatmap["plot"]),
        "embedding.html": embedding_plot,
        "feature.html": feature_plot,
    }
    for name, fig in figures.items():
        fig.write_html(output_dir / name, config=viz.figure_config(fig))
        logger.info(f"Saved {output_dir / name}")

    panel.to_frame().to_csv(output_dir / "marker_panel.csv", index=False)

    logger.info("Workflow complete!")


if __name__ == "__main__":
    main()
