"""
chevreul-plot: exploratory visualization of single-cell datasets stored as H5AD.

This package provides tools to:
- Find marker genes per group and build deduplicated marker panels
- Order heatmap columns by clustering or metadata and color annotation tracks
- Plot embeddings, distributions, marker dot plots and complex heatmaps
- Summarize transcript composition of a gene across groups
"""

__version__ = "0.1.0"
__author__ = "EISA Science"

from . import io, markers, layout, viz

__all__ = ["io", "markers", "layout", "viz", "__version__"]
