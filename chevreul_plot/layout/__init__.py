"""Heatmap column arrangement and annotation colors."""

from .arrangement import (
    BY_METADATA,
    LINKAGE_METHODS,
    ColumnOrder,
    HeatmapLayout,
    arrange_columns,
    arrange_heatmap,
    build_annotation_colors,
)
from .colors import CategoricalColorRule, NumericColorRule, hue_palette

__all__ = [
    "BY_METADATA",
    "LINKAGE_METHODS",
    "ColumnOrder",
    "HeatmapLayout",
    "arrange_columns",
    "arrange_heatmap",
    "build_annotation_colors",
    "CategoricalColorRule",
    "NumericColorRule",
    "hue_palette",
]
