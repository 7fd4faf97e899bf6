"""Marker discovery and marker panel selection."""

from .discovery import find_all_markers, marker_table_from_frame
from .panel import MarkerPanel, build_marker_panel, deduplicate_markers, compute_group_boundaries
from .technical import get_technical_filter, is_mito_ribo

__all__ = [
    "find_all_markers",
    "marker_table_from_frame",
    "MarkerPanel",
    "build_marker_panel",
    "deduplicate_markers",
    "compute_group_boundaries",
    "get_technical_filter",
    "is_mito_ribo",
]
