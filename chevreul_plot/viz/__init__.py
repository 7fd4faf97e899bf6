"""Plotly renderers for single-cell visualizations."""

from .embedding_plots import plot_colData_on_embedding, plot_feature_on_embedding, plot_all_transcripts
from .distribution_plots import plot_violin, plot_colData_histogram
from .marker_plots import plot_marker_features, compute_dot_data
from .heatmap import make_complex_heatmap, plot_heatmap
from .transcript_plots import plot_transcript_composition
from .settings import plotly_settings, export_config, figure_config

__all__ = [
    "plot_colData_on_embedding",
    "plot_feature_on_embedding",
    "plot_all_transcripts",
    "plot_violin",
    "plot_colData_histogram",
    "plot_marker_features",
    "compute_dot_data",
    "make_complex_heatmap",
    "plot_heatmap",
    "plot_transcript_composition",
    "plotly_settings",
    "export_config",
    "figure_config",
]
