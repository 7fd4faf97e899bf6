"""Shared interactive settings for plotly figures."""

import plotly.graph_objects as go


def export_config(width: int = 600, height: int = 700) -> dict:
    """
    Plotly config with an SVG download button.

    Pass to ``fig.show(config=...)`` or ``fig.write_html(config=...)``.
    """
    return {
        "toImageButtonOptions": {
            "format": "svg",
            "filename": "myplot",
            "width": width,
            "height": height,
        },
    }


def plotly_settings(fig: go.Figure, width: int = 600, height: int = 700) -> go.Figure:
    """
    Apply lasso selection and record SVG export options on a figure.

    The export options are kept in ``fig.layout.meta['config']`` so that
    writers can pick them up with ``figure_config``.
    """
    fig.update_layout(
        dragmode="lasso",
        meta={"config": export_config(width=width, height=height)},
    )
    return fig


def figure_config(fig: go.Figure) -> dict:
    """Config recorded by plotly_settings, or the default export config."""
    meta = fig.layout.meta
    if isinstance(meta, dict) and "config" in meta:
        return meta["config"]
    return export_config()
