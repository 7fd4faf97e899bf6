"""Color palettes and color rules for heatmap annotation tracks."""

import logging
from dataclasses import dataclass, field
from typing import ClassVar, Dict, List, Optional

import numpy as np
import pandas as pd
import seaborn as sns
from plotly.colors import find_intermediate_color, hex_to_rgb

logger = logging.getLogger(__name__)

NA_LEVEL = "NA"
NA_COLOR = "#BEBEBE"
LOW_COLOR = "#FFFFFF"


def _to_hex(rgb) -> str:
    return "#{:02X}{:02X}{:02X}".format(*(int(round(c)) for c in rgb))


def hue_palette(n: int, lightness: float = 0.6, saturation: float = 0.65) -> List[str]:
    """
    Return n colors with hues evenly spaced around the color wheel.

    Parameters
    ----------
    n : int
        Number of colors.
    lightness : float
        HLS lightness of every color.
    saturation : float
        HLS saturation of every color.

    Returns
    -------
    list of str
        Upper-case hex color codes.
    """
    palette = sns.hls_palette(n, l=lightness, s=saturation)
    return [color.upper() for color in palette.as_hex()]


def to_levels(values: pd.Series) -> pd.Series:
    """Convert values to string levels, with missing values as an explicit NA level."""
    return values.astype(object).where(values.notna(), NA_LEVEL).astype(str)


def observed_levels(values: pd.Series) -> List[str]:
    """Distinct levels in order of first appearance, NA level last."""
    levels = list(pd.unique(values.dropna().astype(str)))
    if values.isna().any() and NA_LEVEL not in levels:
        levels.append(NA_LEVEL)
    return levels


def is_numeric_track(values: pd.Series) -> bool:
    """Numeric columns are drawn with a color ramp; everything else by level."""
    return pd.api.types.is_numeric_dtype(values) and not pd.api.types.is_bool_dtype(values)


@dataclass
class CategoricalColorRule:
    """Maps every level of a categorical column to a distinct color."""

    kind: ClassVar[str] = "categorical"

    column: str
    colors: Dict[str, str] = field(default_factory=dict)

    @property
    def levels(self) -> List[str]:
        return list(self.colors)

    def resolve(self, value) -> str:
        level = NA_LEVEL if pd.isna(value) else str(value)
        return self.colors[level]


@dataclass
class NumericColorRule:
    """Linear color ramp spanning the observed range of a numeric column."""

    kind: ClassVar[str] = "numeric"

    column: str
    vmin: float
    vmax: float
    high_color: str
    low_color: str = LOW_COLOR
    na_color: str = NA_COLOR

    def resolve(self, value) -> str:
        if pd.isna(value) or np.isnan(self.vmin):
            return self.na_color
        if self.vmax == self.vmin:
            return self.high_color
        fraction = float(np.clip((value - self.vmin) / (self.vmax - self.vmin), 0.0, 1.0))
        rgb = find_intermediate_color(
            hex_to_rgb(self.low_color), hex_to_rgb(self.high_color), fraction
        )
        return _to_hex(rgb)

    def colorscale(self) -> list:
        """Two-point plotly colorscale for this ramp."""
        return [[0.0, self.low_color], [1.0, self.high_color]]


def build_categorical_rule(
    column: str, values: pd.Series, palette: Optional[List[str]] = None
) -> CategoricalColorRule:
    """Assign a distinct hue to every observed level of a column."""
    levels = observed_levels(values)
    palette = palette or hue_palette(len(levels))
    if len(palette) < len(levels):
        raise ValueError(
            f"Palette has {len(palette)} colors but column '{column}' has {len(levels)} levels"
        )
    return CategoricalColorRule(column=column, colors=dict(zip(levels, palette)))


def build_numeric_rule(column: str, values: pd.Series, high_color: str) -> NumericColorRule:
    """Build a ramp from white to high_color over the observed value range."""
    numeric = pd.to_numeric(values, errors="coerce")
    if numeric.notna().any():
        vmin, vmax = float(numeric.min()), float(numeric.max())
    else:
        logger.warning(f"Numeric column '{column}' has no observed values")
        vmin = vmax = float("nan")
    return NumericColorRule(column=column, vmin=vmin, vmax=vmax, high_color=high_color)
