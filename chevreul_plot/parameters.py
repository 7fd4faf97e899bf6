"""Parameter management for marker dot plots and heatmaps."""

from dataclasses import asdict, dataclass, field
from typing import List, Optional

from .layout.arrangement import BY_METADATA, LINKAGE_METHODS
from .markers.technical import TECHNICAL_FILTERS


@dataclass
class MarkerPanelParameters:
    """Parameters for cluster marker dot plots."""

    group_by: str = "batch"
    num_markers: int = 5
    hide_technical: Optional[str] = None
    unique_markers: bool = False
    p_val_cutoff: float = 1.0
    selected_values: Optional[List[str]] = None

    def to_dict(self):
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict):
        """Create from dictionary."""
        return cls(**{k: v for k, v in d.items() if k in cls.__annotations__})


@dataclass
class HeatmapParameters:
    """Parameters for expression heatmaps."""

    group_by: List[str] = field(default_factory=lambda: ["ident"])
    col_arrangement: str = "ward"
    sort_by: Optional[List[str]] = None
    reduction: str = "X_pca"
    column_split: Optional[str] = None
    n_top_features: int = 50

    def to_dict(self):
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict):
        """Create from dictionary."""
        return cls(**{k: v for k, v in d.items() if k in cls.__annotations__})


def validate_panel_parameters(params: MarkerPanelParameters) -> tuple[bool, list[str]]:
    """
    Validate marker dot plot parameters.

    Parameters
    ----------
    params : MarkerPanelParameters
        Parameters to validate.

    Returns
    -------
    tuple of (bool, list)
        (is_valid, list of error messages)
    """
    errors = []

    if params.num_markers < 1:
        errors.append("num_markers must be >= 1")

    if params.hide_technical is not None and params.hide_technical not in TECHNICAL_FILTERS:
        errors.append(f"hide_technical must be one of {', '.join(TECHNICAL_FILTERS)}")

    if not 0 < params.p_val_cutoff <= 1:
        errors.append("p_val_cutoff must be in (0, 1]")

    if params.selected_values is not None and len(params.selected_values) == 0:
        errors.append("selected_values must not be empty when given")

    return len(errors) == 0, errors


def validate_heatmap_parameters(params: HeatmapParameters) -> tuple[bool, list[str]]:
    """
    Validate heatmap parameters.

    Parameters
    ----------
    params : HeatmapParameters
        Parameters to validate.

    Returns
    -------
    tuple of (bool, list)
        (is_valid, list of error messages)
    """
    errors = []

    if params.col_arrangement != BY_METADATA and params.col_arrangement not in LINKAGE_METHODS:
        errors.append(
            f"col_arrangement must be one of {', '.join(LINKAGE_METHODS)} or '{BY_METADATA}'"
        )

    if params.col_arrangement == BY_METADATA and not params.sort_by:
        errors.append(f"sort_by must be given when col_arrangement='{BY_METADATA}'")

    if params.n_top_features < 1:
        errors.append("n_top_features must be >= 1")

    return len(errors) == 0, errors
