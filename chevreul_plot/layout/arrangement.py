"""Heatmap column arrangement and annotation track colors."""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import leaves_list, linkage
from scipy.spatial.distance import pdist

from ..errors import (
    ChevreulPlotError,
    NoCoordinatesAvailable,
    UnknownAnnotationColumn,
    UnknownClusteringMethod,
)
from .colors import (
    CategoricalColorRule,
    NumericColorRule,
    build_categorical_rule,
    build_numeric_rule,
    hue_palette,
    is_numeric_track,
    observed_levels,
    to_levels,
)

logger = logging.getLogger(__name__)

BY_METADATA = "by-metadata"

DEGRADED_CLUSTERING_MESSAGE = (
    "No embedding coordinates available for this dataset; "
    "samples will be clustered by displayed features"
)

# Accepted method names mapped to scipy linkage methods
LINKAGE_METHODS = {
    "ward": "ward",
    "ward.D2": "ward",  # scipy ward is R ward.D2; ward.D has no counterpart
    "average": "average",
    "complete": "complete",
    "single": "single",
    "mcquitty": "weighted",
    "median": "median",
    "centroid": "centroid",
}

ColorRule = Union[CategoricalColorRule, NumericColorRule]
Coordinates = Union[np.ndarray, pd.DataFrame]


@dataclass
class ColumnOrder:
    """Sample order for heatmap columns and how it was derived."""

    order: List[str]
    method: str
    linkage: Optional[np.ndarray] = None
    sort_by: List[str] = field(default_factory=list)
    degraded: bool = False
    split_sizes: List[int] = field(default_factory=list)

    @property
    def is_clustered(self) -> bool:
        return self.method != BY_METADATA

    def positions(self) -> Dict[str, int]:
        """Column position of every sample."""
        return {sample: i for i, sample in enumerate(self.order)}


@dataclass
class HeatmapLayout:
    """Column order plus annotation tracks and their color rules."""

    column_order: ColumnOrder
    annotation_columns: List[str]
    annotation_colors: Dict[str, ColorRule]
    warnings: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.column_order.degraded


def _check_method(method: str) -> None:
    if method != BY_METADATA and method not in LINKAGE_METHODS:
        raise UnknownClusteringMethod(method, valid=list(LINKAGE_METHODS) + [BY_METADATA])


def _check_columns(metadata: pd.DataFrame, columns: Sequence[str]) -> None:
    for column in columns:
        if column not in metadata.columns:
            raise UnknownAnnotationColumn(column)


def _as_list(columns: Optional[Union[str, Sequence[str]]]) -> List[str]:
    if columns is None:
        return []
    if isinstance(columns, str):
        return [columns]
    return list(columns)


def _aligned_matrix(metadata: pd.DataFrame, values: Coordinates, name: str) -> np.ndarray:
    """Return values as a float matrix with rows in metadata order."""
    if isinstance(values, pd.DataFrame):
        missing = metadata.index.difference(values.index)
        if len(missing) > 0:
            raise ChevreulPlotError(
                f"{name} missing for {len(missing)} samples, e.g. {list(missing[:3])}"
            )
        matrix = values.loc[metadata.index].to_numpy(dtype=float)
    else:
        matrix = np.asarray(values, dtype=float)
        if matrix.ndim == 1:
            matrix = matrix.reshape(-1, 1)
        if matrix.shape[0] != len(metadata):
            raise ChevreulPlotError(
                f"{name} have {matrix.shape[0]} rows but metadata has {len(metadata)} samples"
            )

    if np.isnan(matrix).any():
        raise ChevreulPlotError(f"{name} contain missing values")

    return matrix


def cluster_order(
    samples: Sequence[str], matrix: np.ndarray, method: str = "ward"
) -> Tuple[List[str], Optional[np.ndarray]]:
    """
    Order samples by agglomerative hierarchical clustering.

    Parameters
    ----------
    samples : sequence of str
        Sample identifiers, one per matrix row.
    matrix : np.ndarray
        Per-sample coordinates (samples × dimensions).
    method : str
        Linkage method name (see LINKAGE_METHODS).

    Returns
    -------
    order : list of str
        Samples in dendrogram leaf order.
    linkage_matrix : np.ndarray or None
        scipy linkage matrix, or None with fewer than two samples.
    """
    _check_method(method)
    samples = list(samples)
    if len(samples) < 2:
        return samples, None

    logger.info(f"Clustering {len(samples)} samples with {method} linkage")

    distances = pdist(matrix, metric="euclidean")
    linkage_matrix = linkage(distances, method=LINKAGE_METHODS[method])
    order = [samples[i] for i in leaves_list(linkage_matrix)]

    return order, linkage_matrix


def sort_by_metadata(metadata: pd.DataFrame, sort_by: Sequence[str]) -> List[str]:
    """Stable sort of samples by one or more metadata columns, missing values last."""
    sort_by = _as_list(sort_by)
    _check_columns(metadata, sort_by)
    ordered = metadata[sort_by].sort_values(by=sort_by, kind="mergesort", na_position="last")
    return ordered.index.astype(str).tolist()


def arrange_columns(
    metadata: pd.DataFrame,
    method: str = "ward",
    coordinates: Optional[Coordinates] = None,
    feature_matrix: Optional[Coordinates] = None,
    sort_by: Optional[Union[str, Sequence[str]]] = None,
) -> ColumnOrder:
    """
    Decide the column order of a heatmap.

    With a linkage method, samples are clustered on their coordinates (e.g.
    a PCA embedding). Without coordinates the displayed feature matrix is
    clustered instead, and a NoCoordinatesAvailable warning is emitted. With
    'by-metadata', samples are sorted by the sort_by columns.

    Parameters
    ----------
    metadata : pd.DataFrame
        Per-sample metadata indexed by sample identifier.
    method : str
        Linkage method name or 'by-metadata'.
    coordinates : np.ndarray or pd.DataFrame, optional
        Per-sample coordinates used for clustering.
    feature_matrix : np.ndarray or pd.DataFrame, optional
        Displayed values (samples × features), clustered when coordinates
        are missing.
    sort_by : str or list of str, optional
        Metadata columns defining the order for 'by-metadata'.

    Returns
    -------
    ColumnOrder
        Permutation of the sample identifiers.
    """
    _check_method(method)
    samples = metadata.index.astype(str).tolist()

    if method == BY_METADATA:
        sort_by = _as_list(sort_by)
        if not sort_by:
            raise ChevreulPlotError(f"Column arrangement '{BY_METADATA}' requires sort_by columns")
        return ColumnOrder(
            order=sort_by_metadata(metadata, sort_by),
            method=method,
            sort_by=sort_by,
        )

    degraded = False
    if coordinates is not None:
        matrix = _aligned_matrix(metadata, coordinates, "Coordinates")
    elif feature_matrix is not None:
        logger.warning(DEGRADED_CLUSTERING_MESSAGE)
        warnings.warn(DEGRADED_CLUSTERING_MESSAGE, NoCoordinatesAvailable, stacklevel=2)
        matrix = _aligned_matrix(metadata, feature_matrix, "Feature values")
        degraded = True
    else:
        raise ChevreulPlotError(
            f"Clustering with '{method}' needs coordinates or a feature matrix"
        )

    order, linkage_matrix = cluster_order(samples, matrix, method)
    return ColumnOrder(order=order, method=method, linkage=linkage_matrix, degraded=degraded)


def build_annotation_colors(
    metadata: pd.DataFrame, columns: Sequence[str]
) -> Dict[str, ColorRule]:
    """
    Build a color rule for every annotation column.

    Categorical columns get one hue per level (missing values as an explicit
    'NA' level); numeric columns get a white-to-hue ramp over their range,
    with hues spaced across the numeric columns.

    Parameters
    ----------
    metadata : pd.DataFrame
        Per-sample metadata.
    columns : sequence of str
        Annotation columns to color.

    Returns
    -------
    dict
        Column name to CategoricalColorRule or NumericColorRule.
    """
    columns = _as_list(columns)
    _check_columns(metadata, columns)

    numeric_columns = [c for c in columns if is_numeric_track(metadata[c])]
    numeric_hues = dict(zip(numeric_columns, hue_palette(len(numeric_columns))))

    rules: Dict[str, ColorRule] = {}
    for column in columns:
        if column in numeric_hues:
            rules[column] = build_numeric_rule(column, metadata[column], numeric_hues[column])
        else:
            rules[column] = build_categorical_rule(column, metadata[column])

    return rules


def _rows(values: Optional[Coordinates], mask: np.ndarray) -> Optional[Coordinates]:
    if values is None or isinstance(values, pd.DataFrame):
        return values
    return np.asarray(values)[mask]


def arrange_within_splits(
    metadata: pd.DataFrame,
    column_split: str,
    method: str = "ward",
    coordinates: Optional[Coordinates] = None,
    feature_matrix: Optional[Coordinates] = None,
    sort_by: Optional[Union[str, Sequence[str]]] = None,
) -> ColumnOrder:
    """
    Arrange columns separately within each level of a metadata column.

    Levels are concatenated in order of first appearance, missing values
    last. The result has no linkage matrix; split_sizes gives the number of
    columns per level.
    """
    _check_columns(metadata, [column_split])
    levels = to_levels(metadata[column_split]).values

    order: List[str] = []
    split_sizes: List[int] = []
    degraded = False
    for level in observed_levels(metadata[column_split]):
        mask = levels == level
        part = arrange_columns(
            metadata[mask],
            method=method,
            coordinates=_rows(coordinates, mask),
            feature_matrix=_rows(feature_matrix, mask),
            sort_by=sort_by,
        )
        order += part.order
        split_sizes.append(len(part.order))
        degraded = degraded or part.degraded

    return ColumnOrder(
        order=order,
        method=method,
        sort_by=_as_list(sort_by) if method == BY_METADATA else [],
        degraded=degraded,
        split_sizes=split_sizes,
    )


def arrange_heatmap(
    metadata: pd.DataFrame,
    annotation_columns: Optional[Union[str, Sequence[str]]] = None,
    method: str = "ward",
    coordinates: Optional[Coordinates] = None,
    feature_matrix: Optional[Coordinates] = None,
    sort_by: Optional[Union[str, Sequence[str]]] = None,
    column_split: Optional[str] = None,
) -> HeatmapLayout:
    """
    Arrange heatmap columns and color the annotation tracks.

    Columns used to sort samples are appended to the annotation tracks so
    the explicit order is visible.

    Parameters
    ----------
    metadata : pd.DataFrame
        Per-sample metadata indexed by sample identifier.
    annotation_columns : str or list of str, optional
        Metadata columns to draw as annotation tracks.
    method : str
        Linkage method name or 'by-metadata'.
    coordinates : np.ndarray or pd.DataFrame, optional
        Per-sample coordinates used for clustering.
    feature_matrix : np.ndarray or pd.DataFrame, optional
        Displayed values, clustered when coordinates are missing.
    sort_by : str or list of str, optional
        Metadata columns defining the order for 'by-metadata'.
    column_split : str, optional
        Metadata column whose levels are arranged independently.

    Returns
    -------
    HeatmapLayout
        Column order, annotation tracks and color rules.
    """
    _check_method(method)
    tracks = _as_list(annotation_columns)
    _check_columns(metadata, tracks)
    _check_columns(metadata, _as_list(sort_by))

    if column_split is None:
        column_order = arrange_columns(
            metadata,
            method=method,
            coordinates=coordinates,
            feature_matrix=feature_matrix,
            sort_by=sort_by,
        )
    else:
        column_order = arrange_within_splits(
            metadata,
            column_split,
            method=method,
            coordinates=coordinates,
            feature_matrix=feature_matrix,
            sort_by=sort_by,
        )

    if method == BY_METADATA:
        tracks += [c for c in column_order.sort_by if c not in tracks]

    return HeatmapLayout(
        column_order=column_order,
        annotation_columns=tracks,
        annotation_colors=build_annotation_colors(metadata, tracks),
        warnings=[DEGRADED_CLUSTERING_MESSAGE] if column_order.degraded else [],
    )
