"""Exceptions and warnings raised by marker panel and layout builders."""


class ChevreulPlotError(ValueError):
    """Base class for invalid plotting requests."""


class InvalidPanelRequest(ChevreulPlotError):
    """Exception raised when a marker panel cannot be built from the given parameters."""


class EmptyGroupSubset(ChevreulPlotError):
    """Exception raised when a group subset shares no groups with the marker table."""

    def __init__(self, requested, available):
        self.requested = list(requested)
        self.available = list(available)
        super().__init__(
            f"None of the requested groups {self.requested} are present "
            f"in the marker table (available: {self.available})"
        )


class UnknownClusteringMethod(ChevreulPlotError):
    """Exception raised for a column arrangement method that is not recognized."""

    def __init__(self, method: str, valid=()):
        self.method = method
        msg = f"Unknown clustering method: {method}"
        if valid:
            msg += f" (expected one of: {', '.join(valid)})"
        super().__init__(msg)


class UnknownAnnotationColumn(ChevreulPlotError):
    """Exception raised when a metadata column is requested but not present."""

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"Annotation column '{column}' not found in metadata")


class NoCoordinatesAvailable(UserWarning):
    """Warning emitted when columns are clustered on the displayed data instead of an embedding."""
