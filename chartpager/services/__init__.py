"""Service layer exports for chart aggregation and axis layout."""

from .aggregator import (
    BIN_COLUMNS,
    aggregate,
    aggregate_grouped,
    bins_to_frame,
    compute_statistics,
    slice_bins,
)
from .axis import compute_y_domain, default_domain, nice_ceil, visible_axis_dates

__all__ = [
    "BIN_COLUMNS",
    "aggregate",
    "aggregate_grouped",
    "bins_to_frame",
    "compute_statistics",
    "compute_y_domain",
    "default_domain",
    "nice_ceil",
    "slice_bins",
    "visible_axis_dates",
]
