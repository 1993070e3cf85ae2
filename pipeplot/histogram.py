from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from pipeplot.errors import PlotContractError


@dataclass(frozen=True)
class HistogramBins:
    centers: np.ndarray
    counts: np.ndarray
    bin_width: float


def check_bin_count(bins: int) -> int:
    if isinstance(bins, bool) or not isinstance(bins, (int, np.integer)) or bins < 1:
        raise PlotContractError(f"bin count must be an integer >= 1, got {bins!r}")
    return int(bins)


def compute_bins(values: np.ndarray, bins: int) -> HistogramBins:
    """Split ``values`` into ``bins`` equal-width bins between their min and max.

    A value equal to the maximum lands in the last bin. A constant series is
    only accepted with a single bin.
    """
    bins = check_bin_count(bins)
    data = np.asarray(values, dtype=np.float64)
    if data.size == 0:
        raise PlotContractError("cannot histogram an empty series")
    if not np.all(np.isfinite(data)):
        raise PlotContractError("histogram values must be finite")

    vmin = float(np.min(data))
    vmax = float(np.max(data))
    if vmin == vmax:
        if bins > 1:
            raise PlotContractError("cannot histogram a constant series with more than one bin")
        return HistogramBins(
            centers=np.asarray([vmin], dtype=np.float64),
            counts=np.asarray([data.size], dtype=np.int64),
            bin_width=0.0,
        )

    span = vmax - vmin
    if not np.isfinite(span):
        raise PlotContractError("histogram value range is too wide to bin: max - min overflows")
    bin_width = span / bins
    index = np.floor((data - vmin) / bin_width).astype(np.int64)
    np.clip(index, 0, bins - 1, out=index)
    counts = np.bincount(index, minlength=bins).astype(np.int64)
    centers = vmin + bin_width * (np.arange(bins, dtype=np.float64) + 0.5)
    return HistogramBins(centers=centers, counts=counts, bin_width=bin_width)
