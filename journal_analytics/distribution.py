"""
Distribution Summaries

The one percentile implementation used by every component, plus the
equal-width histogram used for resampled P/L distributions.

Percentiles use linear interpolation between order statistics: for a sorted
array of n values the fractional rank of percentile p is r = p/100 * (n-1)
and the result lies between sorted[floor(r)] and sorted[ceil(r)].
"""

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np

from .config import DEFAULT_HISTOGRAM_BINS, _check_count
from .errors import EmptyInputError, InvalidParameterError

# numpy's "linear" method is exactly the rank interpolation described above.
_METHOD = "linear"


def _check_level(p: float) -> None:
    if not 0 <= p <= 100:
        raise InvalidParameterError(f"percentile must be between 0 and 100, got {p}")


def percentile(values: Sequence[float], p: float) -> float:
    """
    Percentile of `values` with linear interpolation between ranks.

    Args:
        values: Observations, any order
        p: Percentile level in [0, 100]

    Returns:
        Interpolated value; the single element when len(values) == 1
    """
    _check_level(p)
    arr = np.asarray(values, dtype=np.float64).ravel()
    if arr.size == 0:
        raise EmptyInputError("cannot take a percentile of zero values")
    return float(np.percentile(arr, p, method=_METHOD))


def percentile_or_default(values: Sequence[float], p: float, default: float = 0.0) -> float:
    """Like percentile(), but returns `default` for empty input."""
    if len(values) == 0:
        _check_level(p)
        return default
    return percentile(values, p)


def percentiles(values: Sequence[float], levels: Sequence[float]) -> Dict[float, float]:
    """Several percentile levels of the same observations, keyed by level."""
    for p in levels:
        _check_level(p)
    arr = np.asarray(values, dtype=np.float64).ravel()
    if arr.size == 0:
        raise EmptyInputError("cannot take a percentile of zero values")
    result = np.percentile(arr, list(levels), method=_METHOD)
    return {p: float(v) for p, v in zip(levels, np.atleast_1d(result))}


def percentile_bands(matrix: np.ndarray, levels: Sequence[float]) -> np.ndarray:
    """
    Per-column percentiles of a (trials, steps) matrix.

    Returns:
        Array of shape (len(levels), steps); row i holds levels[i]
    """
    for p in levels:
        _check_level(p)
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[0] == 0:
        raise EmptyInputError("percentile bands need at least one trial")
    return np.atleast_2d(np.percentile(matrix, list(levels), axis=0, method=_METHOD))


@dataclass(frozen=True)
class HistogramBin:
    """One equal-width bin covering [bin_start, bin_end)."""
    bin_start: float
    bin_end: float
    count: int


def build_histogram(values: Sequence[float], bins: int = DEFAULT_HISTOGRAM_BINS) -> Tuple[HistogramBin, ...]:
    """
    Equal-width histogram spanning [min(values), max(values)].

    Each bin counts observations in [start, end); the maximum itself lands
    in the last bin. When every value is equal the bins have zero width and
    all observations are counted in the first one.

    Args:
        values: Observations
        bins: Number of bins

    Returns:
        Tuple of HistogramBin in ascending order
    """
    _check_count('bins', bins)
    arr = np.asarray(values, dtype=np.float64).ravel()
    if arr.size == 0:
        raise EmptyInputError("cannot build a histogram of zero values")

    lo = float(arr.min())
    hi = float(arr.max())
    width = (hi - lo) / bins

    if width > 0:
        idx = np.floor((arr - lo) / width).astype(np.int64)
        idx = np.clip(idx, 0, bins - 1)
        counts = np.bincount(idx, minlength=bins)
    else:
        counts = np.zeros(bins, dtype=np.int64)
        counts[0] = arr.size

    return tuple(
        HistogramBin(
            bin_start=lo + i * width,
            bin_end=lo + (i + 1) * width,
            count=int(counts[i])
        )
        for i in range(bins)
    )
