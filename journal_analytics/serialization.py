"""
Serialization Boundary

Turns analytics results into plain records and DataFrames for storage or
JSON output. This is the only place where infinities are replaced by the
fixed STORAGE_INFINITY stand-in; the analytics themselves keep float('inf').
"""

import dataclasses
import math
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd

from .config import STORAGE_INFINITY
from .distribution import HistogramBin
from .drawdown import DrawdownEpisode
from .monte_carlo import PercentileBand


def storage_safe(value: Optional[float]) -> Optional[float]:
    """
    Make a float safe for storage.

    +inf / -inf become +/-STORAGE_INFINITY, NaN becomes None, everything
    else is returned as a plain float.
    """
    if value is None:
        return None
    value = float(value)
    if math.isnan(value):
        return None
    if math.isinf(value):
        return STORAGE_INFINITY if value > 0 else -STORAGE_INFINITY
    return value


def _convert(value: Any, finite_only: bool) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_record(value, finite_only)
    if isinstance(value, (list, tuple)):
        return [_convert(v, finite_only) for v in value]
    if isinstance(value, dict):
        return {str(k): _convert(v, finite_only) for k, v in value.items()}
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        return storage_safe(value) if finite_only else float(value)
    return value


def to_record(result: Any, finite_only: bool = True) -> Dict[str, Any]:
    """
    Convert a result dataclass into a JSON-ready dict.

    Nested dataclasses become nested dicts and tuples become lists.
    Per-trial arrays (fields excluded from comparison) are dropped.

    Args:
        result: Any result dataclass (metrics, drawdown analysis, Monte
            Carlo, bootstrap, risk of ruin)
        finite_only: Replace infinities with STORAGE_INFINITY and NaN with None

    Returns:
        Dict keyed by field name
    """
    if not dataclasses.is_dataclass(result) or isinstance(result, type):
        raise TypeError(f"expected a dataclass instance, got {type(result).__name__}")

    record = {}
    for f in dataclasses.fields(result):
        if not f.compare:
            continue
        record[f.name] = _convert(getattr(result, f.name), finite_only)
    return record


def episodes_frame(episodes: Sequence[DrawdownEpisode]) -> pd.DataFrame:
    """One row per drawdown episode, with an is_open column."""
    columns = [f.name for f in dataclasses.fields(DrawdownEpisode)]
    df = pd.DataFrame([dataclasses.asdict(e) for e in episodes], columns=columns)
    df['is_open'] = df['end_index'].isna()
    return df


def bands_frame(bands: Sequence[PercentileBand]) -> pd.DataFrame:
    """Monte Carlo percentile bands indexed by step."""
    df = pd.DataFrame(
        [dataclasses.asdict(b) for b in bands],
        columns=['step_index', 'lower', 'median', 'upper']
    )
    return df.set_index('step_index')


def histogram_frame(histogram: Sequence[HistogramBin]) -> pd.DataFrame:
    """Histogram bins as a DataFrame (bin_start, bin_end, count)."""
    return pd.DataFrame(
        [dataclasses.asdict(b) for b in histogram],
        columns=['bin_start', 'bin_end', 'count']
    )
