"""
Analytics Engine Configuration

Constants and configuration dataclasses shared by the simulation and
analytics modules. Callers construct a SimulationConfig per request; nothing
here holds state between calls.
"""

import math
import multiprocessing
import numbers
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .errors import InvalidParameterError


# =============================================================================
# MINIMUM HISTORY
# =============================================================================

MIN_SIMULATION_HISTORY = 10             # Resampling pool below this is not meaningful
MIN_EQUITY_POINTS = 2                   # Drawdown analysis needs a start and an end
MIN_RUIN_HISTORY = 5                    # Auto risk-of-ruin from journal metrics


# =============================================================================
# SIMULATION DEFAULTS
# =============================================================================

DEFAULT_PERCENTILE_LEVELS = (5.0, 50.0, 95.0)
DEFAULT_HISTOGRAM_BINS = 20
DEFAULT_PARALLEL_THRESHOLD = 20_000     # Trials at or above this use worker processes
DEFAULT_CHUNK_SIZE = 1_000              # Trials per seeded chunk (also the cancel check interval)


# =============================================================================
# SERIALIZATION
# =============================================================================

STORAGE_INFINITY = 999.0                # Stand-in for inf in fixed-width storage columns


# =============================================================================
# PERFORMANCE SCORE
# =============================================================================

# Format: (good, excellent). Below good scales to 0-50, good..excellent to 50-100.
SCORE_WIN_RATE_THRESHOLDS: Tuple[float, float] = (50.0, 70.0)
SCORE_PROFIT_FACTOR_THRESHOLDS: Tuple[float, float] = (1.5, 3.0)
SCORE_AVG_RR_THRESHOLDS: Tuple[float, float] = (1.5, 3.0)

SCORE_WEIGHTS: Tuple[float, float, float] = (0.4, 0.3, 0.3)   # win rate, PF, R:R

# Format: (min_score, rank). Checked top-down.
SCORE_RANKS = [
    (90, 'Elite'),
    (80, 'Pro'),
    (70, 'Consistent'),
    (60, 'Developing'),
    (float('-inf'), 'Novice'),
]


# =============================================================================
# RISK OF RUIN
# =============================================================================

# Format: (upper_bound_percent, label). First bound the value is below wins.
RUIN_RISK_LEVELS = [
    (1.0, 'Very Low'),
    (5.0, 'Low'),
    (15.0, 'Moderate'),
    (30.0, 'High'),
    (float('inf'), 'Very High'),
]


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================

def _check_count(name: str, value) -> None:
    """Require a positive integer (numpy integers included, bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
    if value < 1:
        raise InvalidParameterError(f"{name} must be at least 1, got {value}")


@dataclass(frozen=True)
class PercentileLevels:
    """Percentile levels reported by the simulations (lower band, median, upper band)."""
    lower: float = DEFAULT_PERCENTILE_LEVELS[0]
    median: float = DEFAULT_PERCENTILE_LEVELS[1]
    upper: float = DEFAULT_PERCENTILE_LEVELS[2]

    def __post_init__(self):
        for name in ('lower', 'median', 'upper'):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise InvalidParameterError(f"{name} percentile must be between 0 and 100, got {value}")
        if not self.lower <= self.median <= self.upper:
            raise InvalidParameterError(
                f"percentile levels must be ordered, got {self.lower}/{self.median}/{self.upper}"
            )

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.lower, self.median, self.upper)


@dataclass(frozen=True)
class ParallelConfig:
    """When and how simulation trials are spread over worker processes."""
    threshold: int = DEFAULT_PARALLEL_THRESHOLD
    chunk_size: int = DEFAULT_CHUNK_SIZE
    n_workers: Optional[int] = None     # None = all CPUs but one

    def __post_init__(self):
        _check_count('threshold', self.threshold)
        _check_count('chunk_size', self.chunk_size)
        if self.n_workers is not None:
            _check_count('n_workers', self.n_workers)

    @property
    def workers(self) -> int:
        """Resolved worker count."""
        if self.n_workers is not None:
            return self.n_workers
        return max(1, multiprocessing.cpu_count() - 1)

    @classmethod
    def serial(cls) -> 'ParallelConfig':
        """Never use worker processes."""
        return cls(n_workers=1)


@dataclass(frozen=True)
class SimulationConfig:
    """
    Parameters for a Monte Carlo projection or a bootstrap resample run.

    The engine mandates no defaults for the sizes: Monte Carlo needs
    path_length and starting_capital, bootstrap falls back to the history
    length when sample_size is unset.
    """
    num_trials: int
    path_length: Optional[int] = None           # Trades per Monte Carlo path
    sample_size: Optional[int] = None           # Draws per bootstrap resample
    starting_capital: Optional[float] = None    # Monte Carlo only
    seed: Optional[int] = None
    percentiles: PercentileLevels = field(default_factory=PercentileLevels)
    histogram_bins: int = DEFAULT_HISTOGRAM_BINS
    parallel: ParallelConfig = field(default_factory=ParallelConfig)

    def __post_init__(self):
        """Validate parameters."""
        _check_count('num_trials', self.num_trials)
        if self.path_length is not None:
            _check_count('path_length', self.path_length)
        if self.sample_size is not None:
            _check_count('sample_size', self.sample_size)
        if self.starting_capital is not None and not math.isfinite(self.starting_capital):
            raise InvalidParameterError("starting_capital must be finite")
        _check_count('histogram_bins', self.histogram_bins)

    @classmethod
    def monte_carlo(cls, num_trials: int, path_length: int, starting_capital: float,
                    seed: Optional[int] = None, **kwargs) -> 'SimulationConfig':
        """Config for an equity projection."""
        return cls(
            num_trials=num_trials,
            path_length=path_length,
            starting_capital=starting_capital,
            seed=seed,
            **kwargs
        )

    @classmethod
    def bootstrap(cls, num_trials: int, sample_size: Optional[int] = None,
                  seed: Optional[int] = None, **kwargs) -> 'SimulationConfig':
        """Config for a bootstrap resample run."""
        return cls(
            num_trials=num_trials,
            sample_size=sample_size,
            seed=seed,
            **kwargs
        )
