"""
Monte Carlo Equity Projection

Projects future equity by resampling historical per-trade P/L with
replacement. Each trial is one synthetic path of fixed length starting from
the same capital; the trials are then reduced into per-step percentile
bands and terminal-equity statistics.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np

from .config import MIN_SIMULATION_HISTORY, PercentileLevels, SimulationConfig
from .distribution import percentile, percentile_bands, percentiles
from .errors import InsufficientHistoryError, InvalidParameterError
from .parallel import (
    CancellationToken,
    ProgressCallback,
    TrialChunk,
    base_seed_sequence,
    plan_chunks,
    run_chunks,
)
from .trades import TradeOutcome, pnl_array

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PercentileBand:
    """Cross-trial equity percentiles after `step_index` trades (5/50/95 by default)."""
    step_index: int
    lower: float
    median: float
    upper: float


@dataclass(frozen=True)
class MonteCarloResult:
    """Projection bands and terminal statistics across all trials."""
    num_trials: int
    path_length: int
    starting_capital: float
    levels: PercentileLevels
    bands: Tuple[PercentileBand, ...]       # step 0 (starting capital) .. path_length
    median_final_equity: float
    mean_final_equity: float
    probability_of_profit: float            # % of trials ending above starting capital
    best_case: float                        # upper percentile of final equity
    worst_case: float                       # lower percentile of final equity
    median_max_drawdown: float              # Median of per-path peak-to-trough drop
    final_equities: np.ndarray = field(repr=False, compare=False)
    max_drawdowns: np.ndarray = field(repr=False, compare=False)

    def summary(self) -> str:
        """Return summary string."""
        return (
            f"Monte Carlo Projection ({self.num_trials:,} trials x {self.path_length:,} trades):\n"
            f"  Starting Capital:  ${self.starting_capital:,.2f}\n"
            f"  Median Final:      ${self.median_final_equity:,.2f}\n"
            f"  Mean Final:        ${self.mean_final_equity:,.2f}\n"
            f"  Best Case (p{self.levels.upper:g}):  ${self.best_case:,.2f}\n"
            f"  Worst Case (p{self.levels.lower:g}):  ${self.worst_case:,.2f}\n"
            f"  P(Profit):         {self.probability_of_profit:.1f}%\n"
            f"  Median Max DD:     ${self.median_max_drawdown:,.2f}"
        )


def _simulate_chunk(payload: Tuple[np.ndarray, int, float], chunk: TrialChunk) -> np.ndarray:
    """
    Equity paths for one chunk of trials.

    Returns:
        Array of shape (chunk.n_trials, path_length + 1); column 0 is the
        starting capital
    """
    pnls, path_length, starting_capital = payload
    rng = chunk.rng()

    indices = rng.integers(0, len(pnls), size=(chunk.n_trials, path_length))
    equity = starting_capital + np.cumsum(pnls[indices], axis=1)

    start = np.full((chunk.n_trials, 1), starting_capital, dtype=np.float64)
    return np.hstack([start, equity])


def project_equity(
    history: Sequence[TradeOutcome],
    config: SimulationConfig,
    rng: Optional[np.random.Generator] = None,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancellationToken] = None
) -> MonteCarloResult:
    """
    Run a Monte Carlo projection of future equity.

    Every trial starts at config.starting_capital and adds config.path_length
    P/L values drawn uniformly with replacement from the history.

    Args:
        history: Historical trades (at least MIN_SIMULATION_HISTORY)
        config: num_trials, path_length and starting_capital are required
        rng: Random source; overrides config.seed when given
        progress: Called with (completed_trials, total_trials)
        cancel: Cooperative cancellation token

    Returns:
        MonteCarloResult
    """
    if len(history) < MIN_SIMULATION_HISTORY:
        raise InsufficientHistoryError(MIN_SIMULATION_HISTORY, len(history))
    if config.path_length is None:
        raise InvalidParameterError("path_length is required for a Monte Carlo projection")
    if config.starting_capital is None:
        raise InvalidParameterError("starting_capital is required for a Monte Carlo projection")

    # Sorted pool: a fixed seed draws the same values whatever the input order
    pnls = np.sort(pnl_array(history))
    capital = float(config.starting_capital)
    levels = config.percentiles

    logger.info(
        "Starting Monte Carlo: %d trials, %d trades per path, capital=%.2f",
        config.num_trials, config.path_length, capital
    )

    chunks = plan_chunks(
        config.num_trials,
        config.parallel.chunk_size,
        base_seed_sequence(config.seed, rng)
    )
    parts = run_chunks(
        _simulate_chunk,
        (pnls, config.path_length, capital),
        chunks,
        config.parallel,
        progress=progress,
        cancel=cancel
    )
    paths = np.vstack(parts)

    # Percentile band along the step axis
    band_matrix = percentile_bands(paths, levels.as_tuple())
    bands = tuple(
        PercentileBand(
            step_index=step,
            lower=float(band_matrix[0, step]),
            median=float(band_matrix[1, step]),
            upper=float(band_matrix[2, step])
        )
        for step in range(paths.shape[1])
    )

    # Terminal distribution
    final_equities = paths[:, -1]
    final_pct = percentiles(final_equities, levels.as_tuple())

    # Per-path maximum drawdown
    running_peak = np.maximum.accumulate(paths, axis=1)
    max_drawdowns = (running_peak - paths).max(axis=1)

    result = MonteCarloResult(
        num_trials=config.num_trials,
        path_length=config.path_length,
        starting_capital=capital,
        levels=levels,
        bands=bands,
        median_final_equity=final_pct[levels.median],
        mean_final_equity=float(final_equities.mean()),
        probability_of_profit=float((final_equities > capital).mean() * 100.0),
        best_case=final_pct[levels.upper],
        worst_case=final_pct[levels.lower],
        median_max_drawdown=percentile(max_drawdowns, 50),
        final_equities=final_equities,
        max_drawdowns=max_drawdowns
    )

    logger.info("Monte Carlo complete: median final equity %.2f", result.median_final_equity)
    return result
