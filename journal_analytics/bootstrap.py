"""
Bootstrap Resampling

Tests how robust a strategy's statistics are by resampling its trades with
replacement: each resample gets its own win rate, profit factor and net
P/L, and the spread of those values gives confidence intervals to set next
to the figures actually observed.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np

from .config import MIN_SIMULATION_HISTORY, PercentileLevels, SimulationConfig
from .distribution import HistogramBin, build_histogram, percentiles
from .errors import InsufficientHistoryError
from .metrics import profit_factor, win_rate
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

Interval = Tuple[float, float]


def _fmt_ratio(value: float) -> str:
    return '∞' if math.isinf(value) else f"{value:.2f}"


@dataclass(frozen=True)
class BootstrapResult:
    """
    Confidence intervals of resampled strategy statistics.

    Intervals are (lower, upper) at the configured percentile levels, 5/95
    by default. Resamples without a losing trade have an infinite profit
    factor; they are counted in infinite_profit_factor_count and left out of
    profit_factor_ci, which is None when no resample had a finite value.
    """
    num_trials: int
    sample_size: int
    levels: PercentileLevels
    original_win_rate: float
    original_profit_factor: float           # may be inf
    win_rate_ci: Interval
    profit_factor_ci: Optional[Interval]
    net_pnl_ci: Interval
    mean_win_rate: float
    mean_net_pnl: float
    infinite_profit_factor_count: int
    histogram: Tuple[HistogramBin, ...]     # Net P/L distribution
    win_rates: np.ndarray = field(repr=False, compare=False)
    profit_factors: np.ndarray = field(repr=False, compare=False)
    net_pnls: np.ndarray = field(repr=False, compare=False)

    def summary(self) -> str:
        """Return summary string."""
        if self.profit_factor_ci is None:
            pf_ci = 'n/a'
        else:
            pf_ci = f"{self.profit_factor_ci[0]:.2f} - {self.profit_factor_ci[1]:.2f}"
        return (
            f"Bootstrap Results ({self.num_trials:,} resamples of {self.sample_size:,} trades):\n"
            f"  Original Win Rate:     {self.original_win_rate:.1f}%\n"
            f"  Win Rate CI:           {self.win_rate_ci[0]:.1f}% - {self.win_rate_ci[1]:.1f}%\n"
            f"  Mean Win Rate:         {self.mean_win_rate:.1f}%\n"
            f"\n"
            f"  Original Profit Factor: {_fmt_ratio(self.original_profit_factor)}\n"
            f"  Profit Factor CI:      {pf_ci}\n"
            f"  Infinite PF Resamples: {self.infinite_profit_factor_count:,}\n"
            f"\n"
            f"  Net P/L CI:            ${self.net_pnl_ci[0]:,.2f} - ${self.net_pnl_ci[1]:,.2f}\n"
            f"  Mean Net P/L:          ${self.mean_net_pnl:,.2f}"
        )


def resample_statistics(samples: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Win rate, profit factor and net P/L of every row of a resample matrix.

    Losing trades are pnl <= 0, as in metrics.profit_factor. Profit factor
    is inf for rows with gains but no losses and 0 for rows with neither.

    Args:
        samples: Array of shape (n_resamples, sample_size)

    Returns:
        (win_rates, profit_factors, net_pnls), each of shape (n_resamples,)
    """
    is_win = samples > 0
    win_rates = is_win.mean(axis=1) * 100.0

    gains = np.where(is_win, samples, 0.0).sum(axis=1)
    losses = -np.where(is_win, 0.0, samples).sum(axis=1)

    with np.errstate(divide='ignore', invalid='ignore'):
        factors = gains / losses
    factors = np.where(losses > 0, factors, np.where(gains > 0, np.inf, 0.0))

    return win_rates, factors, samples.sum(axis=1)


def _resample_chunk(payload: Tuple[np.ndarray, int], chunk: TrialChunk):
    """Statistics for one chunk of resamples."""
    pnls, sample_size = payload
    rng = chunk.rng()
    indices = rng.integers(0, len(pnls), size=(chunk.n_trials, sample_size))
    return resample_statistics(pnls[indices])


def bootstrap_statistics(
    history: Sequence[TradeOutcome],
    config: SimulationConfig,
    rng: Optional[np.random.Generator] = None,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancellationToken] = None
) -> BootstrapResult:
    """
    Nonparametric bootstrap of win rate, profit factor and net P/L.

    Args:
        history: Historical trades (at least MIN_SIMULATION_HISTORY)
        config: num_trials is required; sample_size defaults to len(history)
        rng: Random source; overrides config.seed when given
        progress: Called with (completed_trials, total_trials)
        cancel: Cooperative cancellation token

    Returns:
        BootstrapResult
    """
    if len(history) < MIN_SIMULATION_HISTORY:
        raise InsufficientHistoryError(MIN_SIMULATION_HISTORY, len(history))

    # Sorted pool: a fixed seed draws the same values whatever the input order
    pnls = np.sort(pnl_array(history))
    sample_size = config.sample_size if config.sample_size is not None else len(pnls)
    levels = config.percentiles
    ci_levels = (levels.lower, levels.upper)

    logger.info(
        "Starting bootstrap: %d resamples of %d trades (history=%d)",
        config.num_trials, sample_size, len(pnls)
    )

    chunks = plan_chunks(
        config.num_trials,
        config.parallel.chunk_size,
        base_seed_sequence(config.seed, rng)
    )
    parts = run_chunks(
        _resample_chunk,
        (pnls, sample_size),
        chunks,
        config.parallel,
        progress=progress,
        cancel=cancel
    )
    win_rates = np.concatenate([p[0] for p in parts])
    factors = np.concatenate([p[1] for p in parts])
    net_pnls = np.concatenate([p[2] for p in parts])

    finite = factors[np.isfinite(factors)]
    if finite.size > 0:
        pf = percentiles(finite, ci_levels)
        pf_ci = (pf[levels.lower], pf[levels.upper])
    else:
        pf_ci = None

    wr = percentiles(win_rates, ci_levels)
    net = percentiles(net_pnls, ci_levels)

    result = BootstrapResult(
        num_trials=config.num_trials,
        sample_size=sample_size,
        levels=levels,
        original_win_rate=win_rate(pnls),
        original_profit_factor=profit_factor(pnls),
        win_rate_ci=(wr[levels.lower], wr[levels.upper]),
        profit_factor_ci=pf_ci,
        net_pnl_ci=(net[levels.lower], net[levels.upper]),
        mean_win_rate=float(win_rates.mean()),
        mean_net_pnl=float(net_pnls.mean()),
        infinite_profit_factor_count=int(factors.size - finite.size),
        histogram=build_histogram(net_pnls, config.histogram_bins),
        win_rates=win_rates,
        profit_factors=factors,
        net_pnls=net_pnls
    )

    if result.infinite_profit_factor_count:
        logger.debug(
            "%d of %d resamples had no losing trade; excluded from the profit factor interval",
            result.infinite_profit_factor_count, config.num_trials
        )
    logger.info("Bootstrap complete")
    return result
