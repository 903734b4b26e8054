"""
Performance Metrics

Descriptive statistics over a journal's closed trades: win rate, profit
factor, expectancy, dispersion and the zero-seeded max drawdown shown on the
dashboard.

Ratios with a zero denominator follow one rule everywhere: a positive
numerator gives float('inf'), a zero numerator gives 0.0. The infinity is
kept as-is; only the serialization layer replaces it.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from scipy import stats

from .config import (
    SCORE_AVG_RR_THRESHOLDS,
    SCORE_PROFIT_FACTOR_THRESHOLDS,
    SCORE_RANKS,
    SCORE_WEIGHTS,
    SCORE_WIN_RATE_THRESHOLDS,
)
from .trades import TradeOutcome, chronological, pnl_array


def _fmt_ratio(value: float) -> str:
    return '∞' if math.isinf(value) else f"{value:.2f}"


@dataclass(frozen=True)
class PerformanceMetrics:
    """
    Summary statistics for a series of trades.

    Percentages are 0-100. avg_loss and gross_loss are positive magnitudes.
    sharpe_like is the per-trade mean divided by the per-trade sample standard
    deviation; it is not annualized and not comparable to a return-based
    Sharpe ratio.
    """
    total_trades: int
    net_pnl: float
    avg_pnl_per_trade: float
    median_pnl: float
    win_rate: float
    loss_rate: float
    gross_profit: float
    gross_loss: float
    avg_win: float
    avg_loss: float
    profit_factor: float                # may be inf
    expectancy: float
    avg_rr: float                       # avg_win / avg_loss, may be inf
    avg_r_multiple: Optional[float]     # None when no trade records an R-multiple
    std_deviation: float
    sharpe_like: float
    skewness: float
    max_drawdown_currency: float        # Peak-to-trough of cumulative P/L seeded at 0
    max_consecutive_wins: int
    max_consecutive_losses: int
    avg_hold_time_ms: float
    avg_win_hold_time_ms: float
    avg_loss_hold_time_ms: float       # Losing side includes breakeven, as for avg_loss
    longest_trade_ms: float
    shortest_trade_ms: float
    avg_risk_percent: float
    max_risk_percent: float
    total_risk_percent: float

    @property
    def has_infinite_profit_factor(self) -> bool:
        return math.isinf(self.profit_factor)

    def summary(self) -> str:
        """Return a summary string of key statistics."""
        avg_r = f"{self.avg_r_multiple:.2f}R" if self.avg_r_multiple is not None else 'n/a'
        return (
            f"Performance Metrics:\n"
            f"  Total Trades:    {self.total_trades:,}\n"
            f"  Net P/L:         ${self.net_pnl:,.2f}\n"
            f"  Win Rate:        {self.win_rate:.1f}%\n"
            f"  Avg Win:         ${self.avg_win:.2f}\n"
            f"  Avg Loss:        ${self.avg_loss:.2f}\n"
            f"  Profit Factor:   {_fmt_ratio(self.profit_factor)}\n"
            f"  Avg Win/Loss:    {_fmt_ratio(self.avg_rr)}\n"
            f"  Avg R-Multiple:  {avg_r}\n"
            f"  Expectancy:      ${self.expectancy:.2f}\n"
            f"\n"
            f"  Std Dev (P/L):   ${self.std_deviation:.2f}\n"
            f"  Sharpe (trade):  {self.sharpe_like:.2f}\n"
            f"  Skewness:        {self.skewness:.2f}\n"
            f"  Max Drawdown:    ${self.max_drawdown_currency:,.2f}\n"
            f"  Win Streak:      {self.max_consecutive_wins}\n"
            f"  Loss Streak:     {self.max_consecutive_losses}"
        )


@dataclass(frozen=True)
class PerformanceScore:
    """Composite 0-100 score built from win rate, profit factor and R:R."""
    score: int
    rank: str
    win_rate_score: float
    profit_factor_score: float
    avg_rr_score: float


def ratio_or_infinity(numerator: float, denominator: float) -> float:
    """numerator / denominator, with inf for x/0 (x > 0) and 0 for 0/0."""
    if denominator > 0:
        return numerator / denominator
    if numerator > 0:
        return float('inf')
    return 0.0


def win_rate(pnls: Sequence[float]) -> float:
    """Percentage of strictly positive P/L values; 0 for no trades."""
    pnls = np.asarray(pnls, dtype=np.float64)
    if pnls.size == 0:
        return 0.0
    return float((pnls > 0).sum() / pnls.size * 100.0)


def profit_factor(pnls: Sequence[float]) -> float:
    """Gross profit over gross loss (magnitude), with the infinity rule."""
    pnls = np.asarray(pnls, dtype=np.float64)
    gains = float(pnls[pnls > 0].sum())
    losses = float(-pnls[pnls <= 0].sum())
    return ratio_or_infinity(gains, losses)


def max_drawdown_from_zero(pnls: Sequence[float]) -> float:
    """
    Largest drop of cumulative P/L below its running peak.

    The peak starts at 0, not at an account balance, so an opening losing
    run counts as drawdown. This is the dashboard figure; the
    account-seeded episodes live in drawdown.py.
    """
    pnls = np.asarray(pnls, dtype=np.float64)
    if pnls.size == 0:
        return 0.0
    cumulative = np.concatenate(([0.0], np.cumsum(pnls)))
    running_peak = np.maximum.accumulate(cumulative)
    return float((running_peak - cumulative).max())


def _streaks(pnls: np.ndarray):
    """Longest win and loss streaks. Breakeven trades leave both counters alone."""
    max_wins = max_losses = 0
    current_wins = current_losses = 0
    for pnl in pnls:
        if pnl > 0:
            current_wins += 1
            current_losses = 0
        elif pnl < 0:
            current_losses += 1
            current_wins = 0
        max_wins = max(max_wins, current_wins)
        max_losses = max(max_losses, current_losses)
    return max_wins, max_losses


def _hold_times(trades) -> List[float]:
    """Positive holding times in ms; trades missing a timestamp are skipped."""
    return [d for d in (t.duration_ms for t in trades) if d is not None and d > 0]


def _empty_metrics() -> PerformanceMetrics:
    return PerformanceMetrics(
        total_trades=0, net_pnl=0.0, avg_pnl_per_trade=0.0, median_pnl=0.0,
        win_rate=0.0, loss_rate=0.0, gross_profit=0.0, gross_loss=0.0,
        avg_win=0.0, avg_loss=0.0, profit_factor=0.0, expectancy=0.0,
        avg_rr=0.0, avg_r_multiple=None, std_deviation=0.0, sharpe_like=0.0,
        skewness=0.0, max_drawdown_currency=0.0, max_consecutive_wins=0,
        max_consecutive_losses=0, avg_hold_time_ms=0.0, avg_win_hold_time_ms=0.0,
        avg_loss_hold_time_ms=0.0, longest_trade_ms=0.0,
        shortest_trade_ms=0.0, avg_risk_percent=0.0, max_risk_percent=0.0,
        total_risk_percent=0.0
    )


def compute_metrics(trades: Sequence[TradeOutcome]) -> PerformanceMetrics:
    """
    Compute performance statistics from closed trades.

    Trades are put in exit-time order first, so the order-dependent figures
    (drawdown, streaks) do not depend on how the caller listed them.

    Args:
        trades: Closed trades; an empty sequence gives all-zero metrics

    Returns:
        PerformanceMetrics
    """
    if len(trades) == 0:
        return _empty_metrics()

    ordered = chronological(trades)
    pnls = pnl_array(ordered)
    n = int(pnls.size)

    wins = pnls[pnls > 0]
    losses = pnls[pnls <= 0]

    gross_profit = float(wins.sum())
    gross_loss = float(-losses.sum())
    avg_win = gross_profit / len(wins) if len(wins) > 0 else 0.0
    avg_loss = gross_loss / len(losses) if len(losses) > 0 else 0.0

    win_pct = len(wins) / n * 100.0
    loss_pct = 100.0 - win_pct
    expectancy = win_pct / 100.0 * avg_win - loss_pct / 100.0 * avg_loss

    mean_pnl = float(pnls.mean())
    std = float(np.std(pnls, ddof=1)) if n > 1 else 0.0
    sharpe = mean_pnl / std if std > 0.0 else 0.0
    # skew is undefined for constant samples
    skewness = float(stats.skew(pnls)) if n > 2 and std > 0.0 else 0.0

    r_multiples = [t.r_multiple for t in ordered if t.r_multiple is not None]
    avg_r = float(np.mean(r_multiples)) if r_multiples else None

    max_wins, max_losses = _streaks(pnls)

    durations = _hold_times(ordered)
    win_durations = _hold_times(t for t in ordered if t.pnl > 0)
    loss_durations = _hold_times(t for t in ordered if t.pnl <= 0)
    risks = [t.risk_percentage for t in ordered if t.risk_percentage is not None and t.risk_percentage > 0]

    return PerformanceMetrics(
        total_trades=n,
        net_pnl=float(pnls.sum()),
        avg_pnl_per_trade=mean_pnl,
        median_pnl=float(np.median(pnls)),
        win_rate=win_pct,
        loss_rate=loss_pct,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        avg_win=avg_win,
        avg_loss=avg_loss,
        profit_factor=ratio_or_infinity(gross_profit, gross_loss),
        expectancy=expectancy,
        avg_rr=ratio_or_infinity(avg_win, avg_loss),
        avg_r_multiple=avg_r,
        std_deviation=std,
        sharpe_like=sharpe,
        skewness=skewness,
        max_drawdown_currency=max_drawdown_from_zero(pnls),
        max_consecutive_wins=max_wins,
        max_consecutive_losses=max_losses,
        avg_hold_time_ms=float(np.mean(durations)) if durations else 0.0,
        avg_win_hold_time_ms=float(np.mean(win_durations)) if win_durations else 0.0,
        avg_loss_hold_time_ms=float(np.mean(loss_durations)) if loss_durations else 0.0,
        longest_trade_ms=float(max(durations)) if durations else 0.0,
        shortest_trade_ms=float(min(durations)) if durations else 0.0,
        avg_risk_percent=float(np.mean(risks)) if risks else 0.0,
        max_risk_percent=float(max(risks)) if risks else 0.0,
        total_risk_percent=float(sum(risks))
    )


def _normalize(value: float, good: float, excellent: float) -> float:
    """Map a metric onto 0-100: below `good` scales to 0-50, up to `excellent` to 50-100."""
    if math.isinf(value):
        return 100.0
    mid = 50.0
    if value < good:
        return max(0.0, value / good * mid)
    top = min(1.0, max(0.0, (value - good) / (excellent - good)))
    return mid + top * mid


def performance_score(win_rate: float, profit_factor: float, avg_rr: float) -> PerformanceScore:
    """
    Composite score of a strategy's headline figures.

    Args:
        win_rate: Win rate in percent
        profit_factor: Profit factor (inf allowed)
        avg_rr: Average win / average loss (inf allowed)

    Returns:
        PerformanceScore with the rounded score and its rank
    """
    wr_score = _normalize(win_rate, *SCORE_WIN_RATE_THRESHOLDS)
    pf_score = _normalize(profit_factor, *SCORE_PROFIT_FACTOR_THRESHOLDS)
    rr_score = _normalize(avg_rr, *SCORE_AVG_RR_THRESHOLDS)

    w_wr, w_pf, w_rr = SCORE_WEIGHTS
    # half-up rounding, so 84.5 ranks as 85
    score = int(math.floor(wr_score * w_wr + pf_score * w_pf + rr_score * w_rr + 0.5))

    rank = SCORE_RANKS[-1][1]
    for min_score, name in SCORE_RANKS:
        if score >= min_score:
            rank = name
            break

    return PerformanceScore(
        score=score,
        rank=rank,
        win_rate_score=wr_score,
        profit_factor_score=pf_score,
        avg_rr_score=rr_score
    )
