"""
Drawdown / Time Underwater Analysis

Splits an equity curve into drawdown episodes (peak -> trough -> recovery)
and summarizes how long and how deep the account spent below its
high-water mark.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import MIN_EQUITY_POINTS
from .errors import InsufficientHistoryError, InvalidParameterError
from .trades import EquityPoint, TradeOutcome, build_equity_curve

logger = logging.getLogger(__name__)


def _ms_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() * 1000.0


def _fmt_duration(ms: float) -> str:
    """Compact duration like '3d 4h', '2h 15m', '45m' or '30s'."""
    if ms <= 0 or not np.isfinite(ms):
        return '0 days'
    total_seconds = int(ms // 1000)
    days = total_seconds // 86_400
    hours = (total_seconds % 86_400) // 3_600
    minutes = (total_seconds % 3_600) // 60
    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m"
    return f"{total_seconds}s"


@dataclass(frozen=True)
class DrawdownEpisode:
    """
    A contiguous stretch below the high-water mark.

    The episode starts at the last point that sat on the peak. It is open
    while end_index is None; open episodes still report their depth so far.
    """
    start_index: int
    start_time: datetime
    peak_equity: float
    trough_equity: float
    trough_index: int
    trough_time: datetime
    depth_currency: float               # peak - trough, >= 0
    depth_percent: float                # depth / peak * 100 (0 when peak <= 0)
    end_index: Optional[int] = None
    end_time: Optional[datetime] = None
    duration_ms: Optional[float] = None
    trades_to_recover: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.end_index is None


@dataclass(frozen=True)
class TimeUnderwaterStats:
    """Aggregates over closed episodes, plus the depth of any open one."""
    episode_count: int
    longest_duration_ms: float
    deepest_drawdown_currency: float
    deepest_drawdown_percent: float
    avg_drawdown_duration_ms: float
    avg_trades_to_recover: float
    percent_time_underwater: float
    total_timeline_ms: float
    current_drawdown_currency: float
    current_drawdown_percent: float

    def summary(self) -> str:
        """Return summary string."""
        return (
            f"Time Underwater ({self.episode_count} recovered drawdowns):\n"
            f"  Longest Drawdown:    {_fmt_duration(self.longest_duration_ms)}\n"
            f"  Avg Duration:        {_fmt_duration(self.avg_drawdown_duration_ms)}\n"
            f"  Deepest Drawdown:    ${self.deepest_drawdown_currency:,.2f} "
            f"({self.deepest_drawdown_percent:.2f}%)\n"
            f"  Avg Trades to Recover: {self.avg_trades_to_recover:.1f}\n"
            f"  Time Underwater:     {self.percent_time_underwater:.1f}%\n"
            f"  Current Drawdown:    ${self.current_drawdown_currency:,.2f} "
            f"({self.current_drawdown_percent:.2f}%)"
        )


@dataclass(frozen=True)
class DrawdownAnalysis:
    """Episodes in chronological order and their summary statistics."""
    episodes: Tuple[DrawdownEpisode, ...]
    stats: TimeUnderwaterStats

    @property
    def closed_episodes(self) -> List[DrawdownEpisode]:
        return [e for e in self.episodes if not e.is_open]

    @property
    def open_episode(self) -> Optional[DrawdownEpisode]:
        """The unrecovered episode at the end of the curve, if any."""
        if self.episodes and self.episodes[-1].is_open:
            return self.episodes[-1]
        return None


def _depth_percent(peak: float, depth: float) -> float:
    return depth / peak * 100.0 if peak > 0 else 0.0


def _validate_curve(equity_curve: Sequence[EquityPoint]) -> None:
    if len(equity_curve) < MIN_EQUITY_POINTS:
        raise InsufficientHistoryError(MIN_EQUITY_POINTS, len(equity_curve), what="equity points")
    for prev, point in zip(equity_curve, equity_curve[1:]):
        if point.index <= prev.index:
            raise InvalidParameterError(
                f"equity curve indexes must increase strictly ({prev.index} -> {point.index})"
            )
        if point.timestamp < prev.timestamp:
            raise InvalidParameterError(
                f"equity curve timestamps must not decrease (index {point.index})"
            )


def _close(episode: dict, point: EquityPoint) -> DrawdownEpisode:
    depth = episode['peak_equity'] - episode['trough_equity']
    return DrawdownEpisode(
        start_index=episode['start_index'],
        start_time=episode['start_time'],
        peak_equity=episode['peak_equity'],
        trough_equity=episode['trough_equity'],
        trough_index=episode['trough_index'],
        trough_time=episode['trough_time'],
        depth_currency=depth,
        depth_percent=_depth_percent(episode['peak_equity'], depth),
        end_index=point.index,
        end_time=point.timestamp,
        duration_ms=_ms_between(episode['start_time'], point.timestamp),
        trades_to_recover=point.index - episode['start_index']
    )


def _still_open(episode: dict) -> DrawdownEpisode:
    depth = episode['peak_equity'] - episode['trough_equity']
    return DrawdownEpisode(
        start_index=episode['start_index'],
        start_time=episode['start_time'],
        peak_equity=episode['peak_equity'],
        trough_equity=episode['trough_equity'],
        trough_index=episode['trough_index'],
        trough_time=episode['trough_time'],
        depth_currency=depth,
        depth_percent=_depth_percent(episode['peak_equity'], depth)
    )


def find_drawdown_episodes(equity_curve: Sequence[EquityPoint]) -> List[DrawdownEpisode]:
    """
    Segment an equity curve into drawdown episodes in one forward pass.

    An episode opens on the first point below the running peak, anchored at
    the previous point (which sat on the peak). The trough follows each new
    low. The episode closes on the first point whose equity is back at or
    above the peak, and the peak then moves to that point's equity.

    Args:
        equity_curve: Points with strictly increasing index

    Returns:
        Episodes in order; the last one may be open
    """
    _validate_curve(equity_curve)

    peak = equity_curve[0].equity
    episodes: List[DrawdownEpisode] = []
    current: Optional[dict] = None

    for prev, point in zip(equity_curve, equity_curve[1:]):
        if current is None:
            if point.equity < peak:
                current = {
                    'start_index': prev.index,
                    'start_time': prev.timestamp,
                    'peak_equity': peak,
                    'trough_equity': point.equity,
                    'trough_index': point.index,
                    'trough_time': point.timestamp,
                }
            else:
                peak = point.equity
        elif point.equity >= current['peak_equity']:
            episodes.append(_close(current, point))
            current = None
            peak = point.equity
        elif point.equity < current['trough_equity']:
            current['trough_equity'] = point.equity
            current['trough_index'] = point.index
            current['trough_time'] = point.timestamp

    if current is not None:
        episodes.append(_still_open(current))

    return episodes


def time_underwater_stats(
    episodes: Sequence[DrawdownEpisode],
    total_timeline_ms: float
) -> TimeUnderwaterStats:
    """
    Aggregate episode statistics.

    Duration, depth and recovery figures use closed episodes only; an open
    episode contributes the current drawdown.
    """
    closed = [e for e in episodes if not e.is_open]
    open_eps = [e for e in episodes if e.is_open]

    durations = np.array([e.duration_ms for e in closed], dtype=np.float64)
    underwater_ms = float(durations.sum()) if closed else 0.0

    return TimeUnderwaterStats(
        episode_count=len(closed),
        longest_duration_ms=float(durations.max()) if closed else 0.0,
        deepest_drawdown_currency=max((e.depth_currency for e in closed), default=0.0),
        deepest_drawdown_percent=max((e.depth_percent for e in closed), default=0.0),
        avg_drawdown_duration_ms=underwater_ms / len(closed) if closed else 0.0,
        avg_trades_to_recover=(
            float(np.mean([e.trades_to_recover for e in closed])) if closed else 0.0
        ),
        percent_time_underwater=(
            underwater_ms / total_timeline_ms * 100.0 if total_timeline_ms > 0 else 0.0
        ),
        total_timeline_ms=total_timeline_ms,
        current_drawdown_currency=open_eps[-1].depth_currency if open_eps else 0.0,
        current_drawdown_percent=open_eps[-1].depth_percent if open_eps else 0.0
    )


def analyze_drawdowns(equity_curve: Sequence[EquityPoint]) -> DrawdownAnalysis:
    """
    Drawdown episodes and time-underwater statistics for an equity curve.

    Args:
        equity_curve: At least two points, index strictly increasing and
            timestamps non-decreasing

    Returns:
        DrawdownAnalysis
    """
    episodes = find_drawdown_episodes(equity_curve)
    total_ms = _ms_between(equity_curve[0].timestamp, equity_curve[-1].timestamp)
    stats = time_underwater_stats(episodes, total_ms)

    logger.debug(
        "Drawdown analysis: %d points, %d closed episodes, open=%s",
        len(equity_curve), stats.episode_count, bool(episodes) and episodes[-1].is_open
    )

    return DrawdownAnalysis(episodes=tuple(episodes), stats=stats)


def analyze_trades(trades: Sequence[TradeOutcome], starting_capital: float) -> DrawdownAnalysis:
    """
    Account-seeded drawdown analysis straight from trades.

    Args:
        trades: Closed trades with exit times
        starting_capital: Account balance before the first trade

    Returns:
        DrawdownAnalysis of build_equity_curve(trades, starting_capital)
    """
    return analyze_drawdowns(build_equity_curve(trades, starting_capital))


def underwater_series(equity_curve: Sequence[EquityPoint]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Running high-water mark and distance below it at every point.

    Returns:
        (peaks, drawdowns) arrays aligned with the curve; drawdowns are >= 0
    """
    equity = np.array([p.equity for p in equity_curve], dtype=np.float64)
    if equity.size == 0:
        return equity, equity
    peaks = np.maximum.accumulate(equity)
    return peaks, peaks - equity
