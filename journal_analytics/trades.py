"""
Trade Data Model

Closed-trade records and the equity curve built from them. Trades arrive
from the journal already closed; nothing in the engine mutates them.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

import numpy as np

from .errors import InsufficientHistoryError, InvalidParameterError


@dataclass(frozen=True)
class TradeOutcome:
    """
    One closed trade used as raw statistical input.

    All monetary values are in account currency.
    """
    pnl: float                                  # Signed realized P/L
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None
    risk_percentage: Optional[float] = None     # % of capital risked
    r_multiple: Optional[float] = None          # Realized reward-to-risk
    instrument: Optional[str] = None

    @property
    def is_win(self) -> bool:
        return self.pnl > 0

    @property
    def duration_ms(self) -> Optional[float]:
        """Holding time in milliseconds, None when a timestamp is missing."""
        if self.entry_time is None or self.exit_time is None:
            return None
        return (self.exit_time - self.entry_time).total_seconds() * 1000.0


@dataclass(frozen=True)
class EquityPoint:
    """Account equity after the trade at `index` closed (index 0 = start)."""
    index: int
    timestamp: datetime
    equity: float


def chronological(trades: Iterable[TradeOutcome]) -> List[TradeOutcome]:
    """
    Order trades by exit time.

    The sort is stable, so trades closing at the same instant keep their
    input order. If any trade lacks an exit time the input order is kept.
    """
    trades = list(trades)
    if all(t.exit_time is not None for t in trades):
        return sorted(trades, key=lambda t: t.exit_time)
    return trades


def pnl_array(trades: Sequence[TradeOutcome]) -> np.ndarray:
    """P/L values as a float64 array, in input order."""
    return np.array([t.pnl for t in trades], dtype=np.float64)


def build_equity_curve(
    trades: Sequence[TradeOutcome],
    starting_capital: float = 0.0
) -> List[EquityPoint]:
    """
    Build the equity curve for a series of trades.

    Point 0 is synthetic: it holds the starting capital and is stamped with
    the first trade's entry time (its exit time when entry is unknown). Each
    following point adds one trade's P/L in chronological order.

    Args:
        trades: Closed trades; every trade needs an exit_time
        starting_capital: Equity before the first trade. Pass the account's
            initial balance for an account-seeded curve, 0 for cumulative P/L

    Returns:
        List of EquityPoint, one more than the number of trades
    """
    if len(trades) == 0:
        raise InsufficientHistoryError(1, 0)
    missing = sum(1 for t in trades if t.exit_time is None)
    if missing:
        raise InvalidParameterError(
            f"{missing} trade(s) have no exit_time; an equity curve needs one per trade"
        )

    ordered = chronological(trades)
    first = ordered[0]
    start_time = first.entry_time if first.entry_time is not None else first.exit_time

    equity = float(starting_capital)
    curve = [EquityPoint(index=0, timestamp=start_time, equity=equity)]
    for i, trade in enumerate(ordered, start=1):
        equity += trade.pnl
        curve.append(EquityPoint(index=i, timestamp=trade.exit_time, equity=equity))

    return curve


def reconstruct_starting_balance(
    current_balance: float,
    period_trades: Sequence[TradeOutcome],
    later_trades: Sequence[TradeOutcome] = ()
) -> float:
    """
    Account balance at the start of a reporting period.

    Walks back from the current balance: P/L booked after the period is
    removed first, then the period's own P/L.

    Args:
        current_balance: Balance today
        period_trades: Trades closed inside the period
        later_trades: Trades closed after the period ended

    Returns:
        Balance before the first trade of the period
    """
    end_balance = current_balance - sum(t.pnl for t in later_trades)
    return end_balance - sum(t.pnl for t in period_trades)
