"""
Risk of Ruin

Closed-form probability of losing a given share of the account, from win
rate, payoff ratio and the fraction of capital risked per trade.

    edge         = p * payoff - (1 - p)
    capital_units = ruin_threshold% / risk_per_trade%
    ruin         = ((1 - edge) / (1 + edge)) ** capital_units * 100
"""

import math
from dataclasses import dataclass
from typing import Optional

from .config import MIN_RUIN_HISTORY, RUIN_RISK_LEVELS
from .errors import InsufficientHistoryError, InvalidParameterError
from .metrics import PerformanceMetrics


@dataclass(frozen=True)
class RiskOfRuinResult:
    """Probability of ruin and the edge it was derived from."""
    ruin_probability_percent: float
    edge: float                         # Expected value per unit risked, may be inf
    capital_units: float                # Losing trades in a row the threshold allows
    risk_level: str

    def summary(self) -> str:
        """Return summary string."""
        edge = '∞' if math.isinf(self.edge) else f"{self.edge:.3f}"
        return (
            f"Risk of Ruin:\n"
            f"  Probability:     {self.ruin_probability_percent:.2f}%\n"
            f"  Risk Level:      {self.risk_level}\n"
            f"  Edge:            {edge}\n"
            f"  Capital Units:   {self.capital_units:.1f}"
        )


def risk_level(ruin_probability_percent: float) -> str:
    """Qualitative label for a ruin probability (Very Low ... Very High)."""
    for upper_bound, label in RUIN_RISK_LEVELS:
        if ruin_probability_percent < upper_bound:
            return label
    return RUIN_RISK_LEVELS[-1][1]


def _validate(win_rate_fraction: float, payoff_ratio: float,
              risk_per_trade_percent: float, ruin_threshold_percent: float) -> None:
    values = {
        'win_rate_fraction': win_rate_fraction,
        'payoff_ratio': payoff_ratio,
        'risk_per_trade_percent': risk_per_trade_percent,
        'ruin_threshold_percent': ruin_threshold_percent,
    }
    for name, value in values.items():
        if value is None or math.isnan(value):
            raise InvalidParameterError(f"{name} must be a number, got {value!r}")

    if not 0.0 <= win_rate_fraction <= 1.0:
        raise InvalidParameterError(f"win_rate_fraction must be between 0 and 1, got {win_rate_fraction}")
    if payoff_ratio < 0:
        raise InvalidParameterError(f"payoff_ratio must not be negative, got {payoff_ratio}")
    if not (0 < risk_per_trade_percent < math.inf):
        raise InvalidParameterError(f"risk_per_trade_percent must be positive, got {risk_per_trade_percent}")
    if not (0 < ruin_threshold_percent < math.inf):
        raise InvalidParameterError(f"ruin_threshold_percent must be positive, got {ruin_threshold_percent}")


def estimate_risk_of_ruin(
    win_rate_fraction: float,
    payoff_ratio: float,
    risk_per_trade_percent: float,
    ruin_threshold_percent: float
) -> RiskOfRuinResult:
    """
    Estimate the probability of ruin.

    Args:
        win_rate_fraction: Probability of a winning trade, 0..1
        payoff_ratio: Average win / average loss, >= 0 (inf allowed)
        risk_per_trade_percent: Percent of capital risked per trade, > 0
        ruin_threshold_percent: Drawdown percent that counts as ruin, > 0

    Returns:
        RiskOfRuinResult
    """
    _validate(win_rate_fraction, payoff_ratio, risk_per_trade_percent, ruin_threshold_percent)

    capital_units = ruin_threshold_percent / risk_per_trade_percent

    if win_rate_fraction == 1.0:
        edge = payoff_ratio
        ruin = 0.0
    elif win_rate_fraction == 0.0:
        edge = -1.0
        ruin = 100.0
    else:
        edge = win_rate_fraction * payoff_ratio - (1.0 - win_rate_fraction)
        if edge <= 0:
            # Non-positive edge: ruin is certain over an unbounded number of trades
            ruin = 100.0
        elif edge >= 1:
            # (1 - edge) / (1 + edge) <= 0
            ruin = 0.0
        else:
            ruin = ((1.0 - edge) / (1.0 + edge)) ** capital_units * 100.0

    return RiskOfRuinResult(
        ruin_probability_percent=ruin,
        edge=edge,
        capital_units=capital_units,
        risk_level=risk_level(ruin)
    )


def estimate_from_metrics(
    metrics: PerformanceMetrics,
    risk_per_trade_percent: float,
    ruin_threshold_percent: float,
    min_trades: Optional[int] = None
) -> RiskOfRuinResult:
    """
    Risk of ruin using the journal's own win rate and average win/loss ratio.

    Args:
        metrics: Output of compute_metrics()
        risk_per_trade_percent: Percent of capital risked per trade
        ruin_threshold_percent: Drawdown percent that counts as ruin
        min_trades: Minimum trade count (defaults to MIN_RUIN_HISTORY)

    Returns:
        RiskOfRuinResult
    """
    required = MIN_RUIN_HISTORY if min_trades is None else min_trades
    if metrics.total_trades < required:
        raise InsufficientHistoryError(required, metrics.total_trades)

    return estimate_risk_of_ruin(
        win_rate_fraction=metrics.win_rate / 100.0,
        payoff_ratio=metrics.avg_rr,
        risk_per_trade_percent=risk_per_trade_percent,
        ruin_threshold_percent=ruin_threshold_percent
    )
