"""
Shared fixtures: small, hand-checkable trade histories.
"""

from datetime import datetime, timedelta

import pytest

from journal_analytics.trades import TradeOutcome


def _make_trades(pnls, start=datetime(2024, 1, 1, 9, 30), hold_minutes=30, spacing_hours=24,
                 instrument=None):
    """Trades closing one per `spacing_hours`, each held for `hold_minutes`."""
    trades = []
    for i, pnl in enumerate(pnls):
        entry = start + timedelta(hours=spacing_hours * i)
        trades.append(TradeOutcome(
            pnl=float(pnl),
            entry_time=entry,
            exit_time=entry + timedelta(minutes=hold_minutes),
            instrument=instrument
        ))
    return trades


@pytest.fixture
def make_trades():
    """Factory building timestamped trades from a list of P/L values."""
    return _make_trades


@pytest.fixture
def alternating_trades():
    """20 trades alternating +100 / -50: 50% win rate, profit factor 2."""
    return _make_trades([100, -50] * 10)
