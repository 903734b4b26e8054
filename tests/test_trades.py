"""
Tests for the trade model, equity curve and CSV loader.
"""

import math
import random
from datetime import datetime, timedelta

import pytest

from journal_analytics.errors import InsufficientHistoryError, InvalidParameterError
from journal_analytics.trade_loader import (
    has_complete_timestamps,
    load_trades_csv,
    validate_trades,
)
from journal_analytics.trades import (
    TradeOutcome,
    build_equity_curve,
    chronological,
    reconstruct_starting_balance,
)


class TestTradeOutcome:
    """Test per-trade properties."""

    def test_duration(self):
        t = TradeOutcome(
            pnl=10.0,
            entry_time=datetime(2024, 1, 2, 9, 30),
            exit_time=datetime(2024, 1, 2, 9, 45)
        )
        assert t.duration_ms == 15 * 60 * 1000
        assert t.is_win

    def test_duration_without_timestamps(self):
        assert TradeOutcome(pnl=-5.0).duration_ms is None
        assert not TradeOutcome(pnl=0.0).is_win

    def test_immutable(self):
        t = TradeOutcome(pnl=10.0)
        with pytest.raises(AttributeError):
            t.pnl = 20.0


class TestEquityCurve:
    """Test equity curve construction."""

    def test_curve_from_capital(self, make_trades):
        """One point per trade plus the synthetic starting point."""
        trades = make_trades([100, -200, 50])
        points = build_equity_curve(trades, starting_capital=1000.0)

        assert [p.equity for p in points] == [1000.0, 1100.0, 900.0, 950.0]
        assert [p.index for p in points] == [0, 1, 2, 3]
        assert points[0].timestamp == trades[0].entry_time
        assert points[-1].timestamp == trades[-1].exit_time

    def test_cumulative_pnl_curve(self, make_trades):
        points = build_equity_curve(make_trades([10, 20]))
        assert [p.equity for p in points] == [0.0, 10.0, 30.0]

    def test_sorted_by_exit_time(self, make_trades):
        """Listing order does not change the curve."""
        trades = make_trades([5, -3, 8, 1, -7])
        shuffled = list(trades)
        random.Random(11).shuffle(shuffled)

        assert build_equity_curve(shuffled, 100.0) == build_equity_curve(trades, 100.0)

    def test_equal_exit_times_keep_input_order(self):
        when = datetime(2024, 5, 1, 12, 0)
        trades = [TradeOutcome(pnl=float(p), exit_time=when) for p in (3, 1, 2)]
        assert [t.pnl for t in chronological(trades)] == [3.0, 1.0, 2.0]

    def test_start_uses_exit_when_entry_missing(self):
        when = datetime(2024, 5, 1, 12, 0)
        points = build_equity_curve([TradeOutcome(pnl=1.0, exit_time=when)])
        assert points[0].timestamp == when

    def test_empty_raises(self):
        with pytest.raises(InsufficientHistoryError):
            build_equity_curve([])

    def test_missing_exit_time_raises(self):
        with pytest.raises(InvalidParameterError):
            build_equity_curve([TradeOutcome(pnl=1.0)])


class TestStartingBalance:
    """Test report start-balance reconstruction."""

    def test_walks_back_from_current_balance(self, make_trades):
        period = make_trades([500, -200])
        later = make_trades([300])
        assert reconstruct_starting_balance(12_000.0, period, later) == 11_400.0

    def test_no_later_trades(self, make_trades):
        assert reconstruct_starting_balance(1_000.0, make_trades([100])) == 900.0


class TestLoader:
    """Test CSV loading."""

    def test_load_full_csv(self, tmp_path):
        path = tmp_path / "trades.csv"
        path.write_text(
            "entry_time,exit_time,pnl,risk_percentage,r_multiple,instrument\n"
            "2024-01-02 09:30,2024-01-02 10:05,45.50,1.0,1.5,EUR/USD\n"
            "2024-01-02 11:00,2024-01-02 11:40,-30.00,,-1.0,\n"
        )
        trades = load_trades_csv(str(path))

        assert len(trades) == 2
        assert trades[0].pnl == 45.5
        assert trades[0].entry_time == datetime(2024, 1, 2, 9, 30)
        assert trades[0].duration_ms == 35 * 60 * 1000
        assert trades[0].risk_percentage == 1.0
        assert trades[0].instrument == 'EUR/USD'
        assert trades[1].risk_percentage is None
        assert trades[1].r_multiple == -1.0
        assert trades[1].instrument is None

    def test_only_pnl_column(self, tmp_path):
        """Optional columns absent from the file are skipped."""
        path = tmp_path / "pnl.csv"
        path.write_text("pnl\n10\n-5\n")
        trades = load_trades_csv(str(path))

        assert [t.pnl for t in trades] == [10.0, -5.0]
        assert trades[0].exit_time is None
        assert not has_complete_timestamps(trades)

    def test_custom_column_names(self, tmp_path):
        path = tmp_path / "custom.csv"
        path.write_text("closed,profit\n2024-02-01 15:00,12.5\n")
        trades = load_trades_csv(str(path), pnl_column='profit', exit_column='closed')

        assert trades[0].pnl == 12.5
        assert trades[0].exit_time == datetime(2024, 2, 1, 15, 0)
        assert has_complete_timestamps(trades)

    def test_missing_pnl_column_raises(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("profit\n1\n")
        with pytest.raises(ValueError, match="P/L column"):
            load_trades_csv(str(path))


class TestValidation:
    """Test trade data validation."""

    def test_clean_history(self, alternating_trades):
        result = validate_trades(alternating_trades)

        assert result['valid']
        assert result['issues'] == []
        assert result['trade_count'] == 20

    def test_nan_pnl_is_an_issue(self, make_trades):
        trades = make_trades([10, -5] * 5) + [TradeOutcome(pnl=math.nan)]
        result = validate_trades(trades)

        assert not result['valid']
        assert any('NaN' in issue for issue in result['issues'])

    def test_exit_before_entry_is_an_issue(self):
        entry = datetime(2024, 1, 2, 10, 0)
        trades = [TradeOutcome(pnl=1.0, entry_time=entry, exit_time=entry - timedelta(minutes=5))]
        result = validate_trades(trades)

        assert not result['valid']

    def test_small_sample_warns(self, make_trades):
        result = validate_trades(make_trades([10, -5, 7]))

        assert result['valid']
        assert any('at least 10' in w for w in result['warnings'])
