"""
Tests for drawdown episode detection and time-underwater statistics.
"""

from datetime import datetime, timedelta

import numpy as np
import pytest

from journal_analytics.drawdown import (
    analyze_drawdowns,
    analyze_trades,
    find_drawdown_episodes,
    underwater_series,
)
from journal_analytics.errors import InsufficientHistoryError, InvalidParameterError
from journal_analytics.trades import EquityPoint

DAY_MS = 24 * 60 * 60 * 1000
START = datetime(2024, 3, 1)


def curve(equities, step=timedelta(days=1)):
    """Equity curve with one point per day."""
    return [
        EquityPoint(index=i, timestamp=START + step * i, equity=float(e))
        for i, e in enumerate(equities)
    ]


class TestEpisodeDetection:
    """Test the single-pass episode segmentation."""

    def test_monotonic_curve_has_no_episodes(self):
        """Never below the high-water mark: nothing to report."""
        assert find_drawdown_episodes(curve([100, 110, 110, 125, 140])) == []

    def test_single_recovered_episode(self):
        """
        [1000, 1100, 900, 950, 1100, 1200]

        Peak 1100 at index 1, trough 900 at index 2, back to 1100 at index 4.
        """
        episodes = find_drawdown_episodes(curve([1000, 1100, 900, 950, 1100, 1200]))

        assert len(episodes) == 1
        e = episodes[0]
        assert not e.is_open
        assert e.start_index == 1
        assert e.peak_equity == 1100.0
        assert e.trough_index == 2
        assert e.trough_equity == 900.0
        assert e.end_index == 4
        assert e.depth_currency == 200.0
        assert e.depth_percent == pytest.approx(18.1818, abs=1e-4)
        assert e.trades_to_recover == 3
        assert e.duration_ms == pytest.approx(3 * DAY_MS)
        assert e.start_time == START + timedelta(days=1)
        assert e.end_time == START + timedelta(days=4)

    def test_exact_recovery_closes_episode(self):
        """Equity equal to the old peak counts as recovered."""
        episodes = find_drawdown_episodes(curve([500, 400, 500]))

        assert len(episodes) == 1
        assert episodes[0].depth_currency == 100.0
        assert episodes[0].trades_to_recover == 2

    def test_trough_tracks_lowest_point(self):
        """The trough moves with each new low, not the first dip."""
        episodes = find_drawdown_episodes(curve([100, 90, 80, 95, 70, 100]))

        assert len(episodes) == 1
        assert episodes[0].trough_equity == 70.0
        assert episodes[0].trough_index == 4

    def test_multiple_episodes(self):
        episodes = find_drawdown_episodes(curve([100, 90, 100, 120, 110, 130, 125]))

        assert len(episodes) == 3
        assert [e.depth_currency for e in episodes] == [10.0, 10.0, 5.0]
        assert [e.is_open for e in episodes] == [False, False, True]

    def test_open_episode_at_end(self):
        """An unrecovered drawdown stays open with no end fields."""
        episodes = find_drawdown_episodes(curve([100, 120, 110, 90]))

        assert len(episodes) == 1
        e = episodes[0]
        assert e.is_open
        assert e.end_index is None
        assert e.duration_ms is None
        assert e.trades_to_recover is None
        assert e.depth_currency == 30.0
        assert e.depth_percent == pytest.approx(25.0)

    def test_non_positive_peak_has_zero_percent(self):
        """Percent depth is undefined below a zero peak and reported as 0."""
        episodes = find_drawdown_episodes(curve([0, -50, 10]))

        assert episodes[0].depth_currency == 50.0
        assert episodes[0].depth_percent == 0.0


class TestCurveValidation:
    """Test input validation."""

    def test_single_point_raises(self):
        with pytest.raises(InsufficientHistoryError) as exc:
            find_drawdown_episodes(curve([100]))
        assert exc.value.required == 2
        assert exc.value.actual == 1

    def test_non_increasing_index_raises(self):
        points = [
            EquityPoint(index=0, timestamp=START, equity=100.0),
            EquityPoint(index=0, timestamp=START, equity=90.0),
        ]
        with pytest.raises(InvalidParameterError):
            find_drawdown_episodes(points)

    def test_decreasing_timestamp_raises(self):
        points = [
            EquityPoint(index=0, timestamp=START, equity=100.0),
            EquityPoint(index=1, timestamp=START - timedelta(hours=1), equity=90.0),
        ]
        with pytest.raises(InvalidParameterError):
            find_drawdown_episodes(points)


class TestTimeUnderwater:
    """Test the aggregate statistics."""

    def test_single_episode_stats(self):
        """3 of 5 days underwater."""
        analysis = analyze_drawdowns(curve([1000, 1100, 900, 950, 1100, 1200]))
        stats = analysis.stats

        assert stats.episode_count == 1
        assert stats.longest_duration_ms == pytest.approx(3 * DAY_MS)
        assert stats.avg_drawdown_duration_ms == pytest.approx(3 * DAY_MS)
        assert stats.deepest_drawdown_currency == 200.0
        assert stats.avg_trades_to_recover == 3.0
        assert stats.total_timeline_ms == pytest.approx(5 * DAY_MS)
        assert stats.percent_time_underwater == pytest.approx(60.0)
        assert stats.current_drawdown_currency == 0.0
        assert analysis.open_episode is None

    def test_open_episode_is_current_drawdown(self):
        """Open episodes feed the current drawdown, not the closed aggregates."""
        analysis = analyze_drawdowns(curve([100, 90, 100, 120, 110, 130, 125]))
        stats = analysis.stats

        assert stats.episode_count == 2
        assert len(analysis.closed_episodes) == 2
        assert stats.deepest_drawdown_currency == 10.0
        assert stats.current_drawdown_currency == 5.0
        assert analysis.open_episode is analysis.episodes[-1]

    def test_no_episodes(self):
        stats = analyze_drawdowns(curve([1, 2, 3])).stats

        assert stats.episode_count == 0
        assert stats.longest_duration_ms == 0.0
        assert stats.percent_time_underwater == 0.0

    def test_zero_length_timeline(self):
        """All points at the same instant: no division by zero."""
        stats = analyze_drawdowns(curve([100, 80, 100], step=timedelta(0))).stats

        assert stats.episode_count == 1
        assert stats.percent_time_underwater == 0.0

    def test_summary(self):
        text = analyze_drawdowns(curve([1000, 1100, 900, 950, 1100, 1200])).stats.summary()
        assert 'Deepest Drawdown:    $200.00' in text
        assert '3d 0h' in text


class TestFromTrades:
    """Test the account-seeded path from trades."""

    def test_analyze_trades(self, make_trades):
        """Same scenario, built from trades on a 1000 account."""
        trades = make_trades([100, -200, 50, 150, 100])
        analysis = analyze_trades(trades, starting_capital=1000.0)

        assert len(analysis.episodes) == 1
        e = analysis.episodes[0]
        assert e.depth_currency == 200.0
        assert e.trades_to_recover == 3

    def test_underwater_series(self):
        peaks, drawdowns = underwater_series(curve([100, 120, 90, 130]))

        np.testing.assert_array_equal(peaks, [100, 120, 120, 130])
        np.testing.assert_array_equal(drawdowns, [0, 0, 30, 0])
