"""
Tests for bootstrap resampling.
"""

import random

import numpy as np
import pytest

from journal_analytics.bootstrap import bootstrap_statistics, resample_statistics
from journal_analytics.config import SimulationConfig
from journal_analytics.errors import InsufficientHistoryError


class TestResampleStatistics:
    """Test the vectorized per-resample statistics."""

    def test_rows(self):
        samples = np.array([
            [10.0, -5.0],
            [10.0, 20.0],
            [0.0, 0.0],
        ])
        win_rates, factors, net = resample_statistics(samples)

        np.testing.assert_array_equal(win_rates, [50.0, 100.0, 0.0])
        assert factors[0] == 2.0
        assert factors[1] == np.inf
        assert factors[2] == 0.0
        np.testing.assert_array_equal(net, [5.0, 30.0, 0.0])


class TestBootstrap:
    """Test confidence intervals on the alternating +100/-50 history."""

    def test_alternating_history(self, alternating_trades):
        """Intervals centered on the observed 50% and +500."""
        config = SimulationConfig.bootstrap(1000, sample_size=20, seed=42)
        result = bootstrap_statistics(alternating_trades, config)

        assert result.original_win_rate == 50.0
        assert result.original_profit_factor == pytest.approx(2.0)

        lo, hi = result.win_rate_ci
        assert lo < 50.0 < hi
        assert (lo + hi) / 2 == pytest.approx(50.0, abs=5.0)

        lo, hi = result.net_pnl_ci
        assert lo < 500.0 < hi
        assert (lo + hi) / 2 == pytest.approx(500.0, abs=200.0)

        assert result.mean_win_rate == pytest.approx(50.0, abs=2.0)
        assert result.mean_net_pnl == pytest.approx(500.0, abs=40.0)

    def test_smaller_samples_widen_win_rate_interval(self, alternating_trades):
        wide = bootstrap_statistics(alternating_trades, SimulationConfig.bootstrap(1000, sample_size=5, seed=1))
        narrow = bootstrap_statistics(alternating_trades, SimulationConfig.bootstrap(1000, sample_size=20, seed=1))

        wide_width = wide.win_rate_ci[1] - wide.win_rate_ci[0]
        narrow_width = narrow.win_rate_ci[1] - narrow.win_rate_ci[0]
        assert wide_width > narrow_width

    def test_sample_size_defaults_to_history(self, alternating_trades):
        result = bootstrap_statistics(alternating_trades, SimulationConfig.bootstrap(200, seed=1))
        assert result.sample_size == 20

    def test_output_arrays_and_histogram(self, alternating_trades):
        config = SimulationConfig.bootstrap(500, seed=5, histogram_bins=10)
        result = bootstrap_statistics(alternating_trades, config)

        assert result.win_rates.shape == (500,)
        assert result.profit_factors.shape == (500,)
        assert result.net_pnls.shape == (500,)
        assert len(result.histogram) == 10
        assert sum(b.count for b in result.histogram) == 500

    def test_all_winners_has_no_profit_factor_interval(self, make_trades):
        """Every resample is lossless: all profit factors are infinite."""
        trades = make_trades([10, 20, 30, 40, 50, 15, 25, 35, 45, 55])
        result = bootstrap_statistics(trades, SimulationConfig.bootstrap(300, seed=1))

        assert result.profit_factor_ci is None
        assert result.infinite_profit_factor_count == 300
        assert result.original_profit_factor == float('inf')
        assert 'Profit Factor CI:      n/a' in result.summary()

    def test_infinite_resamples_excluded_from_interval(self, make_trades):
        """A single loser in the history: some resamples never draw it."""
        trades = make_trades([10] * 9 + [-10])
        result = bootstrap_statistics(trades, SimulationConfig.bootstrap(500, seed=3))

        assert 0 < result.infinite_profit_factor_count < 500
        assert result.profit_factor_ci is not None
        assert np.isfinite(result.profit_factor_ci[1])

    def test_reproducible(self, alternating_trades):
        config = SimulationConfig.bootstrap(400, seed=9)
        assert bootstrap_statistics(alternating_trades, config) == \
            bootstrap_statistics(alternating_trades, config)

    def test_intervals_ignore_order(self, make_trades):
        """Reordering the history leaves every interval unchanged under a fixed seed."""
        trades = make_trades([120, -45, 30, -80, 15, 0, 210, -35, -60, 95, 40, -20])
        shuffled = list(trades)
        random.Random(1).shuffle(shuffled)
        config = SimulationConfig.bootstrap(500, seed=3)

        a = bootstrap_statistics(trades, config)
        b = bootstrap_statistics(shuffled, config)
        assert a.original_win_rate == b.original_win_rate
        assert a.original_profit_factor == b.original_profit_factor
        assert a.win_rate_ci == b.win_rate_ci
        assert a.profit_factor_ci == b.profit_factor_ci
        assert a.net_pnl_ci == b.net_pnl_ci
        assert a == b

    def test_short_history_raises(self, make_trades):
        with pytest.raises(InsufficientHistoryError):
            bootstrap_statistics(make_trades([1, -1, 2]), SimulationConfig.bootstrap(100, seed=1))
