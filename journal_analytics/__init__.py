"""
Trading Journal Analytics

Performance and risk analytics over a trading journal's closed trades.

The engine turns a list of trade outcomes into:
- Descriptive performance metrics and a composite score
- Drawdown episodes and time-underwater statistics
- Monte Carlo equity projections with percentile bands
- Bootstrap confidence intervals of win rate, profit factor and net P/L
- A closed-form risk-of-ruin estimate

Every function is stateless: the same inputs, config and seed give the same
result.
"""

from .errors import (
    AnalyticsError,
    EmptyInputError,
    InsufficientHistoryError,
    InvalidParameterError,
    SimulationCancelled
)

from .config import (
    PercentileLevels,
    ParallelConfig,
    SimulationConfig,
    MIN_SIMULATION_HISTORY,
    MIN_RUIN_HISTORY,
    STORAGE_INFINITY
)

from .trades import (
    TradeOutcome,
    EquityPoint,
    build_equity_curve,
    reconstruct_starting_balance
)

from .distribution import (
    HistogramBin,
    percentile,
    percentile_or_default,
    percentiles,
    build_histogram
)

from .metrics import (
    PerformanceMetrics,
    PerformanceScore,
    compute_metrics,
    performance_score,
    profit_factor,
    win_rate
)

from .drawdown import (
    DrawdownEpisode,
    TimeUnderwaterStats,
    DrawdownAnalysis,
    find_drawdown_episodes,
    time_underwater_stats,
    analyze_drawdowns,
    analyze_trades,
    underwater_series
)

from .parallel import CancellationToken

from .monte_carlo import (
    PercentileBand,
    MonteCarloResult,
    project_equity
)

from .bootstrap import (
    BootstrapResult,
    bootstrap_statistics
)

from .risk_of_ruin import (
    RiskOfRuinResult,
    estimate_risk_of_ruin,
    estimate_from_metrics,
    risk_level
)

from .trade_loader import (
    load_trades_csv,
    validate_trades
)

from .serialization import (
    storage_safe,
    to_record
)

__version__ = "1.0.0"

__all__ = [
    # Errors
    'AnalyticsError',
    'EmptyInputError',
    'InsufficientHistoryError',
    'InvalidParameterError',
    'SimulationCancelled',

    # Config
    'PercentileLevels',
    'ParallelConfig',
    'SimulationConfig',
    'MIN_SIMULATION_HISTORY',
    'MIN_RUIN_HISTORY',
    'STORAGE_INFINITY',

    # Trades
    'TradeOutcome',
    'EquityPoint',
    'build_equity_curve',
    'reconstruct_starting_balance',

    # Distribution
    'HistogramBin',
    'percentile',
    'percentile_or_default',
    'percentiles',
    'build_histogram',

    # Metrics
    'PerformanceMetrics',
    'PerformanceScore',
    'compute_metrics',
    'performance_score',
    'profit_factor',
    'win_rate',

    # Drawdown
    'DrawdownEpisode',
    'TimeUnderwaterStats',
    'DrawdownAnalysis',
    'find_drawdown_episodes',
    'time_underwater_stats',
    'analyze_drawdowns',
    'analyze_trades',
    'underwater_series',

    # Simulation
    'CancellationToken',
    'PercentileBand',
    'MonteCarloResult',
    'project_equity',
    'BootstrapResult',
    'bootstrap_statistics',

    # Risk of Ruin
    'RiskOfRuinResult',
    'estimate_risk_of_ruin',
    'estimate_from_metrics',
    'risk_level',

    # Loader / Serialization
    'load_trades_csv',
    'validate_trades',
    'storage_safe',
    'to_record',
]
