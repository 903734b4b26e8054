"""
Trading Journal Analytics - CLI Interface

Run the analytics engine over a journal CSV export.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .bootstrap import bootstrap_statistics
from .breakdowns import (
    daily_pnl,
    duration_distribution,
    performance_by_instrument,
    performance_by_weekday,
)
from .config import ParallelConfig, SimulationConfig
from .drawdown import analyze_trades
from .errors import AnalyticsError
from .metrics import compute_metrics, performance_score
from .monte_carlo import project_equity
from .risk_of_ruin import estimate_from_metrics, estimate_risk_of_ruin
from .serialization import to_record
from .trade_loader import has_complete_timestamps, load_trades_csv, validate_trades

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog='journal_analytics',
        description='Performance & risk analytics for trading journal exports',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Headline statistics and breakdowns
  python -m journal_analytics metrics --input trades.csv --breakdowns

  # Drawdown episodes of a 10,000 account
  python -m journal_analytics drawdown --input trades.csv --starting-capital 10000

  # Project 100 trades ahead, 10,000 paths
  python -m journal_analytics montecarlo --input trades.csv --trials 10000 \\
      --path-length 100 --starting-capital 10000 --seed 42

  # Confidence intervals of win rate and profit factor
  python -m journal_analytics bootstrap --input trades.csv --trials 5000 --seed 42

  # Risk of ruin from explicit figures, or from the journal
  python -m journal_analytics ruin --win-rate 0.55 --payoff 1.5 --risk 1 --threshold 50
  python -m journal_analytics ruin --input trades.csv --risk 1 --threshold 50
        """
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Metrics command
    metrics_parser = subparsers.add_parser('metrics', help='Performance statistics')
    add_input_args(metrics_parser)
    metrics_parser.add_argument('--breakdowns', action='store_true',
                                help='Also print instrument/weekday/daily/duration breakdowns')

    # Drawdown command
    dd_parser = subparsers.add_parser('drawdown', help='Drawdown episodes and time underwater')
    add_input_args(dd_parser)
    dd_parser.add_argument('--starting-capital', type=float, default=0.0,
                           help='Account balance before the first trade (default: 0)')

    # Monte Carlo command
    mc_parser = subparsers.add_parser('montecarlo', help='Monte Carlo equity projection')
    add_input_args(mc_parser)
    add_simulation_args(mc_parser)
    mc_parser.add_argument('--path-length', type=int,
                           help='Trades per simulated path (default: history length)')
    mc_parser.add_argument('--starting-capital', type=float, required=True,
                           help='Equity at the start of every path')

    # Bootstrap command
    bs_parser = subparsers.add_parser('bootstrap', help='Bootstrap confidence intervals')
    add_input_args(bs_parser)
    add_simulation_args(bs_parser)
    bs_parser.add_argument('--sample-size', type=int,
                           help='Trades per resample (default: history length)')

    # Risk of ruin command
    ruin_parser = subparsers.add_parser('ruin', help='Risk of ruin')
    ruin_parser.add_argument('--input', '-i', type=str,
                             help='Journal CSV; win rate and payoff are taken from it')
    ruin_parser.add_argument('--pnl-column', type=str, default='pnl',
                             help='Name of P/L column (default: pnl)')
    ruin_parser.add_argument('--win-rate', type=float, help='Win rate as a fraction 0..1')
    ruin_parser.add_argument('--payoff', type=float, help='Average win / average loss')
    ruin_parser.add_argument('--risk', type=float, default=1.0,
                             help='Percent of capital risked per trade (default: 1)')
    ruin_parser.add_argument('--threshold', type=float, default=50.0,
                             help='Drawdown percent that counts as ruin (default: 50)')
    ruin_parser.add_argument('--json', action='store_true', help='Print JSON instead of text')

    return parser


def add_input_args(parser: argparse.ArgumentParser) -> None:
    """Add journal input arguments to parser."""
    parser.add_argument('--input', '-i', type=str, required=True,
                        help='Path to CSV file with closed trades')
    parser.add_argument('--pnl-column', type=str, default='pnl',
                        help='Name of P/L column (default: pnl)')
    parser.add_argument('--json', action='store_true', help='Print JSON instead of text')


def add_simulation_args(parser: argparse.ArgumentParser) -> None:
    """Add simulation size arguments to parser."""
    parser.add_argument('--trials', type=int, default=10000,
                        help='Number of trials (default: 10000)')
    parser.add_argument('--seed', type=int, help='Random seed for reproducibility')
    parser.add_argument('--workers', type=int,
                        help='Worker processes for large runs (default: CPUs - 1)')


def load_input(args):
    """Load trades and print any validation findings."""
    trades = load_trades_csv(args.input, pnl_column=args.pnl_column)
    validation = validate_trades(trades)
    if validation['issues']:
        raise AnalyticsError("; ".join(validation['issues']))
    return trades


def print_json(record) -> None:
    print(json.dumps(record, indent=2))


def print_header(title: str) -> None:
    print("=" * 60)
    print(f" {title}")
    print("=" * 60)
    print()


def cmd_metrics(args) -> None:
    """Print performance statistics."""
    trades = load_input(args)
    metrics = compute_metrics(trades)
    score = performance_score(metrics.win_rate, metrics.profit_factor, metrics.avg_rr)

    if args.json:
        print_json({'metrics': to_record(metrics), 'score': to_record(score)})
        return

    print_header("PERFORMANCE METRICS")
    print(metrics.summary())
    print()
    print(f"Performance Score: {score.score} ({score.rank})")

    if args.breakdowns:
        print()
        print("By instrument:")
        print(performance_by_instrument(trades).to_string(index=False))
        if has_complete_timestamps(trades):
            print()
            print("By weekday:")
            print(performance_by_weekday(trades).to_string(index=False))
            print()
            print("Daily P/L:")
            print(daily_pnl(trades).to_string(index=False))
            print()
            print("Holding time:")
            print(duration_distribution(trades).to_string(index=False))


def cmd_drawdown(args) -> None:
    """Print drawdown episodes."""
    trades = load_input(args)
    analysis = analyze_trades(trades, args.starting_capital)

    if args.json:
        print_json(to_record(analysis))
        return

    print_header("DRAWDOWN ANALYSIS")
    print(analysis.stats.summary())
    if analysis.episodes:
        print()
        for e in analysis.episodes:
            status = 'open' if e.is_open else f"recovered in {e.trades_to_recover} trades"
            print(f"  #{e.start_index:>4}  -${e.depth_currency:,.2f} ({e.depth_percent:.2f}%)  {status}")


def _parallel_config(args) -> ParallelConfig:
    if args.workers is None:
        return ParallelConfig()
    return ParallelConfig(n_workers=args.workers)


def cmd_montecarlo(args) -> None:
    """Run a Monte Carlo projection."""
    trades = load_input(args)
    config = SimulationConfig.monte_carlo(
        num_trials=args.trials,
        path_length=args.path_length if args.path_length is not None else len(trades),
        starting_capital=args.starting_capital,
        seed=args.seed,
        parallel=_parallel_config(args)
    )
    result = project_equity(trades, config)

    if args.json:
        print_json(to_record(result))
        return

    print_header("MONTE CARLO PROJECTION")
    print(result.summary())


def cmd_bootstrap(args) -> None:
    """Run bootstrap resampling."""
    trades = load_input(args)
    config = SimulationConfig.bootstrap(
        num_trials=args.trials,
        sample_size=args.sample_size,
        seed=args.seed,
        parallel=_parallel_config(args)
    )
    result = bootstrap_statistics(trades, config)

    if args.json:
        print_json(to_record(result))
        return

    print_header("BOOTSTRAP RESAMPLING")
    print(result.summary())


def cmd_ruin(args) -> None:
    """Estimate risk of ruin."""
    if args.input:
        trades = load_input(args)
        result = estimate_from_metrics(compute_metrics(trades), args.risk, args.threshold)
    elif args.win_rate is not None and args.payoff is not None:
        result = estimate_risk_of_ruin(args.win_rate, args.payoff, args.risk, args.threshold)
    else:
        raise AnalyticsError("ruin needs --input, or both --win-rate and --payoff")

    if args.json:
        print_json(to_record(result))
        return

    print_header("RISK OF RUIN")
    print(result.summary())


COMMANDS = {
    'metrics': cmd_metrics,
    'drawdown': cmd_drawdown,
    'montecarlo': cmd_montecarlo,
    'bootstrap': cmd_bootstrap,
    'ruin': cmd_ruin,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        COMMANDS[args.command](args)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user.", file=sys.stderr)
        return 1
    except (AnalyticsError, ValueError, OSError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
