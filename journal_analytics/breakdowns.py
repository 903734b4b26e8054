"""
Performance Breakdowns

Group closed trades by instrument, weekday, calendar day, week and holding
time. Everything here returns a pandas DataFrame for the host to render.
"""

from typing import Sequence

import numpy as np
import pandas as pd

from .trades import TradeOutcome

WEEKDAY_ORDER = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']

# Format: (label, upper_bound_minutes). First bound the duration is below wins.
DURATION_BUCKETS = [
    ('<15m', 15),
    ('15-60m', 60),
    ('1-4h', 240),
    ('>4h', float('inf')),
]


def trades_frame(trades: Sequence[TradeOutcome]) -> pd.DataFrame:
    """One row per trade, with holding time and a win flag."""
    df = pd.DataFrame({
        'pnl': [t.pnl for t in trades],
        'entry_time': pd.to_datetime([t.entry_time for t in trades]),
        'exit_time': pd.to_datetime([t.exit_time for t in trades]),
        'risk_percentage': [t.risk_percentage for t in trades],
        'r_multiple': [t.r_multiple for t in trades],
        'instrument': [t.instrument for t in trades],
    })
    df['pnl'] = df['pnl'].astype(float)
    df['duration_ms'] = (df['exit_time'] - df['entry_time']).dt.total_seconds() * 1000.0
    df['is_win'] = df['pnl'] > 0
    return df


def _group_performance(df: pd.DataFrame, key: str) -> pd.DataFrame:
    grouped = df.groupby(key).agg(
        trades=('pnl', 'size'),
        net_pnl=('pnl', 'sum'),
        wins=('is_win', 'sum'),
    ).reset_index()
    grouped['wins'] = grouped['wins'].astype(int)
    grouped['win_rate'] = grouped['wins'] / grouped['trades'] * 100.0
    return grouped


def performance_by_instrument(trades: Sequence[TradeOutcome]) -> pd.DataFrame:
    """
    Trade count, net P/L and win rate per instrument, most traded first.

    Trades without an instrument are grouped under 'Unknown'. Equal
    counts keep alphabetical order.
    """
    df = trades_frame(trades)
    df['instrument'] = df['instrument'].fillna('Unknown')
    result = _group_performance(df, 'instrument')
    return result.sort_values('trades', ascending=False, kind='stable').reset_index(drop=True)


def performance_by_weekday(trades: Sequence[TradeOutcome]) -> pd.DataFrame:
    """Per exit weekday, Sunday first; days without trades are omitted."""
    df = trades_frame(trades).dropna(subset=['exit_time'])
    df['weekday'] = df['exit_time'].dt.day_name()
    result = _group_performance(df, 'weekday')
    result['weekday'] = pd.Categorical(result['weekday'], categories=WEEKDAY_ORDER, ordered=True)
    return result.sort_values('weekday').reset_index(drop=True)


def daily_pnl(trades: Sequence[TradeOutcome]) -> pd.DataFrame:
    """
    Net P/L and trade count per exit date, with the running cumulative P/L.

    Returns:
        DataFrame with columns date, pnl, trades, cumulative_pnl
    """
    df = trades_frame(trades).dropna(subset=['exit_time'])
    df['date'] = df['exit_time'].dt.normalize()
    daily = df.groupby('date').agg(pnl=('pnl', 'sum'), trades=('pnl', 'size')).reset_index()
    daily = daily.sort_values('date').reset_index(drop=True)
    daily['cumulative_pnl'] = daily['pnl'].cumsum()
    return daily


def weekly_win_rate(trades: Sequence[TradeOutcome]) -> pd.DataFrame:
    """
    Win rate per calendar week. Weeks start on Sunday.

    Returns:
        DataFrame with columns week_start, trades, wins, win_rate
    """
    df = trades_frame(trades).dropna(subset=['exit_time'])
    day = df['exit_time'].dt.normalize()
    # dayofweek: Monday=0 .. Sunday=6, so Sunday steps back 0 days
    df['week_start'] = day - pd.to_timedelta((day.dt.dayofweek + 1) % 7, unit='D')
    weekly = df.groupby('week_start').agg(
        trades=('pnl', 'size'),
        wins=('is_win', 'sum'),
    ).reset_index()
    weekly['wins'] = weekly['wins'].astype(int)
    weekly['win_rate'] = weekly['wins'] / weekly['trades'] * 100.0
    return weekly.sort_values('week_start').reset_index(drop=True)


def duration_distribution(trades: Sequence[TradeOutcome]) -> pd.DataFrame:
    """
    Count of trades per holding-time bucket (<15m, 15-60m, 1-4h, >4h).

    Trades without both timestamps are not counted.
    """
    df = trades_frame(trades).dropna(subset=['duration_ms'])
    minutes = df['duration_ms'].to_numpy() / 60_000.0

    counts = []
    lower = -np.inf
    for label, upper in DURATION_BUCKETS:
        in_bucket = (minutes >= lower) & (minutes < upper)
        counts.append({'bucket': label, 'count': int(in_bucket.sum())})
        lower = upper

    return pd.DataFrame(counts)
