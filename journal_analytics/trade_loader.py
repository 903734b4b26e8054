"""
Trade Data Loader

Load closed trades from a journal CSV export and check the data before it
is fed to the analytics.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import MIN_SIMULATION_HISTORY
from .trades import TradeOutcome, pnl_array

logger = logging.getLogger(__name__)


def _optional_float(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def _optional_time(value):
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).to_pydatetime()


def load_trades_csv(
    filepath: str,
    pnl_column: str = 'pnl',
    entry_column: str = 'entry_time',
    exit_column: str = 'exit_time',
    risk_column: str = 'risk_percentage',
    r_multiple_column: str = 'r_multiple',
    instrument_column: str = 'instrument',
    date_format: Optional[str] = None
) -> List[TradeOutcome]:
    """
    Load closed trades from a CSV file.

    Expected CSV format (only the P/L column is required):
        entry_time,exit_time,pnl,risk_percentage,r_multiple,instrument
        2024-01-02 09:30,2024-01-02 10:05,45.50,1.0,1.5,EUR/USD
        2024-01-02 11:00,2024-01-02 11:40,-30.00,1.0,-1.0,EUR/USD
        ...

    Optional columns that are missing from the file are skipped; empty
    cells become None.

    Args:
        filepath: Path to CSV file
        pnl_column: Name of P/L column
        entry_column: Name of entry timestamp column
        exit_column: Name of exit timestamp column
        risk_column: Name of risk-percentage column
        r_multiple_column: Name of R-multiple column
        instrument_column: Name of instrument column
        date_format: Optional date format string for parsing

    Returns:
        List of TradeOutcome in file order
    """
    df = pd.read_csv(filepath)

    if pnl_column not in df.columns:
        raise ValueError(
            f"CSV is missing the P/L column '{pnl_column}'. Found columns: {list(df.columns)}"
        )

    # Parse dates
    for column in (entry_column, exit_column):
        if column in df.columns:
            if date_format:
                df[column] = pd.to_datetime(df[column], format=date_format)
            else:
                df[column] = pd.to_datetime(df[column])

    def column_or_none(name):
        return df[name] if name in df.columns else pd.Series([None] * len(df), index=df.index)

    trades = [
        TradeOutcome(
            pnl=float(pnl),
            entry_time=_optional_time(entry),
            exit_time=_optional_time(exit_),
            risk_percentage=_optional_float(risk),
            r_multiple=_optional_float(r_mult),
            instrument=None if instrument is None or pd.isna(instrument) else str(instrument)
        )
        for pnl, entry, exit_, risk, r_mult, instrument in zip(
            df[pnl_column],
            column_or_none(entry_column),
            column_or_none(exit_column),
            column_or_none(risk_column),
            column_or_none(r_multiple_column),
            column_or_none(instrument_column),
        )
    ]

    logger.info("Loaded %d trades from %s", len(trades), filepath)
    return trades


def validate_trades(trades: Sequence[TradeOutcome]) -> Dict[str, Any]:
    """
    Validate trade data and return potential issues.

    Args:
        trades: Closed trades

    Returns:
        Dictionary with validation results and warnings
    """
    issues = []
    warnings = []

    pnls = pnl_array(trades)

    # Check for NaN/inf
    nan_count = int(np.isnan(pnls).sum())
    inf_count = int(np.isinf(pnls).sum())

    if nan_count > 0:
        issues.append(f"Found {nan_count} NaN P/L values")
    if inf_count > 0:
        issues.append(f"Found {inf_count} infinite P/L values")

    missing_exit = sum(1 for t in trades if t.exit_time is None)
    if missing_exit:
        warnings.append(f"{missing_exit} trades have no exit time - drawdown analysis unavailable")

    backwards = sum(
        1 for t in trades
        if t.entry_time is not None and t.exit_time is not None and t.exit_time < t.entry_time
    )
    if backwards:
        issues.append(f"{backwards} trades exit before they enter")

    if len(trades) < MIN_SIMULATION_HISTORY:
        warnings.append(
            f"Only {len(trades)} trades - simulations need at least {MIN_SIMULATION_HISTORY}"
        )

    finite = pnls[np.isfinite(pnls)]
    if finite.size > 1:
        # Check for outliers
        mean = finite.mean()
        std = finite.std()
        if std > 0:
            outlier_count = int((np.abs(finite - mean) > 5 * std).sum())
            if outlier_count > 0:
                warnings.append(f"Found {outlier_count} extreme outliers (>5 std from mean)")

        wins = finite[finite > 0]
        losses = finite[finite < 0]
        if len(wins) > 0 and len(losses) > 0:
            rate = len(wins) / len(finite)
            if rate > 0.90:
                warnings.append(f"Win rate {rate:.1%} is suspiciously high")

    for w in warnings:
        logger.warning(w)

    return {
        'valid': len(issues) == 0,
        'issues': issues,
        'warnings': warnings,
        'trade_count': len(trades)
    }


def has_complete_timestamps(trades: Sequence[TradeOutcome]) -> bool:
    """True when every trade can be placed on an equity curve."""
    return len(trades) > 0 and all(t.exit_time is not None for t in trades)
