"""
Error types raised by the analytics engine.

All errors are raised synchronously where they are detected. The value
errors also subclass ValueError so callers that only know the builtin keep
working.
"""

from typing import Optional


class AnalyticsError(Exception):
    """Base class for every error raised by journal_analytics."""


class EmptyInputError(AnalyticsError, ValueError):
    """A statistic was requested over zero observations."""


class InsufficientHistoryError(AnalyticsError, ValueError):
    """Fewer trades or equity points than an operation needs."""

    def __init__(self, required: int, actual: int, what: str = "trades",
                 message: Optional[str] = None):
        self.required = required
        self.actual = actual
        self.what = what
        if message is None:
            message = f"Not enough data: at least {required} {what} required, got {actual}"
        super().__init__(message)


class InvalidParameterError(AnalyticsError, ValueError):
    """A scalar input or configuration value is outside its domain."""


class SimulationCancelled(AnalyticsError):
    """A simulation was stopped through its cancellation token."""
