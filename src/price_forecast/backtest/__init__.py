"""Backtest splitting and accuracy metrics."""

from .splitter import TimeSeriesSplitter, Split, to_timedelta
from .metrics import regression_metrics, METRIC_NAMES

__all__ = [
    'TimeSeriesSplitter', 'Split', 'to_timedelta',
    'regression_metrics', 'METRIC_NAMES'
]
