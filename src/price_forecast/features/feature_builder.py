"""Extend the close series with a future block and build lag/rolling features."""

import logging
from typing import Iterable

import numpy as np
import pandas as pd

from ..exceptions import InsufficientDataError, LeakageError
from ..utils.config import FORECAST_HORIZON, LAG_DEPTH, ROLLING_WINDOWS
from ..utils.helpers import validate_dataframe

logger = logging.getLogger(__name__)


def infer_frequency(dates: pd.Series) -> pd.DateOffset:
    """Calendar step of a date column: inferred, else business or calendar days."""
    dates = pd.DatetimeIndex(dates)
    freq = pd.infer_freq(dates) if len(dates) >= 3 else None
    if freq is None:
        freq = 'B' if (dates.dayofweek < 5).all() else 'D'
    return pd.tseries.frequencies.to_offset(freq)


class FeatureBuilder:
    """Build time-aligned, leak-free lag and rolling features of the close."""

    def __init__(self, forecast_horizon: int = FORECAST_HORIZON,
                 lag_depth: int = LAG_DEPTH,
                 rolling_windows: Iterable[int] = ROLLING_WINDOWS):
        if forecast_horizon < 1 or lag_depth < 1:
            raise ValueError("forecast_horizon and lag_depth must be positive")
        self.forecast_horizon = int(forecast_horizon)
        self.lag_depth = int(lag_depth)
        self.rolling_windows = tuple(int(w) for w in rolling_windows)
        self.feature_metadata = {}

    @property
    def lag_column(self) -> str:
        return f'lag_{self.lag_depth}'

    def rolling_column(self, window: int) -> str:
        return f'{self.lag_column}_roll_{window}'

    @property
    def feature_columns(self) -> list:
        return [self.lag_column] + [self.rolling_column(w) for w in self.rolling_windows]

    def extend_future(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Append `forecast_horizon` label-less rows continuing the calendar.

        Args:
            df: Historical frame with date, symbol and close columns

        Returns:
            Copy of df with an `is_future` flag and the future block appended
        """
        validate_dataframe(df, ['date', 'close'], check_nulls=False, stage="features")
        history = df.sort_values('date').reset_index(drop=True).copy()
        if history['date'].duplicated().any():
            raise LeakageError("Duplicate dates in historical series", stage="features")

        offset = infer_frequency(history['date'])
        last_date = history['date'].iloc[-1]
        future_dates = pd.date_range(start=last_date + offset,
                                     periods=self.forecast_horizon, freq=offset)

        future = pd.DataFrame({'date': future_dates})
        for col in history.columns:
            if col == 'date':
                continue
            if col == 'symbol':
                future[col] = history[col].iloc[-1]
            else:
                future[col] = np.nan

        history['is_future'] = False
        future['is_future'] = True
        extended = pd.concat([history, future], ignore_index=True)

        logger.info("Extended %d historical rows with %d future rows (%s to %s, freq=%s)",
                    len(history), len(future), future_dates[0].date(),
                    future_dates[-1].date(), offset.freqstr)
        return extended

    def add_lag(self, df: pd.DataFrame) -> pd.DataFrame:
        """lag_K[t] = close[t - K]; undefined for the first K rows."""
        df = df.copy()
        df[self.lag_column] = df['close'].shift(self.lag_depth)
        return df

    def add_rolling_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Centered moving averages of the lag with partial windows at the edges.

        Historical rows are averaged over the historical slice only, so they
        never see rows of the reserved future block.
        """
        df = df.copy()
        lag = df[self.lag_column]
        is_future = df['is_future'] if 'is_future' in df.columns else pd.Series(False, index=df.index)
        history_lag = lag[~is_future]

        for window in self.rolling_windows:
            rolled_history = history_lag.rolling(window, center=True, min_periods=1).mean()
            rolled_all = lag.rolling(window, center=True, min_periods=1).mean()
            df[self.rolling_column(window)] = rolled_all.where(is_future, rolled_history)

        return df

    def build_all_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Extend with the future block, then add lag and rolling features.

        Rows whose lag is undefined are kept and flagged with
        `features_missing` rather than dropped.
        """
        n_history = len(df)
        if n_history <= self.lag_depth:
            raise InsufficientDataError(
                f"{n_history} rows cannot support a lag of {self.lag_depth}",
                stage="features",
            )

        features = self.extend_future(df)
        features = self.add_lag(features)
        features = self.add_rolling_features(features)
        features['features_missing'] = features[self.feature_columns].isna().any(axis=1)

        self.check_no_leakage(features)

        n_missing = int(features.loc[~features['is_future'], 'features_missing'].sum())
        if n_missing:
            logger.info("%d historical rows have undefined lag features", n_missing)

        self.feature_metadata = {
            'feature_columns': self.feature_columns,
            'forecast_horizon': self.forecast_horizon,
            'lag_depth': self.lag_depth,
            'rolling_windows': list(self.rolling_windows),
            'n_history': n_history,
            'n_future': self.forecast_horizon,
            'n_missing': n_missing,
        }
        return features

    def check_no_leakage(self, features: pd.DataFrame):
        """
        Raise LeakageError if any feature references data past its own row.

        Checks ordering, the lag alignment and that the future block carries
        no labels.
        """
        dates = features['date']
        if not dates.is_monotonic_increasing or dates.duplicated().any():
            raise LeakageError("Feature rows are not strictly ordered by date", stage="features")

        future = features['is_future']
        if features.loc[future, 'close'].notna().any():
            raise LeakageError("Future block carries close values", stage="features",
                               rows=(dates[future].min().date(), dates[future].max().date()))

        expected = features['close'].shift(self.lag_depth)
        lag = features[self.lag_column]
        mismatch = (expected.notna() & lag.notna() & (lag != expected))
        mismatch |= lag.notna() & expected.isna()
        if mismatch.any():
            bad = dates[mismatch]
            raise LeakageError(
                f"{self.lag_column} does not reference close {self.lag_depth} rows earlier",
                stage="features", rows=(bad.min().date(), bad.max().date()),
            )
