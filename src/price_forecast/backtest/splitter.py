"""Time-ordered training/assessment splits."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Union

import pandas as pd

from ..exceptions import InsufficientDataError
from ..utils.config import ASSESSMENT_WINDOW, MIN_TRAINING_ROWS
from ..utils.helpers import ensure_no_leakage, validate_dataframe, date_range_of

logger = logging.getLogger(__name__)

Period = Union[str, int, pd.Timedelta]

PERIOD_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*([A-Za-z]*)\s*$')


def to_timedelta(period: Period) -> pd.Timedelta:
    """Parse '8 weeks', '56 days', 56 (days) or a Timedelta."""
    if isinstance(period, pd.Timedelta):
        return period
    if isinstance(period, (int, float)):
        return pd.Timedelta(days=period)
    match = PERIOD_PATTERN.match(str(period))
    if match is None:
        raise ValueError(f"Unknown period {period!r}")
    amount = float(match.group(1))
    unit = (match.group(2) or 'day').lower().rstrip('s')
    if unit == 'week':
        return pd.Timedelta(weeks=amount)
    if unit == 'day':
        return pd.Timedelta(days=amount)
    if unit == 'month':
        return pd.Timedelta(days=round(amount * 30.4375))
    if unit == 'year':
        return pd.Timedelta(days=round(amount * 365.25))
    raise ValueError(f"Unknown period unit in {period!r}")


@dataclass
class Split:
    """One training/assessment pair."""
    training: pd.DataFrame
    assessment: pd.DataFrame
    slice_id: int = 1

    @property
    def cut_date(self) -> pd.Timestamp:
        return self.assessment['date'].min()

    def __repr__(self) -> str:
        return (f"Split(slice={self.slice_id}, training={len(self.training)} rows "
                f"{date_range_of(self.training)}, assessment={len(self.assessment)} rows "
                f"{date_range_of(self.assessment)})")


class TimeSeriesSplitter:
    """
    Split prepared rows into a training window and a trailing assessment window.

    The training window either grows from the start of the data (cumulative)
    or is a fixed-width window immediately preceding the assessment.
    """

    def __init__(self, assessment: Period = ASSESSMENT_WINDOW, cumulative: bool = True,
                 train_window: Optional[Period] = None, skip: Optional[Period] = None,
                 min_training_rows: int = MIN_TRAINING_ROWS):
        if not cumulative and train_window is None:
            raise ValueError("A rolling split needs train_window")
        self.assessment = to_timedelta(assessment)
        self.cumulative = cumulative
        self.train_window = to_timedelta(train_window) if train_window is not None else None
        self.skip = to_timedelta(skip) if skip is not None else self.assessment
        self.min_training_rows = min_training_rows

    def split(self, features: pd.DataFrame) -> Split:
        """Most recent split of the labelled rows."""
        return self.splits(features, n_slices=1)[0]

    def splits(self, features: pd.DataFrame, n_slices: int = 1) -> List[Split]:
        """
        Up to `n_slices` backtest splits, most recent first.

        Each earlier slice moves the assessment end back by `skip`. Slices
        that would leave too little training data are not produced; the
        first slice raises InsufficientDataError instead.
        """
        prepared = self._labelled(features)
        first_date = prepared['date'].iloc[0]
        last_date = prepared['date'].iloc[-1]

        results = []
        for slice_id in range(1, n_slices + 1):
            end_date = last_date - self.skip * (slice_id - 1)
            try:
                split = self._split_at(prepared, end_date, first_date, slice_id)
            except InsufficientDataError:
                if slice_id == 1:
                    raise
                logger.info("Stopping at %d slices: not enough history", slice_id - 1)
                break
            results.append(split)

        for split in results:
            logger.info("%r", split)
        return results

    def plan(self, splits: List[Split]) -> pd.DataFrame:
        """Long frame of (slice_id, date, role, close) for plotting."""
        frames = []
        for split in splits:
            for role, rows in (('training', split.training), ('assessment', split.assessment)):
                part = rows[['date', 'close']].copy()
                part.insert(0, 'role', role)
                part.insert(0, 'slice_id', split.slice_id)
                frames.append(part)
        return pd.concat(frames, ignore_index=True)

    def _labelled(self, features: pd.DataFrame) -> pd.DataFrame:
        validate_dataframe(features, ['date', 'close'], check_nulls=False, stage="split")
        prepared = features
        if 'is_future' in prepared.columns:
            prepared = prepared[~prepared['is_future'].astype(bool)]
        prepared = prepared[prepared['close'].notna()].sort_values('date')
        if prepared.empty:
            raise InsufficientDataError("No labelled rows to split", stage="split")
        return prepared

    def _split_at(self, prepared: pd.DataFrame, end_date: pd.Timestamp,
                  first_date: pd.Timestamp, slice_id: int) -> Split:
        assess_start = end_date - self.assessment
        if assess_start < first_date:
            raise InsufficientDataError(
                f"Assessment window of {self.assessment.days} days exceeds the "
                f"history ({first_date.date()} to {end_date.date()})",
                stage="split", rows=(first_date.date(), end_date.date()),
            )

        dates = prepared['date']
        assessment = prepared[(dates > assess_start) & (dates <= end_date)]
        if self.cumulative:
            training = prepared[dates <= assess_start]
        else:
            train_start = assess_start - self.train_window
            training = prepared[(dates > train_start) & (dates <= assess_start)]

        complete = training
        if 'features_missing' in training.columns:
            complete = training[~training['features_missing'].astype(bool)]
        if len(complete) < self.min_training_rows:
            raise InsufficientDataError(
                f"Only {len(complete)} of {len(training)} training rows before "
                f"{assess_start.date()} have complete features "
                f"(need {self.min_training_rows})",
                stage="split", rows=date_range_of(training),
            )
        if assessment.empty:
            raise InsufficientDataError(
                f"No rows in assessment window ending {end_date.date()}", stage="split"
            )

        ensure_no_leakage(training, assessment)
        return Split(training=training.copy(), assessment=assessment.copy(), slice_id=slice_id)
