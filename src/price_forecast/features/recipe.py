"""Calendar signature and Fourier covariates fitted on training rows only."""

import logging
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.preprocessing import OneHotEncoder, StandardScaler

from ..utils.config import FOURIER_PERIODS, FOURIER_ORDER
from ..utils.helpers import validate_dataframe

logger = logging.getLogger(__name__)

MONTH_LABELS = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
                'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']
WEEKDAY_LABELS = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']

# Timezone/sub-day components and the quarter index carry no signal for daily bars
DROPPED_SIGNATURE_FIELDS = ['hour', 'minute', 'second', 'am_pm', 'quarter']
NORMALIZED_FIELDS = ['index_num', 'year']
CATEGORICAL_FIELDS = ['month_lbl', 'wday_lbl']

EPOCH = pd.Timestamp('1970-01-01')


def timeseries_signature(dates: pd.Series) -> pd.DataFrame:
    """Expand a date column into calendar fields."""
    dates = pd.to_datetime(pd.Series(dates)).reset_index(drop=True)
    dt = dates.dt
    month_start_quarter = ((dt.quarter - 1) * 3 + 1)
    quarter_start = pd.to_datetime(pd.DataFrame({
        'year': dt.year, 'month': month_start_quarter, 'day': 1
    }))

    signature = pd.DataFrame({
        'index_num': (dates - EPOCH) // pd.Timedelta(seconds=1),
        'year': dt.year,
        'half': np.where(dt.month <= 6, 1, 2),
        'quarter': dt.quarter,
        'month': dt.month,
        'month_lbl': dt.month.map(lambda m: MONTH_LABELS[m - 1]),
        'day': dt.day,
        'hour': dt.hour,
        'minute': dt.minute,
        'second': dt.second,
        'am_pm': np.where(dt.hour < 12, 1, 2),
        # 1 = Sunday
        'wday': (dt.dayofweek + 1) % 7 + 1,
        'wday_lbl': ((dt.dayofweek + 1) % 7).map(lambda d: WEEKDAY_LABELS[d]),
        'mday': dt.day,
        'qday': (dates - quarter_start).dt.days + 1,
        'yday': dt.dayofyear,
        'mweek': (dt.day - 1) // 7 + 1,
        'week': (dt.dayofyear - 1) // 7 + 1,
    })
    return signature.astype({col: float for col in signature.columns
                              if col not in CATEGORICAL_FIELDS})


def fourier_terms(dates: pd.Series, periods: Iterable[float], order: int,
                  step_days: float, prefix: str = 'date') -> pd.DataFrame:
    """
    Sine/cosine pairs for each period and harmonic.

    Time is measured in observation steps so that `period` counts rows.
    """
    dates = pd.to_datetime(pd.Series(dates)).reset_index(drop=True)
    t = ((dates - EPOCH) / pd.Timedelta(days=1)).to_numpy(dtype=float) / step_days
    terms = {}
    for period in periods:
        for k in range(1, order + 1):
            angle = 2 * np.pi * k * t / period
            terms[f'{prefix}_sin{period}_K{k}'] = np.sin(angle)
            terms[f'{prefix}_cos{period}_K{k}'] = np.cos(angle)
    return pd.DataFrame(terms)


class Recipe:
    """A fitted set of covariate steps, applied identically to any rows."""

    def __init__(self, passthrough_columns: List[str], fourier_periods, fourier_order: int,
                 step_days: float, column_transformer: ColumnTransformer):
        self.passthrough_columns = list(passthrough_columns)
        self.fourier_periods = tuple(fourier_periods)
        self.fourier_order = fourier_order
        self.step_days = step_days
        self.column_transformer = column_transformer
        self.feature_names_ = list(column_transformer.get_feature_names_out())

    @property
    def fourier_columns(self) -> List[str]:
        return [name for name in self.feature_names_
                if name.startswith('date_sin') or name.startswith('date_cos')]

    def bake(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Model matrix for `frame`, indexed like `frame`."""
        design = _design_frame(frame, self.passthrough_columns, self.fourier_periods,
                               self.fourier_order, self.step_days)
        baked = self.column_transformer.transform(design)
        return pd.DataFrame(np.asarray(baked, dtype=float), columns=self.feature_names_,
                            index=frame.index)

    transform = bake


class RecipeBuilder:
    """Derive calendar and Fourier covariates; freeze all statistics on training rows."""

    def __init__(self, fourier_periods: Iterable[int] = FOURIER_PERIODS,
                 fourier_order: int = FOURIER_ORDER,
                 passthrough_columns: Optional[List[str]] = None):
        self.fourier_periods = tuple(fourier_periods)
        self.fourier_order = int(fourier_order)
        self.passthrough_columns = passthrough_columns

    def fit(self, training: pd.DataFrame) -> Recipe:
        """
        Fit the recipe on training rows.

        Args:
            training: Training rows with a date column plus lag/rolling features

        Returns:
            A Recipe whose bake() applies the frozen transformation
        """
        validate_dataframe(training, ['date'], check_nulls=False, stage="recipe")
        if len(training) < 2:
            raise ValueError("Recipe needs at least two training rows")

        passthrough = self.passthrough_columns
        if passthrough is None:
            passthrough = [col for col in training.columns if col.startswith('lag_')]

        dates = pd.to_datetime(training['date']).sort_values()
        step_days = float(dates.diff().dropna().median() / pd.Timedelta(days=1))

        design = _design_frame(training, passthrough, self.fourier_periods,
                               self.fourier_order, step_days)
        column_transformer = ColumnTransformer(
            transformers=[
                ('normalize', StandardScaler(), NORMALIZED_FIELDS),
                ('one_hot', OneHotEncoder(categories=[MONTH_LABELS, WEEKDAY_LABELS],
                                          handle_unknown='ignore', sparse_output=False),
                 CATEGORICAL_FIELDS),
            ],
            remainder='passthrough',
            verbose_feature_names_out=False,
        )
        column_transformer.fit(design)

        recipe = Recipe(passthrough, self.fourier_periods, self.fourier_order,
                        step_days, column_transformer)
        logger.info("Fitted recipe on %d rows: %d covariates (step %.2f days)",
                    len(training), len(recipe.feature_names_), step_days)
        return recipe


def _design_frame(frame: pd.DataFrame, passthrough: List[str], periods,
                  order: int, step_days: float) -> pd.DataFrame:
    signature = timeseries_signature(frame['date'])
    signature = signature.drop(columns=DROPPED_SIGNATURE_FIELDS)
    fourier = fourier_terms(frame['date'], periods, order, step_days)
    features = frame[passthrough].reset_index(drop=True).astype(float)
    return pd.concat([features, signature, fourier], axis=1)
