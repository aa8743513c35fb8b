"""Bounded-log and standardization transforms of the close price."""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd

from ..exceptions import DomainError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformParams:
    """Everything needed to invert a fitted transform exactly."""
    mean: float
    sd: float
    lower: float
    upper: float
    offset: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "TransformParams":
        return cls(**{key: float(data[key]) for key in ('mean', 'sd', 'lower', 'upper', 'offset')})


def log_interval(x, lower: float, upper: float, offset: float = 0.0) -> np.ndarray:
    """
    Map values bounded by (lower, upper) onto the real line.

    f(x) = log((x - lower + offset) / (upper - x + offset))

    Raises:
        DomainError: if any non-missing value falls outside the bounds
    """
    values = np.asarray(x, dtype=float)
    _check_bounds(values, lower, upper, offset)
    return np.log((values - lower + offset) / (upper - values + offset))


def log_interval_inverse(z, lower: float, upper: float, offset: float = 0.0) -> np.ndarray:
    """Inverse of log_interval, written as a logistic to stay finite for large |z|."""
    z = np.asarray(z, dtype=float)
    return (lower - offset) + (upper - lower + 2 * offset) / (1.0 + np.exp(-z))


def standardize(values, mean: float, sd: float) -> np.ndarray:
    return (np.asarray(values, dtype=float) - mean) / sd


def standardize_inverse(values, mean: float, sd: float) -> np.ndarray:
    return np.asarray(values, dtype=float) * sd + mean


def _check_bounds(values: np.ndarray, lower: float, upper: float, offset: float):
    if upper <= lower:
        raise DomainError(f"Upper limit {upper} must exceed lower limit {lower}",
                          stage="transform")

    observed = ~np.isnan(values)
    outside = observed & ((values <= lower) | (values >= upper))

    if outside.any():
        positions = np.flatnonzero(outside)
        raise DomainError(
            f"{len(positions)} value(s) outside ({lower}, {upper}), "
            f"e.g. {values[positions[0]]}",
            stage="transform",
            rows=(int(positions[0]), int(positions[-1])),
        )


class SeriesTransformer:
    """
    Bounded-log transform followed by standardization.

    The fitted parameters are exposed as a TransformParams instance so they
    travel with the data to the inverse transform instead of living in
    module constants.
    """

    def __init__(self, lower: Optional[float] = 0.0, upper: Optional[float] = None,
                 offset: float = 1.0, upper_headroom: float = 0.1):
        self.lower = lower
        self.upper = upper
        self.offset = offset
        self.upper_headroom = upper_headroom
        self.params: Optional[TransformParams] = None

    def fit(self, close: Iterable[float]) -> TransformParams:
        """
        Estimate bounds (when not given) and the standardization moments.

        Args:
            close: Historical close prices only; future rows must be excluded

        Returns:
            The fitted TransformParams
        """
        history = pd.Series(close, dtype=float).dropna()
        if len(history) < 2:
            raise DomainError("At least two observations are needed to standardize",
                              stage="transform")

        lower = 0.0 if self.lower is None else float(self.lower)
        upper = self.upper
        if upper is None:
            upper = float(history.max()) * (1.0 + self.upper_headroom)
            logger.info("Estimated upper limit %.4f from historical maximum %.4f",
                        upper, history.max())
        upper = float(upper)

        logged = log_interval(history.values, lower, upper, self.offset)
        if history.nunique() < 2:
            raise DomainError("Close series is constant, standard deviation is zero",
                              stage="transform", rows=(0, len(history) - 1))
        mean = float(np.mean(logged))
        sd = float(np.std(logged, ddof=1))

        self.params = TransformParams(mean=mean, sd=sd, lower=lower,
                                      upper=upper, offset=float(self.offset))
        logger.info("Transform parameters: %s", self.params)
        return self.params

    def transform(self, values, params: Optional[TransformParams] = None) -> np.ndarray:
        params = self._resolve(params)
        logged = log_interval(values, params.lower, params.upper, params.offset)
        return standardize(logged, params.mean, params.sd)

    def fit_transform(self, close) -> np.ndarray:
        self.fit(close)
        return self.transform(close)

    def inverse_transform(self, values, params: Optional[TransformParams] = None) -> np.ndarray:
        """Undo standardization, then the bounded-log mapping."""
        params = self._resolve(params)
        unscaled = standardize_inverse(values, params.mean, params.sd)
        return log_interval_inverse(unscaled, params.lower, params.upper, params.offset)

    def transform_frame(self, df: pd.DataFrame, column: str = 'close') -> pd.DataFrame:
        """Fit on the non-missing rows of `column` and return a transformed copy."""
        out = df.copy()
        known = out[column].notna()
        self.fit(out.loc[known, column])
        out.loc[known, column] = self.transform(out.loc[known, column])
        return out

    def inverse_transform_frame(self, df: pd.DataFrame,
                                columns=('prediction', 'lower', 'upper'),
                                params: Optional[TransformParams] = None) -> pd.DataFrame:
        out = df.copy()
        for column in columns:
            if column in out.columns:
                out[column] = self.inverse_transform(out[column].values, params)
        return out

    def _resolve(self, params: Optional[TransformParams]) -> TransformParams:
        params = params or self.params
        if params is None:
            raise ValueError("Transformer not fitted yet")
        return params
