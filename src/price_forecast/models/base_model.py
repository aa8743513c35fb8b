"""Base class for all forecasting models."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Any, Optional

import joblib
import numpy as np
import pandas as pd
from scipy.stats import norm

from ..backtest.metrics import regression_metrics

PREDICTION_COLUMNS = ['prediction', 'lower', 'upper']


class BaseModel(ABC):
    """Base class that every forecasting model must implement."""

    def __init__(self, name: str, confidence_level: float = 0.95):
        if not 0 < confidence_level < 1:
            raise ValueError("confidence_level must be in (0, 1)")
        self.name = name
        self.confidence_level = confidence_level
        self.is_trained = False
        self.feature_columns = None
        self.residual_std: Optional[float] = None
        self.calibrated_std: Optional[float] = None
        self._y_train: Optional[np.ndarray] = None

    @abstractmethod
    def fit(self, X: pd.DataFrame, y: pd.Series, **kwargs) -> Dict[str, Any]:
        """
        Train the model.

        Args:
            X: Feature matrix, time ordered
            y: Target (transformed close)

        Returns:
            Dictionary with training metrics
        """
        pass

    @abstractmethod
    def predict(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Point forecasts with a confidence interval.

        Returns:
            DataFrame with columns: prediction, lower, upper (index of X)
        """
        pass

    def score(self, X: pd.DataFrame, y: pd.Series) -> Dict[str, float]:
        """Accuracy of predictions on X against y."""
        self._check_trained()
        predictions = self.predict(X)
        return regression_metrics(y.values, predictions['prediction'].values, self._y_train)

    def calibrate(self, X: pd.DataFrame, y: pd.Series) -> pd.DataFrame:
        """
        Predict an out-of-sample window and keep its residuals.

        The residual spread sets the interval width of models without a
        native interval.

        Returns:
            DataFrame with date-aligned actual, prediction and residual columns
        """
        self._check_trained()
        predictions = self.predict(X)
        residuals = y.values - predictions['prediction'].values
        if len(residuals) > 1:
            self.calibrated_std = float(np.std(residuals, ddof=1))
        return pd.DataFrame({
            'actual': y.values,
            'prediction': predictions['prediction'].values,
            'residual': residuals,
        }, index=X.index)

    @property
    def interval_std(self) -> Optional[float]:
        """Calibration residual spread when available, else the in-sample one."""
        if self.calibrated_std is not None:
            return self.calibrated_std
        return self.residual_std

    def save(self, filepath: str):
        """Save model to disk."""
        self._check_trained()
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(self.__dict__, str(path))

    def load(self, filepath: str):
        """Load model from disk."""
        state = joblib.load(str(filepath))
        self.__dict__.update(state)
        return self

    def _interval(self, prediction: np.ndarray, std: Optional[float]) -> pd.DataFrame:
        """Symmetric normal interval around point forecasts."""
        prediction = np.asarray(prediction, dtype=float)
        if std is None or not np.isfinite(std):
            std = 0.0
        half_width = norm.ppf(0.5 + self.confidence_level / 2) * std
        return pd.DataFrame({
            'prediction': prediction,
            'lower': prediction - half_width,
            'upper': prediction + half_width,
        })

    def _check_trained(self):
        if not self.is_trained:
            raise ValueError(f"{self.name} model not trained yet")

    def __repr__(self) -> str:
        status = "trained" if self.is_trained else "untrained"
        return f"{type(self).__name__}({status})"
