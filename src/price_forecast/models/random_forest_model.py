"""Random-forest regressor on the engineered covariates."""

import logging
from typing import Dict, Any

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestRegressor

from .base_model import BaseModel

logger = logging.getLogger(__name__)


class RandomForestModel(BaseModel):
    """Tree ensemble regression of the transformed close on lag, rolling and calendar features."""

    def __init__(self, confidence_level: float = 0.95, **rf_params):
        super().__init__("RandomForest", confidence_level)

        self.params = {
            'n_estimators': 500,
            'min_samples_leaf': 1,
            'max_features': 1.0,
            'oob_score': True,
            'random_state': 42,
            'n_jobs': -1,
            **rf_params
        }
        self.model = None

    def fit(self, X: pd.DataFrame, y: pd.Series, **kwargs) -> Dict[str, Any]:
        """Train on rows with complete features; flagged rows are skipped."""
        complete = X.notna().all(axis=1) & y.notna()
        n_skipped = int((~complete).sum())
        if n_skipped:
            logger.info("Skipping %d training rows with missing features", n_skipped)
        X_train, y_train = X[complete], y[complete]
        if len(X_train) < 2:
            raise ValueError("Not enough complete rows to train the random forest")

        self.feature_columns = X.columns.tolist()
        self.model = RandomForestRegressor(**self.params)
        self.model.fit(X_train.values, y_train.values)
        self.is_trained = True
        self._y_train = y_train.values

        train_pred = self.model.predict(X_train.values)
        train_rmse = float(np.sqrt(np.mean((y_train.values - train_pred) ** 2)))

        metrics = {
            'train_rmse': train_rmse,
            'n_rows': len(X_train),
            'n_skipped': n_skipped,
            'n_features': len(self.feature_columns),
        }

        # Out-of-bag residuals give an honest interval until calibrated
        if self.params.get('oob_score') and hasattr(self.model, 'oob_prediction_'):
            oob_residuals = y_train.values - self.model.oob_prediction_
            self.residual_std = float(np.std(oob_residuals, ddof=1))
            metrics['oob_r2'] = float(self.model.oob_score_)
        else:
            self.residual_std = train_rmse

        return metrics

    def predict(self, X: pd.DataFrame) -> pd.DataFrame:
        self._check_trained()
        X_aligned = X[self.feature_columns]
        if X_aligned.isna().any().any():
            bad = X_aligned.index[X_aligned.isna().any(axis=1)]
            raise ValueError(f"Missing feature values in rows {bad.min()} .. {bad.max()}")

        prediction = self.model.predict(X_aligned.values)
        result = self._interval(prediction, self.interval_std)
        result.index = X.index
        return result

    def feature_importances(self) -> pd.Series:
        self._check_trained()
        return pd.Series(self.model.feature_importances_,
                         index=self.feature_columns).sort_values(ascending=False)
