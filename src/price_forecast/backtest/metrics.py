"""Accuracy metrics for point forecasts."""

from typing import Dict, Optional

import numpy as np
from sklearn.metrics import (
    mean_absolute_error, mean_absolute_percentage_error, mean_squared_error, r2_score
)

METRIC_NAMES = ['mae', 'mape', 'mase', 'smape', 'rmse', 'rsq']


def regression_metrics(y_true, y_pred, y_train: Optional[np.ndarray] = None) -> Dict[str, float]:
    """
    Forecast accuracy: MAE, MAPE and sMAPE (percent), MASE, RMSE and R².

    Args:
        y_true: Observed values
        y_pred: Point forecasts
        y_train: Training series used to scale MASE by the in-sample
            one-step naive error; MASE is NaN without it
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if len(y_true) == 0:
        raise ValueError("Cannot score an empty assessment window")

    mae = mean_absolute_error(y_true, y_pred)
    rmse = float(np.sqrt(mean_squared_error(y_true, y_pred)))
    mape = mean_absolute_percentage_error(y_true, y_pred) * 100

    denominator = np.abs(y_true) + np.abs(y_pred)
    with np.errstate(divide='ignore', invalid='ignore'):
        ratios = np.where(denominator == 0, 0.0, 2 * np.abs(y_pred - y_true) / denominator)
    smape = float(np.mean(ratios) * 100)

    mase = np.nan
    if y_train is not None and len(y_train) > 1:
        naive_error = np.mean(np.abs(np.diff(np.asarray(y_train, dtype=float))))
        if naive_error > 0:
            mase = mae / naive_error

    rsq = r2_score(y_true, y_pred) if len(y_true) > 1 else np.nan

    return {
        'mae': float(mae),
        'mape': float(mape),
        'mase': float(mase),
        'smape': smape,
        'rmse': rmse,
        'rsq': float(rsq),
    }
