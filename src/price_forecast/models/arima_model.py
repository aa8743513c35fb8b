"""ARIMA model of the transformed close, optionally with Fourier regressors."""

import itertools
import logging
import warnings
from typing import Dict, Any, List, Optional, Tuple

import numpy as np
import pandas as pd
from statsmodels.tsa.arima.model import ARIMA
from tqdm import tqdm

from .base_model import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_ORDER_GRID = list(itertools.product(range(3), range(2), range(3)))


class ArimaModel(BaseModel):
    """
    Classical autoregressive model.

    predict() forecasts len(X) steps past the end of the fitted series, so
    X must be the rows that immediately follow the training rows (the
    assessment window, or the future block after a refit).
    """

    def __init__(self, confidence_level: float = 0.95,
                 order: Optional[Tuple[int, int, int]] = None,
                 exog_columns: Optional[List[str]] = None,
                 order_grid: Optional[List[Tuple[int, int, int]]] = None,
                 verbose: bool = False):
        super().__init__("ARIMA", confidence_level)
        self.order = tuple(order) if order is not None else None
        self.exog_columns = list(exog_columns) if exog_columns else []
        self.order_grid = order_grid or DEFAULT_ORDER_GRID
        self.verbose = verbose
        self.result = None
        self.selected_order = None

    def fit(self, X: pd.DataFrame, y: pd.Series, **kwargs) -> Dict[str, Any]:
        """Fit the given order, or the lowest-AIC order of the grid."""
        if y.isna().any():
            raise ValueError("ARIMA target contains missing values")
        self.feature_columns = X.columns.tolist()
        endog = y.values.astype(float)
        exog = self._exog(X)

        if self.order is not None:
            self.result = self._fit_order(endog, exog, self.order)
            self.selected_order = self.order
        else:
            self.result, self.selected_order = self._search_order(endog, exog)

        self.is_trained = True
        self._y_train = endog
        self.residual_std = float(np.std(self.result.resid, ddof=1))
        logger.info("ARIMA%s fitted on %d rows (AIC %.2f, %d exogenous columns)",
                    self.selected_order, len(endog), self.result.aic, len(self.exog_columns))

        return {
            'order': self.selected_order,
            'aic': float(self.result.aic),
            'bic': float(self.result.bic),
            'n_rows': len(endog),
            'n_exog': len(self.exog_columns),
        }

    def predict(self, X: pd.DataFrame) -> pd.DataFrame:
        self._check_trained()
        forecast = self.result.get_forecast(steps=len(X), exog=self._exog(X))
        mean = np.asarray(forecast.predicted_mean, dtype=float)
        interval = np.asarray(forecast.conf_int(alpha=1 - self.confidence_level), dtype=float)
        return pd.DataFrame({
            'prediction': mean,
            'lower': interval[:, 0],
            'upper': interval[:, 1],
        }, index=X.index)

    def _exog(self, X: pd.DataFrame) -> Optional[np.ndarray]:
        if not self.exog_columns:
            return None
        return X[self.exog_columns].values.astype(float)

    def _fit_order(self, endog: np.ndarray, exog: Optional[np.ndarray],
                   order: Tuple[int, int, int]):
        trend = 'c' if order[1] == 0 else 'n'
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            return ARIMA(endog, exog=exog, order=order, trend=trend).fit()

    def _search_order(self, endog: np.ndarray, exog: Optional[np.ndarray]):
        best_result, best_order = None, None
        for order in tqdm(self.order_grid, desc="ARIMA order search", disable=not self.verbose):
            try:
                result = self._fit_order(endog, exog, order)
            except (ValueError, np.linalg.LinAlgError) as e:
                logger.debug("ARIMA%s failed: %s", order, e)
                continue
            if not np.isfinite(result.aic):
                continue
            if best_result is None or result.aic < best_result.aic:
                best_result, best_order = result, order

        if best_result is None:
            raise ValueError("No ARIMA order in the grid could be fitted")
        return best_result, best_order
