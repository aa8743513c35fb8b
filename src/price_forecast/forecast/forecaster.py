"""Refit on the full history and forecast the future block in price units."""

import logging
from typing import Iterable, List

import pandas as pd

from ..features.recipe import RecipeBuilder
from ..features.transforms import SeriesTransformer, TransformParams
from ..models.base_model import BaseModel, PREDICTION_COLUMNS

logger = logging.getLogger(__name__)


class Forecaster:
    """
    Refit calibrated models on every labelled row and predict the future rows.

    Calibration residuals survive the refit, so interval widths still
    reflect out-of-sample error.
    """

    def __init__(self, models: Iterable[BaseModel], recipe_builder: RecipeBuilder,
                 target_col: str = 'close'):
        self.models: List[BaseModel] = list(models)
        self.recipe_builder = recipe_builder
        self.target_col = target_col
        self.recipe = None

    def forecast(self, features: pd.DataFrame, params: TransformParams) -> pd.DataFrame:
        """
        Args:
            features: Feature rows including the future block (`is_future`)
            params: Parameters of the forward transform applied to `close`

        Returns:
            Long forecast table: date, model, prediction, lower, upper in
            original price units
        """
        future_mask = features['is_future'].astype(bool)
        history = features[~future_mask & features[self.target_col].notna()]
        future = features[future_mask]
        if future.empty:
            raise ValueError("No future rows to forecast")

        self.recipe = self.recipe_builder.fit(history)
        X_history = self.recipe.bake(history)
        y_history = history[self.target_col]
        X_future = self.recipe.bake(future)

        inverse = SeriesTransformer()
        frames = []
        for model in self.models:
            logger.info("Refitting %s on %d rows", model.name, len(X_history))
            model.fit(X_history, y_history)

            predictions = model.predict(X_future)
            predictions = inverse.inverse_transform_frame(predictions, PREDICTION_COLUMNS, params)
            predictions.insert(0, 'model', model.name)
            predictions.insert(0, 'date', future['date'].values)
            frames.append(predictions)

        forecast = pd.concat(frames, ignore_index=True)
        logger.info("Forecast %d future rows for %d models (%s to %s)",
                    len(future), len(self.models), future['date'].min().date(),
                    future['date'].max().date())
        return forecast
