"""Fit models on the training window and score them on the assessment window."""

import logging
from typing import Dict, Iterable, List

import pandas as pd

from ..backtest.metrics import METRIC_NAMES
from ..backtest.splitter import Split
from ..features.recipe import Recipe
from ..models.base_model import BaseModel

logger = logging.getLogger(__name__)


class ModelEvaluator:
    """Train, calibrate and score a set of models on one split."""

    def __init__(self, models: Iterable[BaseModel], target_col: str = 'close'):
        self.models: List[BaseModel] = list(models)
        if not self.models:
            raise ValueError("ModelEvaluator needs at least one model")
        self.target_col = target_col
        self.training_metrics: Dict[str, dict] = {}
        self.calibration: Dict[str, pd.DataFrame] = {}
        self.assessment_predictions: Dict[str, pd.DataFrame] = {}

    def evaluate(self, split: Split, recipe: Recipe) -> pd.DataFrame:
        """
        Fit every model on the training rows and score it on the assessment rows.

        Returns:
            Accuracy table with one row per model and the METRIC_NAMES columns
        """
        X_train = recipe.bake(split.training)
        y_train = split.training[self.target_col]
        X_assess = recipe.bake(split.assessment)
        y_assess = split.assessment[self.target_col]

        rows = []
        for model in self.models:
            logger.info("Training %s on %d rows", model.name, len(X_train))
            self.training_metrics[model.name] = model.fit(X_train, y_train)

            calibration = model.calibrate(X_assess, y_assess)
            calibration.insert(0, 'date', split.assessment['date'].values)
            self.calibration[model.name] = calibration

            predictions = model.predict(X_assess)
            predictions.insert(0, 'date', split.assessment['date'].values)
            self.assessment_predictions[model.name] = predictions

            scores = model.score(X_assess, y_assess)
            logger.info("%s assessment: %s", model.name,
                        ", ".join(f"{k}={v:.4f}" for k, v in scores.items()))
            rows.append({'model': model.name, 'n_assessment': len(y_assess), **scores})

        accuracy = pd.DataFrame(rows, columns=['model', 'n_assessment'] + METRIC_NAMES)
        return accuracy.set_index('model')
