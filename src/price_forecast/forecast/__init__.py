"""Model evaluation and forecasting."""

from .evaluator import ModelEvaluator
from .forecaster import Forecaster

__all__ = ['ModelEvaluator', 'Forecaster']
