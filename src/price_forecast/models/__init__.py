"""Forecasting models."""

from .base_model import BaseModel, PREDICTION_COLUMNS
from .random_forest_model import RandomForestModel
from .arima_model import ArimaModel

MODEL_TYPES = {
    'random_forest': RandomForestModel,
    'arima': ArimaModel,
}


def create_model(name: str, **params) -> BaseModel:
    """Instantiate one of the supported model variants by name."""
    if name not in MODEL_TYPES:
        raise ValueError(f"Unknown model '{name}'; expected one of {sorted(MODEL_TYPES)}")
    return MODEL_TYPES[name](**params)


__all__ = [
    'BaseModel', 'PREDICTION_COLUMNS',
    'RandomForestModel', 'ArimaModel',
    'MODEL_TYPES', 'create_model'
]
