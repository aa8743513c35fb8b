"""Single-equity price forecasting: transforms, lag features, backtest and forecasts."""

from .exceptions import (
    PipelineError, DataLoadError, DomainError, InsufficientDataError, LeakageError
)
from .pipeline import ForecastPipeline, PipelineResult
from .utils.config import PipelineConfig

__version__ = "0.1.0"

__all__ = [
    'PipelineError', 'DataLoadError', 'DomainError', 'InsufficientDataError', 'LeakageError',
    'ForecastPipeline', 'PipelineResult', 'PipelineConfig'
]
