"""Configuration and shared helpers."""

from .config import CONFIG, PipelineConfig, ensure_directories
from .helpers import (
    validate_dataframe, ensure_no_leakage, save_artifact, load_artifact
)

__all__ = [
    'CONFIG', 'PipelineConfig', 'ensure_directories',
    'validate_dataframe', 'ensure_no_leakage', 'save_artifact', 'load_artifact'
]
