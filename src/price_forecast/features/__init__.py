"""Transforms, feature engineering and covariate recipes."""

from .transforms import SeriesTransformer, TransformParams, log_interval, log_interval_inverse
from .feature_builder import FeatureBuilder, infer_frequency
from .recipe import RecipeBuilder, Recipe, timeseries_signature, fourier_terms

__all__ = [
    'SeriesTransformer', 'TransformParams', 'log_interval', 'log_interval_inverse',
    'FeatureBuilder', 'infer_frequency',
    'RecipeBuilder', 'Recipe', 'timeseries_signature', 'fourier_terms'
]
