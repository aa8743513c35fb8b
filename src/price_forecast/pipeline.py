"""End-to-end forecasting run: load, transform, engineer, backtest, forecast."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .backtest.splitter import Split, TimeSeriesSplitter
from .data.price_loader import PriceLoader
from .features.feature_builder import FeatureBuilder
from .features.recipe import Recipe, RecipeBuilder
from .features.transforms import SeriesTransformer, TransformParams
from .forecast.evaluator import ModelEvaluator
from .forecast.forecaster import Forecaster
from .models.arima_model import ArimaModel
from .models.base_model import BaseModel
from .models.random_forest_model import RandomForestModel
from .plotting import charts
from .utils.config import PipelineConfig
from .utils.helpers import save_artifact

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything a run produces."""
    prices: pd.DataFrame
    params: TransformParams
    features: pd.DataFrame
    split: Split
    recipe: Recipe
    accuracy: pd.DataFrame
    forecast: pd.DataFrame
    assessment_predictions: Dict[str, pd.DataFrame] = field(default_factory=dict)
    charts: Dict[str, Path] = field(default_factory=dict)
    artifacts: Dict[str, Path] = field(default_factory=dict)


class ForecastPipeline:
    """
    Orchestrates one analysis run.

    Flow:
    1. Load and filter prices
    2. Bounded-log + standardize the close (parameters kept as data)
    3. Append the future block, build lag and rolling features
    4. Split into training and assessment windows
    5. Fit the covariate recipe on training rows
    6. Fit, calibrate and score both models
    7. Refit on the full history and forecast the future block
    8. Invert the transform and write tables and charts
    """

    def __init__(self, config: Optional[PipelineConfig] = None,
                 loader: Optional[PriceLoader] = None):
        self.config = config or PipelineConfig()
        self.loader = loader or PriceLoader()
        self.transformer = SeriesTransformer(
            lower=self.config.lower_limit,
            upper=self.config.upper_limit,
            offset=self.config.offset,
            upper_headroom=self.config.upper_headroom,
        )
        self.feature_builder = FeatureBuilder(
            forecast_horizon=self.config.forecast_horizon,
            lag_depth=self.config.lag_depth,
            rolling_windows=self.config.rolling_windows,
        )
        self.splitter = TimeSeriesSplitter(
            assessment=self.config.assessment,
            cumulative=self.config.cumulative,
            train_window=self.config.train_window,
            min_training_rows=self.config.min_training_rows,
        )
        self.recipe_builder = RecipeBuilder(
            fourier_periods=self.config.fourier_periods,
            fourier_order=self.config.fourier_order,
        )

    def load(self) -> pd.DataFrame:
        return self.loader.load(self.config.data_path, symbol=self.config.symbol,
                                start_date=self.config.start_date)

    def build_models(self, recipe: Recipe) -> List[BaseModel]:
        """The random forest and the ARIMA variant, configured from the run config."""
        rf_params = {'random_state': self.config.seed, **self.config.rf_params}
        return [
            RandomForestModel(confidence_level=self.config.confidence_level, **rf_params),
            ArimaModel(confidence_level=self.config.confidence_level,
                       order=self.config.arima_order,
                       exog_columns=recipe.fourier_columns),
        ]

    def run(self, prices: Optional[pd.DataFrame] = None) -> PipelineResult:
        """
        Execute the full run.

        Args:
            prices: Optional in-memory price table; read from config.data_path otherwise
        """
        if prices is None:
            prices = self.load()
        else:
            prices = self.loader.prepare(prices, symbol=self.config.symbol,
                                         start_date=self.config.start_date)
        logger.info("Running forecast for %s on %d rows", self.config.symbol, len(prices))

        transformed = self.transformer.transform_frame(prices, column='close')
        params = self.transformer.params

        features = self.feature_builder.build_all_features(transformed)
        split = self.splitter.split(features)

        recipe = self.recipe_builder.fit(split.training)
        models = self.build_models(recipe)

        evaluator = ModelEvaluator(models)
        accuracy = evaluator.evaluate(split, recipe)

        forecaster = Forecaster(models, self.recipe_builder)
        forecast = forecaster.forecast(features, params)

        assessment_predictions = {
            name: self.transformer.inverse_transform_frame(frame, params=params)
            for name, frame in evaluator.assessment_predictions.items()
        }

        result = PipelineResult(
            prices=prices,
            params=params,
            features=features,
            split=split,
            recipe=recipe,
            accuracy=accuracy,
            forecast=forecast,
            assessment_predictions=assessment_predictions,
        )

        if self.config.save_outputs:
            result.artifacts = self.save_outputs(result)
        if self.config.render_charts:
            result.charts = self.render_charts(result)

        logger.info("Accuracy:\n%s", accuracy.round(4).to_string())
        return result

    def save_outputs(self, result: PipelineResult) -> Dict[str, Path]:
        out_dir = Path(self.config.results_dir)
        symbol = self.config.symbol
        return {
            'accuracy': save_artifact(result.accuracy, out_dir / f"{symbol}_accuracy.csv"),
            'forecast': save_artifact(result.forecast, out_dir / f"{symbol}_forecast.csv"),
            'params': save_artifact(result.params.to_dict(), out_dir / f"{symbol}_transform_params.json"),
        }

    def render_charts(self, result: PipelineResult) -> Dict[str, Path]:
        chart_dir = Path(self.config.results_dir) / "charts"
        symbol = self.config.symbol
        lag_columns = self.feature_builder.feature_columns
        figures = {
            'time_series': charts.plot_time_series(result.prices),
            'candlestick': charts.plot_candlestick(result.prices),
            'lag_overlay': charts.plot_lag_overlay(result.features, lag_columns),
            'cv_plan': charts.plot_cv_plan(self.splitter.plan([result.split])),
            'accuracy': charts.plot_accuracy(result.accuracy),
            'forecast': charts.plot_forecast(result.prices, result.forecast),
        }
        return {name: charts.save_figure(fig, chart_dir / f"{symbol}_{name}.png")
                for name, fig in figures.items()}
