"""Configuration management for the pipeline."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

# Load environment variables
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
ENV_FILE = PROJECT_ROOT / "keys.env"

if ENV_FILE.exists():
    load_dotenv(ENV_FILE)
else:
    # Try loading from current directory or parent
    load_dotenv()

# Paths
DATA_DIR = PROJECT_ROOT / "data"
RAW_DATA_DIR = DATA_DIR / "raw"
PROCESSED_DATA_DIR = DATA_DIR / "processed"
MODELS_DIR = PROJECT_ROOT / "models"
RESULTS_DIR = PROJECT_ROOT / "results"
CHARTS_DIR = RESULTS_DIR / "charts"

# Data
DEFAULT_SYMBOL = "AAPL"
DEFAULT_START_DATE = "2016-01-01"
DEFAULT_DATA_FILE = RAW_DATA_DIR / "prices.csv"

# Feature engineering
FORECAST_HORIZON = 30
LAG_DEPTH = 30
ROLLING_WINDOWS = (30, 60, 90, 180)
FOURIER_PERIODS = (30, 60, 90, 180)
FOURIER_ORDER = 1

# Bounded-log transform (upper limit estimated from history when None)
LOWER_LIMIT = 0.0
UPPER_LIMIT = None
LIMIT_OFFSET = 1.0
UPPER_HEADROOM = 0.1

# Backtesting
ASSESSMENT_WINDOW = "8 weeks"
MIN_TRAINING_ROWS = 30
CONFIDENCE_LEVEL = 0.95

# Models
SEED = 42
RF_N_ESTIMATORS = 500
RF_MIN_SAMPLES_LEAF = 1


def ensure_directories():
    """Create the data and results directories used by the pipeline."""
    for dir_path in [RAW_DATA_DIR, PROCESSED_DATA_DIR, MODELS_DIR,
                     RESULTS_DIR, CHARTS_DIR]:
        dir_path.mkdir(parents=True, exist_ok=True)


@dataclass
class PipelineConfig:
    # Data
    symbol: str = DEFAULT_SYMBOL
    data_path: Path = DEFAULT_DATA_FILE
    start_date: Optional[str] = DEFAULT_START_DATE

    # Feature engineering
    forecast_horizon: int = FORECAST_HORIZON
    lag_depth: int = LAG_DEPTH
    rolling_windows: Tuple[int, ...] = ROLLING_WINDOWS
    fourier_periods: Tuple[int, ...] = FOURIER_PERIODS
    fourier_order: int = FOURIER_ORDER

    # Transform
    lower_limit: Optional[float] = LOWER_LIMIT
    upper_limit: Optional[float] = UPPER_LIMIT
    offset: float = LIMIT_OFFSET
    upper_headroom: float = UPPER_HEADROOM

    # Backtesting
    assessment: str = ASSESSMENT_WINDOW
    cumulative: bool = True
    train_window: Optional[str] = None
    min_training_rows: int = MIN_TRAINING_ROWS
    confidence_level: float = CONFIDENCE_LEVEL

    # Models
    seed: int = SEED
    rf_params: dict = field(default_factory=lambda: {
        'n_estimators': RF_N_ESTIMATORS,
        'min_samples_leaf': RF_MIN_SAMPLES_LEAF,
    })
    arima_order: Optional[Tuple[int, int, int]] = None

    # Outputs
    results_dir: Path = RESULTS_DIR
    save_outputs: bool = True
    render_charts: bool = True

    @classmethod
    def from_env(cls, **overrides) -> "PipelineConfig":
        """Build a config from FORECAST_* environment variables."""
        env = {}
        if os.getenv("FORECAST_SYMBOL"):
            env['symbol'] = os.getenv("FORECAST_SYMBOL")
        if os.getenv("FORECAST_DATA_PATH"):
            env['data_path'] = Path(os.getenv("FORECAST_DATA_PATH"))
        if os.getenv("FORECAST_START_DATE"):
            env['start_date'] = os.getenv("FORECAST_START_DATE")
        if os.getenv("FORECAST_HORIZON"):
            horizon = int(os.getenv("FORECAST_HORIZON"))
            env['forecast_horizon'] = horizon
            env['lag_depth'] = horizon
        env.update(overrides)
        return cls(**env)


CONFIG = PipelineConfig()
