"""Helper functions for data processing and validation."""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

import pandas as pd

from ..exceptions import DataLoadError, LeakageError

logger = logging.getLogger(__name__)

ARTIFACT_FORMATS = ('csv', 'json')


def validate_dataframe(df: pd.DataFrame, required_columns: Iterable[str],
                       check_nulls: bool = True, stage: str = "load") -> bool:
    """Validate dataframe has required columns and optionally no nulls."""
    required_columns = list(required_columns)
    missing = set(required_columns) - set(df.columns)
    if missing:
        raise DataLoadError(f"Missing columns: {sorted(missing)}", stage=stage)

    if check_nulls:
        null_counts = df[required_columns].isnull().sum()
        if null_counts.any():
            logger.warning("Null values found:\n%s", null_counts[null_counts > 0])

    return True


def date_range_of(df: pd.DataFrame, date_col: str = 'date') -> Optional[tuple]:
    """Return (first, last) date of a frame for error reporting."""
    if df.empty:
        return None
    dates = df[date_col] if date_col in df.columns else df.index
    return (pd.Timestamp(dates.min()).date(), pd.Timestamp(dates.max()).date())


def ensure_no_leakage(train_data: pd.DataFrame, test_data: pd.DataFrame,
                      date_col: str = 'date') -> tuple:
    """Ensure no data leakage between train and test sets."""
    if date_col in train_data.columns:
        max_train_date = train_data[date_col].max()
        min_test_date = test_data[date_col].min()
    else:
        max_train_date = train_data.index.max()
        min_test_date = test_data.index.min()

    if max_train_date >= min_test_date:
        raise LeakageError(
            f"Training ends {max_train_date} but assessment starts {min_test_date}",
            stage="split",
            rows=(min_test_date, max_train_date),
        )

    return train_data, test_data


def _artifact_format(path: Path, format: Optional[str]) -> str:
    format = (format or path.suffix.lstrip('.')).lower()
    if format not in ARTIFACT_FORMATS:
        raise ValueError(f"Unknown format: {format!r} (expected one of {ARTIFACT_FORMATS})")
    return format


def save_artifact(data: Any, filepath, format: Optional[str] = None) -> Path:
    """
    Write a result table (csv) or a parameter mapping (json).

    The format defaults to the file suffix.
    """
    path = Path(filepath)
    format = _artifact_format(path, format)
    path.parent.mkdir(parents=True, exist_ok=True)

    if format == 'csv':
        if not isinstance(data, pd.DataFrame):
            raise ValueError("CSV format only supports DataFrames")
        data.to_csv(path, index=not isinstance(data.index, pd.RangeIndex))
    else:
        with open(path, 'w') as f:
            json.dump(data, f, indent=2, default=str)

    logger.info("Saved %s artifact to %s", format, path)
    return path


def load_artifact(filepath, format: Optional[str] = None):
    """Read back an artifact written by save_artifact."""
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Artifact not found: {filepath}")

    if _artifact_format(path, format) == 'csv':
        table = pd.read_csv(path)
        if 'date' in table.columns:
            table['date'] = pd.to_datetime(table['date'])
        if 'model' in table.columns and table['model'].is_unique:
            table = table.set_index('model')
        return table

    with open(path, 'r') as f:
        return json.load(f)
