"""Test time-ordered training/assessment splits."""

import pytest
import pandas as pd
import numpy as np
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from price_forecast.backtest import TimeSeriesSplitter, to_timedelta
from price_forecast.exceptions import InsufficientDataError, LeakageError
from price_forecast.features import FeatureBuilder
from price_forecast.utils.helpers import ensure_no_leakage


def make_features(n: int = 400) -> pd.DataFrame:
    rng = np.random.default_rng(3)
    df = pd.DataFrame({
        'date': pd.date_range('2021-01-01', periods=n, freq='D'),
        'symbol': 'TEST',
        'close': np.cumsum(rng.normal(0, 1, n)),
    })
    builder = FeatureBuilder(forecast_horizon=30, lag_depth=30, rolling_windows=(30, 60, 90, 180))
    return builder.build_all_features(df)


def test_eight_week_assessment_on_400_days():
    features = make_features(400)
    assert len(features) == 430

    split = TimeSeriesSplitter(assessment="8 weeks").split(features)
    last_history = features.loc[~features['is_future'], 'date'].max()

    assert len(split.assessment) == 56
    assert len(split.training) == 344
    assert split.assessment['date'].max() == last_history
    assert split.training['date'].max() < split.assessment['date'].min()
    assert len(split.training) + len(split.assessment) == 400
    assert not split.assessment['is_future'].any()


def test_training_keeps_rows_with_missing_features():
    split = TimeSeriesSplitter(assessment="56 days").split(make_features(400))
    assert split.training['features_missing'].sum() == 30
    assert split.training['date'].min() == pd.Timestamp('2021-01-01')


def test_rolling_training_window():
    features = make_features(400)
    splitter = TimeSeriesSplitter(assessment="8 weeks", cumulative=False, train_window="100 days")
    split = splitter.split(features)

    assert len(split.assessment) == 56
    assert len(split.training) == 100
    gap = split.assessment['date'].min() - split.training['date'].max()
    assert gap == pd.Timedelta(days=1)


def test_rolling_requires_train_window():
    with pytest.raises(ValueError):
        TimeSeriesSplitter(cumulative=False)


def test_assessment_exceeding_history():
    with pytest.raises(InsufficientDataError):
        TimeSeriesSplitter(assessment="2 years").split(make_features(400))


def test_assessment_nearly_exhausting_history():
    splitter = TimeSeriesSplitter(assessment="380 days", min_training_rows=30)
    with pytest.raises(InsufficientDataError) as excinfo:
        splitter.split(make_features(400))
    assert excinfo.value.stage == "split"


def test_multiple_slices_step_back():
    features = make_features(400)
    splitter = TimeSeriesSplitter(assessment="8 weeks", skip="8 weeks")
    splits = splitter.splits(features, n_slices=3)

    assert [s.slice_id for s in splits] == [1, 2, 3]
    for split in splits:
        assert len(split.assessment) == 56
        assert split.training['date'].max() < split.assessment['date'].min()
    assert splits[0].assessment['date'].min() - splits[1].assessment['date'].min() == pd.Timedelta(weeks=8)

    plan = splitter.plan(splits)
    assert set(plan['role']) == {'training', 'assessment'}
    assert (plan.groupby('slice_id').size() == 400 - np.array([0, 56, 112])).all()


def test_training_needs_complete_feature_rows():
    # 87 days: 31 training rows, only the last one has a defined 30-day lag
    features = make_features(87)
    with pytest.raises(InsufficientDataError) as excinfo:
        TimeSeriesSplitter(assessment="8 weeks", min_training_rows=30).split(features)
    assert excinfo.value.stage == "split"
    assert "1 of 31" in str(excinfo.value)

    split = TimeSeriesSplitter(assessment="8 weeks", min_training_rows=1).split(features)
    assert len(split.training) == 31


def test_slices_stop_when_history_runs_out():
    splits = TimeSeriesSplitter(assessment="8 weeks").splits(make_features(200), n_slices=10)
    assert 1 <= len(splits) < 10


def test_to_timedelta_parsing():
    assert to_timedelta("8 weeks") == pd.Timedelta(days=56)
    assert to_timedelta("56 days") == pd.Timedelta(days=56)
    assert to_timedelta(10) == pd.Timedelta(days=10)
    assert to_timedelta("1 week") == pd.Timedelta(days=7)
    assert to_timedelta("8weeks") == pd.Timedelta(days=56)
    assert to_timedelta("  8   weeks ") == pd.Timedelta(days=56)
    assert to_timedelta("30") == pd.Timedelta(days=30)
    with pytest.raises(ValueError, match="Unknown period unit"):
        to_timedelta("3 fortnights")
    with pytest.raises(ValueError, match="Unknown period"):
        to_timedelta("eight weeks")
    with pytest.raises(ValueError, match="Unknown period"):
        to_timedelta("8 weeks ago")


def test_ensure_no_leakage_rejects_overlap():
    train = pd.DataFrame({'date': pd.date_range('2023-01-01', periods=10)})
    test = pd.DataFrame({'date': pd.date_range('2023-01-05', periods=10)})
    with pytest.raises(LeakageError):
        ensure_no_leakage(train, test)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
