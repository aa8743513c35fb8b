"""Test the future block, lag and rolling features."""

import pytest
import pandas as pd
import numpy as np
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from price_forecast.exceptions import InsufficientDataError, LeakageError
from price_forecast.features import FeatureBuilder, infer_frequency


def make_series(n: int, start: str = '2020-01-01', freq: str = 'D') -> pd.DataFrame:
    rng = np.random.default_rng(7)
    dates = pd.date_range(start, periods=n, freq=freq)
    return pd.DataFrame({
        'date': dates,
        'symbol': 'TEST',
        'close': np.cumsum(rng.normal(0, 1, n)),
    })


def test_ten_point_rolling_by_hand():
    """Centered partial windows on a 10-point series, checked by hand."""
    df = pd.DataFrame({
        'date': pd.date_range('2023-01-01', periods=10, freq='D'),
        'symbol': 'TEST',
        'close': np.arange(1.0, 11.0),
    })
    builder = FeatureBuilder(forecast_horizon=2, lag_depth=2, rolling_windows=(3, 4))
    features = builder.build_all_features(df)

    assert len(features) == 12
    expected_lag = [np.nan, np.nan, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10]
    np.testing.assert_array_equal(features['lag_2'].values, expected_lag)

    roll3 = features['lag_2_roll_3']
    assert np.isnan(roll3[0])
    assert roll3[1] == pytest.approx(1.0)     # window {nan, nan, 1}
    assert roll3[2] == pytest.approx(1.5)     # {nan, 1, 2}
    assert roll3[5] == pytest.approx(4.0)     # {3, 4, 5}
    # Last historical row: window truncated at the end of history,
    # the future row's lag (9) is not used
    assert roll3[9] == pytest.approx(7.5)     # {7, 8}
    # Future rows use the full extended lag
    assert roll3[10] == pytest.approx(9.0)    # {8, 9, 10}
    assert roll3[11] == pytest.approx(9.5)    # {9, 10}

    # Even windows cover [t - w/2, t + w/2 - 1]
    roll4 = features['lag_2_roll_4']
    assert roll4[5] == pytest.approx(3.5)     # {2, 3, 4, 5}
    assert roll4[9] == pytest.approx(7.0)     # {6, 7, 8}


def test_future_block_shape():
    builder = FeatureBuilder(forecast_horizon=30, lag_depth=30)
    features = builder.build_all_features(make_series(400))

    assert len(features) == 430
    future = features[features['is_future']]
    assert len(future) == 30
    assert future['close'].isna().all()
    assert (future['symbol'] == 'TEST').all()

    # Contiguous with the last historical date
    last_history = features.loc[~features['is_future'], 'date'].max()
    expected = pd.date_range(last_history + pd.Timedelta(days=1), periods=30, freq='D')
    assert list(future['date']) == list(expected)


def test_lag_references_close_k_rows_back():
    df = make_series(400)
    builder = FeatureBuilder(forecast_horizon=30, lag_depth=30)
    features = builder.build_all_features(df)

    lag = features['lag_30'].values
    close = features['close'].values
    for t in range(30, 430):
        assert lag[t] == close[t - 30]
    assert np.isnan(lag[:30]).all()


def test_missing_rows_are_flagged_not_dropped():
    builder = FeatureBuilder(forecast_horizon=30, lag_depth=30)
    features = builder.build_all_features(make_series(400))

    history = features[~features['is_future']]
    assert len(history) == 400
    assert history['features_missing'].sum() == 30
    assert history['features_missing'].iloc[:30].all()
    assert not features.loc[features['is_future'], 'features_missing'].any()
    assert builder.feature_metadata['n_missing'] == 30
    assert builder.feature_metadata['feature_columns'] == [
        'lag_30', 'lag_30_roll_30', 'lag_30_roll_60', 'lag_30_roll_90', 'lag_30_roll_180'
    ]


def test_historical_rolling_ignores_future_block():
    """Historical rolling values match a computation without the future block."""
    df = make_series(200)
    builder = FeatureBuilder(forecast_horizon=30, lag_depth=30, rolling_windows=(90,))
    features = builder.build_all_features(df)

    lag_history = df['close'].shift(30)
    expected = lag_history.rolling(90, center=True, min_periods=1).mean()
    history = features[~features['is_future']]
    np.testing.assert_allclose(history['lag_30_roll_90'].values, expected.values)


def test_business_day_calendar():
    dates = pd.bdate_range('2023-01-02', periods=60)
    dates = dates.delete(10)  # a holiday breaks the regular frequency
    df = pd.DataFrame({'date': dates, 'symbol': 'TEST', 'close': np.arange(59.0)})
    builder = FeatureBuilder(forecast_horizon=5, lag_depth=5, rolling_windows=(5,))
    features = builder.extend_future(df)

    future_dates = features.loc[features['is_future'], 'date']
    assert len(future_dates) == 5
    assert (future_dates.dt.dayofweek < 5).all()
    assert future_dates.iloc[0] > dates[-1]


def test_infer_frequency_daily():
    dates = pd.Series(pd.date_range('2023-01-01', periods=10, freq='D'))
    assert infer_frequency(dates).freqstr == 'D'


def test_check_no_leakage_detects_shifted_lag():
    builder = FeatureBuilder(forecast_horizon=10, lag_depth=10, rolling_windows=(10,))
    features = builder.build_all_features(make_series(100))

    tampered = features.copy()
    tampered['lag_10'] = tampered['close'].shift(5)
    with pytest.raises(LeakageError):
        builder.check_no_leakage(tampered)

    labelled_future = features.copy()
    labelled_future.loc[labelled_future['is_future'], 'close'] = 1.0
    with pytest.raises(LeakageError):
        builder.check_no_leakage(labelled_future)


def test_duplicate_dates_rejected():
    df = make_series(50)
    df.loc[5, 'date'] = df.loc[4, 'date']
    builder = FeatureBuilder(forecast_horizon=5, lag_depth=5, rolling_windows=(5,))
    with pytest.raises(LeakageError):
        builder.build_all_features(df)


def test_too_short_for_lag():
    builder = FeatureBuilder(forecast_horizon=30, lag_depth=30)
    with pytest.raises(InsufficientDataError):
        builder.build_all_features(make_series(30))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
