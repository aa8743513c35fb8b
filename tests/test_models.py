"""Test forecasting models and accuracy metrics."""

import pytest
import pandas as pd
import numpy as np
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from price_forecast.backtest import regression_metrics
from price_forecast.models import (
    ArimaModel, RandomForestModel, MODEL_TYPES, create_model
)


def make_regression(n: int = 200, seed: int = 0):
    rng = np.random.default_rng(seed)
    X = pd.DataFrame(rng.normal(size=(n, 4)), columns=['a', 'b', 'c', 'd'])
    y = pd.Series(2 * X['a'] - X['b'] + rng.normal(0, 0.1, n))
    return X, y


def make_ar1(n: int = 300, phi: float = 0.7, seed: int = 1) -> pd.Series:
    rng = np.random.default_rng(seed)
    values = np.zeros(n)
    for t in range(1, n):
        values[t] = phi * values[t - 1] + rng.normal()
    return pd.Series(values)


def test_random_forest_fit_predict():
    X, y = make_regression()
    model = RandomForestModel(n_estimators=50, n_jobs=1)
    metrics = model.fit(X.iloc[:150], y.iloc[:150])

    assert model.is_trained
    assert metrics['n_rows'] == 150
    assert 'oob_r2' in metrics

    predictions = model.predict(X.iloc[150:])
    assert list(predictions.columns) == ['prediction', 'lower', 'upper']
    assert predictions.index.equals(X.index[150:])
    assert (predictions['lower'] <= predictions['prediction']).all()
    assert (predictions['prediction'] <= predictions['upper']).all()

    scores = model.score(X.iloc[150:], y.iloc[150:])
    assert set(scores) == {'mae', 'mape', 'mase', 'smape', 'rmse', 'rsq'}
    assert scores['rsq'] > 0.5


def test_random_forest_skips_missing_rows():
    X, y = make_regression()
    X.iloc[:20, 0] = np.nan
    model = RandomForestModel(n_estimators=20, n_jobs=1)
    metrics = model.fit(X, y)
    assert metrics['n_skipped'] == 20
    assert metrics['n_rows'] == 180

    with pytest.raises(ValueError):
        model.predict(X.iloc[:5])


def test_calibration_sets_interval_width():
    X, y = make_regression()
    model = RandomForestModel(n_estimators=30, n_jobs=1)
    model.fit(X.iloc[:150], y.iloc[:150])

    calibration = model.calibrate(X.iloc[150:], y.iloc[150:])
    assert list(calibration.columns) == ['actual', 'prediction', 'residual']
    np.testing.assert_allclose(calibration['residual'],
                               calibration['actual'] - calibration['prediction'])
    assert model.calibrated_std == pytest.approx(calibration['residual'].std(ddof=1))

    predictions = model.predict(X.iloc[150:])
    half_width = (predictions['upper'] - predictions['prediction']).iloc[0]
    assert half_width == pytest.approx(1.959963984540054 * model.calibrated_std)

    # Refit keeps the calibrated spread
    model.fit(X, y)
    assert model.interval_std == model.calibrated_std


def test_untrained_model_raises():
    X, _ = make_regression(10)
    with pytest.raises(ValueError):
        RandomForestModel().predict(X)
    with pytest.raises(ValueError):
        ArimaModel(order=(1, 0, 0)).predict(X)


def test_arima_recovers_ar_coefficient():
    y = make_ar1()
    X = pd.DataFrame(index=y.index)
    model = ArimaModel(order=(1, 0, 0))
    metrics = model.fit(X.iloc[:280], y.iloc[:280])

    assert metrics['order'] == (1, 0, 0)
    # Maximum likelihood lands next to the least-squares AR(1) fit of the same sample
    history = y.iloc[:280].values
    design = np.column_stack([np.ones(279), history[:-1]])
    phi_ols = np.linalg.lstsq(design, history[1:], rcond=None)[0][1]
    assert 0 < phi_ols < 1
    assert model.result.arparams[0] == pytest.approx(phi_ols, abs=0.05)

    predictions = model.predict(X.iloc[280:])
    assert len(predictions) == 20
    assert predictions.index.equals(X.index[280:])
    assert (predictions['lower'] < predictions['upper']).all()
    # Intervals widen with the horizon
    widths = predictions['upper'] - predictions['lower']
    assert widths.iloc[-1] >= widths.iloc[0]


def test_arima_order_search_picks_from_grid():
    y = make_ar1(200)
    X = pd.DataFrame(index=y.index)
    grid = [(1, 0, 0), (0, 0, 1)]
    model = ArimaModel(order_grid=grid)
    metrics = model.fit(X, y)
    assert metrics['order'] in grid
    assert model.selected_order == metrics['order']


def test_arima_with_exogenous_columns():
    n = 240
    t = np.arange(n)
    X = pd.DataFrame({
        'sin': np.sin(2 * np.pi * t / 30),
        'cos': np.cos(2 * np.pi * t / 30),
        'ignored': np.random.default_rng(0).normal(size=n),
    })
    y = pd.Series(3 * X['sin'] + make_ar1(n, phi=0.3).values * 0.1)

    model = ArimaModel(order=(1, 0, 0), exog_columns=['sin', 'cos'])
    metrics = model.fit(X.iloc[:200], y.iloc[:200])
    assert metrics['n_exog'] == 2

    scores = model.score(X.iloc[200:], y.iloc[200:])
    assert scores['rsq'] > 0.8


def test_save_and_load(tmp_path):
    X, y = make_regression()
    model = RandomForestModel(n_estimators=10, n_jobs=1)
    model.fit(X, y)
    path = tmp_path / "rf.joblib"
    model.save(str(path))

    restored = RandomForestModel().load(str(path))
    assert restored.is_trained
    pd.testing.assert_frame_equal(restored.predict(X.iloc[:5]), model.predict(X.iloc[:5]))


def test_create_model():
    assert isinstance(create_model('random_forest', n_estimators=5), RandomForestModel)
    assert isinstance(create_model('arima', order=(1, 0, 0)), ArimaModel)
    assert set(MODEL_TYPES) == {'random_forest', 'arima'}
    with pytest.raises(ValueError):
        create_model('prophet')


def test_regression_metrics_known_values():
    metrics = regression_metrics([1.0, 2.0, 3.0], [1.0, 2.0, 4.0], y_train=[1.0, 2.0, 3.0, 4.0])
    assert metrics['mae'] == pytest.approx(1 / 3)
    assert metrics['rmse'] == pytest.approx(np.sqrt(1 / 3))
    assert metrics['mase'] == pytest.approx(1 / 3)
    assert metrics['mape'] == pytest.approx(100 * (1 / 3) / 3)
    assert metrics['smape'] == pytest.approx(100 * (2 / 7) / 3)
    assert metrics['rsq'] == pytest.approx(0.5)


def test_regression_metrics_without_training_series():
    metrics = regression_metrics([1.0, 2.0], [1.5, 2.5])
    assert np.isnan(metrics['mase'])
    with pytest.raises(ValueError):
        regression_metrics([], [])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
