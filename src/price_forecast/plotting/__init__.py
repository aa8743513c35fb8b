"""Charts."""

from .charts import (
    plot_time_series, plot_candlestick, plot_lag_overlay, plot_cv_plan,
    plot_accuracy, plot_forecast, save_figure
)

__all__ = [
    'plot_time_series', 'plot_candlestick', 'plot_lag_overlay', 'plot_cv_plan',
    'plot_accuracy', 'plot_forecast', 'save_figure'
]
