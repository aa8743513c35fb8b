"""Presentation charts for prices, features, backtest plan, accuracy and forecasts."""

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.figure import Figure
from matplotlib.patches import Rectangle

logger = logging.getLogger(__name__)

FIGSIZE = (11, 6)


def plot_time_series(prices: pd.DataFrame, column: str = 'close',
                     smooth_window: Optional[int] = 30, title: Optional[str] = None) -> Figure:
    """Line chart of one price column with an optional centered smoother."""
    fig, ax = plt.subplots(figsize=FIGSIZE)
    ax.plot(prices['date'], prices[column], label=column, linewidth=1)
    if smooth_window:
        smooth = prices[column].rolling(smooth_window, center=True, min_periods=1).mean()
        ax.plot(prices['date'], smooth, label=f'{smooth_window}-day smoother', linewidth=2)
    ax.set_title(title or f"{_symbol(prices)} {column}")
    ax.set_xlabel('date')
    ax.legend()
    ax.grid(True)
    return fig


def plot_candlestick(prices: pd.DataFrame, last_n: Optional[int] = 90,
                     title: Optional[str] = None) -> Figure:
    """OHLC candlesticks; green for up days, red for down days."""
    data = prices.tail(last_n) if last_n else prices
    fig, ax = plt.subplots(figsize=FIGSIZE)
    x = np.arange(len(data))
    width = 0.6
    for i, row in enumerate(data.itertuples(index=False)):
        color = 'tab:green' if row.close >= row.open else 'tab:red'
        ax.vlines(x[i], row.low, row.high, color=color, linewidth=1)
        bottom = min(row.open, row.close)
        height = max(abs(row.close - row.open), 1e-9)
        ax.add_patch(Rectangle((x[i] - width / 2, bottom), width, height,
                               facecolor=color, edgecolor=color))

    ticks = x[::max(1, len(x) // 8)]
    ax.set_xticks(ticks)
    ax.set_xticklabels([data['date'].iloc[i].strftime('%Y-%m-%d') for i in ticks], rotation=30)
    ax.set_xlim(-1, len(data))
    ax.set_title(title or f"{_symbol(prices)} candlestick (last {len(data)} days)")
    ax.grid(True)
    fig.tight_layout()
    return fig


def plot_lag_overlay(features: pd.DataFrame, columns: Sequence[str],
                     target_col: str = 'close', title: str = "Lag and rolling features") -> Figure:
    """Target against its lag and rolling features, future block shaded."""
    fig, ax = plt.subplots(figsize=FIGSIZE)
    ax.plot(features['date'], features[target_col], label=target_col, linewidth=1.5, color='black')
    for column in columns:
        ax.plot(features['date'], features[column], label=column, linewidth=1)
    if 'is_future' in features.columns and features['is_future'].any():
        future_dates = features.loc[features['is_future'].astype(bool), 'date']
        ax.axvspan(future_dates.min(), future_dates.max(), alpha=0.1, color='grey',
                   label='future block')
    ax.set_title(title)
    ax.legend(loc='best', fontsize='small')
    ax.grid(True)
    return fig


def plot_cv_plan(plan: pd.DataFrame, title: str = "Backtest plan") -> Figure:
    """One panel per slice, training and assessment rows coloured."""
    slice_ids = sorted(plan['slice_id'].unique())
    fig, axes = plt.subplots(len(slice_ids), 1, figsize=(FIGSIZE[0], 3 * len(slice_ids)),
                             sharex=True, squeeze=False)
    for ax, slice_id in zip(axes[:, 0], slice_ids):
        rows = plan[plan['slice_id'] == slice_id]
        for role, color in (('training', 'tab:blue'), ('assessment', 'tab:red')):
            part = rows[rows['role'] == role]
            ax.plot(part['date'], part['close'], color=color, label=role, linewidth=1)
        ax.set_title(f"Slice {slice_id}")
        ax.legend(loc='upper left', fontsize='small')
        ax.grid(True)
    fig.suptitle(title)
    fig.tight_layout()
    return fig


def plot_accuracy(accuracy: pd.DataFrame, metrics: Iterable[str] = ('mae', 'rmse', 'mase', 'rsq'),
                  title: str = "Assessment accuracy") -> Figure:
    """Grouped bars of accuracy metrics, one group per metric."""
    metrics = [m for m in metrics if m in accuracy.columns]
    fig, ax = plt.subplots(figsize=FIGSIZE)
    x = np.arange(len(metrics))
    width = 0.8 / max(1, len(accuracy))
    for i, (model, row) in enumerate(accuracy.iterrows()):
        ax.bar(x + i * width, row[metrics].astype(float).values, width, label=str(model))
    ax.set_xticks(x + width * (len(accuracy) - 1) / 2)
    ax.set_xticklabels(metrics)
    ax.set_title(title)
    ax.legend()
    ax.grid(True, axis='y')
    return fig


def plot_forecast(history: pd.DataFrame, forecast: pd.DataFrame, target_col: str = 'close',
                  last_n: Optional[int] = 180, title: Optional[str] = None) -> Figure:
    """Historical prices followed by each model's forecast and interval band."""
    data = history.tail(last_n) if last_n else history
    fig, ax = plt.subplots(figsize=FIGSIZE)
    ax.plot(data['date'], data[target_col], label='Historical', color='black', linewidth=1)
    for model, rows in forecast.groupby('model', sort=False):
        line, = ax.plot(rows['date'], rows['prediction'], label=f'{model} forecast')
        ax.fill_between(rows['date'], rows['lower'], rows['upper'], alpha=0.2,
                        color=line.get_color(), label=f'{model} interval')
    ax.set_title(title or f"{_symbol(history)} forecast")
    ax.legend(loc='best', fontsize='small')
    ax.grid(True)
    return fig


def save_figure(fig: Figure, path, dpi: int = 100) -> Path:
    """Write a figure to disk and release it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches='tight')
    plt.close(fig)
    logger.info("Saved chart %s", path)
    return path


def _symbol(prices: pd.DataFrame) -> str:
    if 'symbol' in prices.columns and not prices.empty:
        return str(prices['symbol'].iloc[0])
    return ''
