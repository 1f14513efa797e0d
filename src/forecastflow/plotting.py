"""
Plots of validation predictions, errors and forecasts.

Every function returns the matplotlib Figure; use save_figure to write PNGs.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for server-side rendering
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

logger = logging.getLogger(__name__)


def plot_predictions(
    predictions: pd.DataFrame,
    horizons: Optional[Iterable[int]] = None
) -> plt.Figure:
    """
    Actuals vs. validation predictions, one panel per horizon.

    Windows are shaded so overlapping or adjacent windows stay visible.
    """
    if predictions.empty:
        raise ValueError("No predictions to plot")

    if horizons is None:
        horizons = list(dict.fromkeys(predictions["horizon"]))
    else:
        horizons = list(horizons)

    fig, axes = plt.subplots(len(horizons), 1, figsize=(12, 3.5 * len(horizons)), squeeze=False)

    for ax, horizon in zip(axes[:, 0], horizons):
        subset = predictions[predictions["horizon"] == horizon]
        if subset.empty:
            ax.set_title(f"Horizon {horizon}: no predictions")
            continue

        actuals = subset.drop_duplicates("date").sort_values("date")
        ax.plot(actuals["date"], actuals["y"], color="black", linewidth=1.2, label="actual")

        for window_number, window_rows in subset.groupby("window_number", sort=True):
            ax.plot(window_rows["date"], window_rows["y_pred"], linewidth=1.2,
                    label=f"window {window_number}")
            if {"y_pred_lower", "y_pred_upper"} <= set(window_rows.columns):
                ax.fill_between(window_rows["date"], window_rows["y_pred_lower"],
                                window_rows["y_pred_upper"], alpha=0.2)
            ax.axvspan(window_rows["window_start"].iloc[0], window_rows["window_stop"].iloc[0],
                       color="grey", alpha=0.08)

        ax.set_title(f"Horizon {horizon}")
        ax.legend(loc="upper left", fontsize=8)

    fig.tight_layout()
    return fig


def plot_error(error_by_horizon: pd.DataFrame, metric: str = "mae") -> plt.Figure:
    """Bar chart of one error metric per horizon (and model)"""
    if metric not in error_by_horizon.columns:
        raise ValueError(f"Metric {metric} not in error table: {list(error_by_horizon.columns)}")

    pivot = error_by_horizon.pivot(index="horizon", columns="model", values=metric)

    fig, ax = plt.subplots(figsize=(10, 5))
    pivot.plot(kind="bar", ax=ax)
    ax.set_xlabel("Forecast horizon")
    ax.set_ylabel(metric.upper())
    ax.set_title(f"Validation {metric.upper()} by horizon")
    fig.tight_layout()
    return fig


def plot_forecasts(
    forecasts: pd.DataFrame,
    actuals: Optional[pd.Series] = None
) -> plt.Figure:
    """Forward forecasts per window, optionally after the observed history"""
    if forecasts.empty:
        raise ValueError("No forecasts to plot")

    fig, ax = plt.subplots(figsize=(12, 5))
    if actuals is not None:
        ax.plot(actuals.index, actuals.to_numpy(), color="black", linewidth=1.2, label="actual")

    for window_number, rows in forecasts.groupby("window_number", sort=True):
        rows = rows.sort_values("date")
        ax.plot(rows["date"], rows["y_pred"], marker="o", linewidth=1.2,
                label=f"window {window_number} model")

    ax.set_title("Forecasts")
    ax.legend(loc="upper left", fontsize=8)
    fig.tight_layout()
    return fig


def save_figure(fig: plt.Figure, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    logger.info(f"Saved plot to {path}")
    return path
