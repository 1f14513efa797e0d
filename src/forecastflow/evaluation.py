# file: src/forecastflow/evaluation.py
"""
Aggregation and error metrics

Collects validation predictions and forecasts from a ResultStore into long
tables, resolves overlapping windows and computes accuracy with explicit
NaN handling (fail-loud principle).
"""

import logging
from typing import Callable, Dict, Iterable, List

import numpy as np
import pandas as pd

from .exceptions import ShapeMismatch
from .lagged import LaggedDataset
from .results import PredictionResult, ResultStore

logger = logging.getLogger(__name__)

PREDICTION_COLUMNS = [
    "model", "horizon", "window_number", "window_start", "window_stop", "date", "y", "y_pred"
]
FORECAST_COLUMNS = ["model", "horizon", "window_number", "forecast_period", "date", "y_pred"]


class ForecastMetrics:
    """Compute forecasting evaluation metrics"""

    @staticmethod
    def _valid(y_true: np.ndarray, y_pred: np.ndarray) -> np.ndarray:
        return np.isfinite(y_pred) & np.isfinite(y_true)

    @staticmethod
    def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """
        Root Mean Squared Error

        Returns NaN if no valid predictions; masks NaN/inf values first.
        """
        valid_mask = ForecastMetrics._valid(y_true, y_pred)

        if valid_mask.sum() == 0:
            return np.nan

        return float(np.sqrt(np.mean((y_pred[valid_mask] - y_true[valid_mask]) ** 2)))

    @staticmethod
    def mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """Mean Absolute Error (NaN if no valid predictions)"""
        valid_mask = ForecastMetrics._valid(y_true, y_pred)

        if valid_mask.sum() == 0:
            return np.nan

        return float(np.mean(np.abs(y_pred[valid_mask] - y_true[valid_mask])))

    @staticmethod
    def mape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """
        Mean Absolute Percentage Error (%)

        Masks NaN/inf values and zero y_true before computation.
        """
        valid_mask = ForecastMetrics._valid(y_true, y_pred) & (np.abs(y_true) > 1e-10)

        if valid_mask.sum() == 0:
            return np.nan

        ape = np.abs((y_pred[valid_mask] - y_true[valid_mask]) / np.abs(y_true[valid_mask]))
        return float(100 * np.mean(ape))

    @staticmethod
    def mdape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """Median Absolute Percentage Error (%)"""
        valid_mask = ForecastMetrics._valid(y_true, y_pred) & (np.abs(y_true) > 1e-10)

        if valid_mask.sum() == 0:
            return np.nan

        ape = np.abs((y_pred[valid_mask] - y_true[valid_mask]) / np.abs(y_true[valid_mask]))
        return float(100 * np.median(ape))

    @staticmethod
    def smape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """
        Symmetric Mean Absolute Percentage Error (%, 0 to 200)

        Rows where both actual and prediction are zero are masked.
        """
        denom = np.abs(y_true) + np.abs(y_pred)
        valid_mask = ForecastMetrics._valid(y_true, y_pred) & (denom > 1e-10)

        if valid_mask.sum() == 0:
            return np.nan

        ratio = np.abs(y_pred[valid_mask] - y_true[valid_mask]) / (denom[valid_mask] / 2)
        return float(100 * np.mean(ratio))

    @staticmethod
    def coverage(y_true: np.ndarray, lower: np.ndarray, upper: np.ndarray) -> float:
        """Share of actuals inside [lower, upper] (%), over rows with finite bounds"""
        valid_mask = np.isfinite(y_true) & np.isfinite(lower) & np.isfinite(upper)

        if valid_mask.sum() == 0:
            return np.nan

        actual = y_true[valid_mask]
        inside = (actual >= lower[valid_mask]) & (actual <= upper[valid_mask])
        return float(100 * np.mean(inside))


METRICS: Dict[str, Callable[[np.ndarray, np.ndarray], float]] = {
    "mae": ForecastMetrics.mae,
    "rmse": ForecastMetrics.rmse,
    "mape": ForecastMetrics.mape,
    "mdape": ForecastMetrics.mdape,
    "smape": ForecastMetrics.smape,
}


def _check_alignment(result: PredictionResult, on_mismatch: str) -> bool:
    if result.is_aligned:
        return True
    if on_mismatch == "raise":
        raise ShapeMismatch(result.horizon, result.window_id, len(result.dates), result.n_rows)
    logger.warning(
        f"Skipping horizon {result.horizon} window {result.window_id}: "
        f"{result.n_rows} predictions for {len(result.dates)} dates"
    )
    return False


def collect_predictions(
    store: ResultStore,
    lagged: Dict[int, LaggedDataset],
    on_mismatch: str = "raise"
) -> pd.DataFrame:
    """
    Long table of validation predictions next to the actual outcome

    Args:
        store: ResultStore after predict_model on train-mode data
        lagged: Train-mode datasets (source of the actuals)
        on_mismatch: "raise" a ShapeMismatch or "warn" and skip misaligned pairs

    Returns:
        DataFrame with one row per predicted date per (horizon, window)
    """
    if on_mismatch not in ("raise", "warn"):
        raise ValueError(f"Unknown on_mismatch: {on_mismatch}")

    frames = []
    for window, result in store.predictions(mode="train"):
        if not _check_alignment(result, on_mismatch):
            continue
        if result.horizon not in lagged:
            raise ValueError(f"No actuals for horizon {result.horizon}")

        actual = lagged[result.horizon].outcome.reindex(result.dates)
        frame = pd.DataFrame({
            "model": store.model_name,
            "horizon": result.horizon,
            "window_number": result.window_id,
            "window_start": window.start,
            "window_stop": window.stop,
            "date": result.dates,
            "y": actual.to_numpy(),
        })
        frames.append(pd.concat([frame, result.table], axis=1))

    if not frames:
        return pd.DataFrame(columns=PREDICTION_COLUMNS)

    predictions = pd.concat(frames, ignore_index=True)
    logger.info(f"Collected {len(predictions)} validation predictions from {len(frames)} pairs")
    return predictions


def combine_predictions(
    predictions: pd.DataFrame,
    overlap_policy: str = "last"
) -> pd.DataFrame:
    """
    One prediction per (model, horizon, date)

    Args:
        predictions: Output of collect_predictions
        overlap_policy: "last" keeps the highest-numbered window covering a
            date; "mean" averages all windows covering it

    Returns:
        DataFrame with columns model, horizon, date, y, y_pred[, intervals], n_windows
    """
    keys = ["model", "horizon", "date"]
    value_cols = [c for c in ("y_pred", "y_pred_lower", "y_pred_upper") if c in predictions.columns]

    if predictions.empty:
        return pd.DataFrame(columns=keys + ["y"] + value_cols + ["n_windows"])

    ordered = predictions.sort_values(keys + ["window_number"], kind="mergesort")

    if overlap_policy == "last":
        ordered = ordered.assign(n_windows=ordered.groupby(keys)["window_number"].transform("size"))
        combined = ordered.drop_duplicates(subset=keys, keep="last")
        combined = combined[keys + ["y"] + value_cols + ["n_windows"]]
    elif overlap_policy == "mean":
        agg = {"y": "first", "window_number": "size"}
        agg.update({col: "mean" for col in value_cols})
        combined = ordered.groupby(keys, sort=True).agg(agg).reset_index()
        combined = combined.rename(columns={"window_number": "n_windows"})
        combined = combined[keys + ["y"] + value_cols + ["n_windows"]]
    else:
        raise ValueError(f"Unknown overlap_policy: {overlap_policy}")

    n_overlap = int((combined["n_windows"] > 1).sum())
    if n_overlap:
        logger.info(f"Resolved {n_overlap} overlapping dates with policy '{overlap_policy}'")

    return combined.reset_index(drop=True)


def collect_forecasts(store: ResultStore, on_mismatch: str = "raise") -> pd.DataFrame:
    """
    Long table of forward forecasts, one row per forecast period per pair

    Args:
        store: ResultStore after predict_model on forecast-mode data
        on_mismatch: "raise" or "warn" for misaligned forecasts

    Returns:
        DataFrame with columns model, horizon, window_number, forecast_period, date, y_pred[...]
    """
    frames = []
    for window, result in store.predictions(mode="forecast"):
        if not _check_alignment(result, on_mismatch):
            continue
        frame = pd.DataFrame({
            "model": store.model_name,
            "horizon": result.horizon,
            "window_number": result.window_id,
            "forecast_period": np.arange(1, len(result.dates) + 1),
            "date": result.dates,
        })
        frames.append(pd.concat([frame, result.table], axis=1))

    if not frames:
        return pd.DataFrame(columns=FORECAST_COLUMNS)

    return pd.concat(frames, ignore_index=True)


def combine_forecasts(forecasts: pd.DataFrame) -> pd.DataFrame:
    """
    Pick the shortest-horizon model for every forecast period

    For forecast period p, the model trained for the smallest horizon
    h >= p is used (per window).

    Args:
        forecasts: Output of collect_forecasts

    Returns:
        DataFrame with one row per (model, window_number, forecast_period)
    """
    if forecasts.empty:
        return forecasts.copy()

    eligible = forecasts[forecasts["horizon"] >= forecasts["forecast_period"]]
    combined = (
        eligible
        .sort_values(["model", "window_number", "forecast_period", "horizon"], kind="mergesort")
        .drop_duplicates(subset=["model", "window_number", "forecast_period"], keep="first")
        .reset_index(drop=True)
    )
    return combined


def compute_errors(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    metrics: Iterable[str] = ("mae", "rmse", "mape", "smape")
) -> Dict[str, float]:
    """
    Compute the requested metrics plus the valid row count

    Args:
        y_true: Actual values
        y_pred: Predictions
        metrics: Names from METRICS

    Returns:
        Dictionary of metrics
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    unknown = [m for m in metrics if m not in METRICS]
    if unknown:
        raise ValueError(f"Unknown metrics: {unknown} (available: {sorted(METRICS)})")

    result = {name: METRICS[name](y_true, y_pred) for name in metrics}
    result["valid_count"] = int(ForecastMetrics._valid(y_true, y_pred).sum())
    return result


def _grouped_errors(
    predictions: pd.DataFrame,
    by: List[str],
    metrics: Iterable[str]
) -> pd.DataFrame:
    has_intervals = {"y_pred_lower", "y_pred_upper"} <= set(predictions.columns)
    columns = by + list(metrics) + (["coverage"] if has_intervals else []) + ["valid_count"]

    rows = []
    for keys, group in predictions.groupby(by, sort=False):
        if not isinstance(keys, tuple):
            keys = (keys,)
        row = dict(zip(by, keys))
        y_true = group["y"].to_numpy(dtype=float)
        row.update(compute_errors(y_true, group["y_pred"].to_numpy(dtype=float), metrics))
        if has_intervals:
            row["coverage"] = ForecastMetrics.coverage(
                y_true,
                group["y_pred_lower"].to_numpy(dtype=float),
                group["y_pred_upper"].to_numpy(dtype=float),
            )
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def return_error(
    predictions: pd.DataFrame,
    metrics: Iterable[str] = ("mae", "rmse", "mape", "smape")
) -> Dict[str, pd.DataFrame]:
    """
    Validation error by window, by horizon and overall

    Horizon and global errors are computed on the pooled rows, not as a
    mean of window errors. When the predictions carry interval columns,
    a coverage column (% of actuals inside the interval) is added.

    Args:
        predictions: Output of collect_predictions
        metrics: Metric names (mae, rmse, mape, mdape, smape)

    Returns:
        Dictionary with error_by_window, error_by_horizon, error_global
    """
    metrics = list(metrics)

    by_window = _grouped_errors(
        predictions, ["model", "horizon", "window_number"], metrics
    )
    if not predictions.empty:
        bounds = predictions.groupby(
            ["model", "horizon", "window_number"], sort=False
        )[["window_start", "window_stop"]].first().reset_index()
        by_window = by_window.merge(bounds, on=["model", "horizon", "window_number"], how="left")

    return {
        "error_by_window": by_window,
        "error_by_horizon": _grouped_errors(predictions, ["model", "horizon"], metrics),
        "error_global": _grouped_errors(predictions, ["model"], metrics),
    }
