# file: src/forecastflow/workflow.py
"""
End-to-end workflow: lagged tables -> windows -> train -> predict -> report.

Each step is a thin call into the module that owns it; nothing here is
retried or run concurrently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from .config import WorkflowConfig
from .evaluation import (collect_forecasts, collect_predictions, combine_forecasts,
                         combine_predictions, return_error)
from .io_utils import ensure_dir, write_json, write_table
from .lagged import LaggedDataset, create_lagged_df
from .models import CallbackRegistry
from .plotting import plot_predictions, save_figure
from .prediction import predict_model
from .results import ResultStore
from .training import train_model
from .windows import Window, create_windows, serialize_windows, validate_windows

logger = logging.getLogger(__name__)


@dataclass
class WorkflowResult:
    config: WorkflowConfig
    lagged: Dict[int, LaggedDataset]
    windows: Dict[int, List[Window]]
    store: ResultStore
    predictions: pd.DataFrame
    combined: pd.DataFrame
    error: Dict[str, pd.DataFrame]
    forecasts: Optional[pd.DataFrame] = None
    combined_forecasts: Optional[pd.DataFrame] = None
    run_id: str = ""
    outputs: Dict[str, str] = field(default_factory=dict)

    def summary(self) -> Dict[str, Any]:
        error_global = self.error["error_global"]
        summary = {
            "run_id": self.run_id,
            "model": self.store.model_name,
            "horizons": list(self.lagged),
            "n_windows": len(next(iter(self.windows.values()))),
            "n_models": self.store.n_pairs,
            "n_predictions": len(self.predictions),
        }
        if not error_global.empty:
            for metric in ("mae", "rmse", "mape", "smape", "coverage"):
                if metric in error_global.columns:
                    summary[metric] = round(float(error_global[metric].iloc[0]), 4)
        if self.combined_forecasts is not None:
            summary["n_forecasts"] = len(self.combined_forecasts)
        summary.update(self.outputs)
        return summary


def run_workflow(
    data: pd.DataFrame,
    config: WorkflowConfig,
    train_fn: Optional[Callable[..., Any]] = None,
    predict_fn: Optional[Callable[[Any, pd.DataFrame], Any]] = None,
) -> WorkflowResult:
    """
    Run the full multi-horizon workflow

    Args:
        data: Raw time-ordered table
        config: WorkflowConfig
        train_fn / predict_fn: Custom callbacks; default to the registered
            pair named config.model_name

    Returns:
        WorkflowResult with every intermediate structure
    """
    if (train_fn is None) != (predict_fn is None):
        raise ValueError("Pass both train_fn and predict_fn, or neither")
    if train_fn is None:
        train_fn, predict_fn = CallbackRegistry.get(config.model_name)

    run_id = config.run_id()
    logger.info(f"[1/5] Building lagged datasets (run {run_id})")
    lag_args = dict(
        outcome_col=config.outcome_col,
        horizons=config.horizons,
        lookback=config.lookback,
        date_col=config.date_col,
        frequency=config.frequency,
    )
    lagged = create_lagged_df(data, mode="train", dynamic_features=config.dynamic_features, **lag_args)

    logger.info("[2/5] Creating validation windows")
    windows = create_windows(
        lagged,
        window_length=config.window_length,
        window_start=config.window_start,
        window_stop=config.window_stop,
        skip=config.skip,
    )
    validation = validate_windows(windows)
    if not all(validation.values()):
        raise ValueError(f"Invalid windows: {validation}")

    logger.info("[3/5] Training")
    store = train_model(
        lagged,
        windows,
        train_fn,
        model_name=config.model_name,
        training_policy=config.training_policy,
        **config.model_args,
    )

    logger.info("[4/5] Predicting validation windows")
    predict_model(store, predict_fn, lagged)
    predictions = collect_predictions(store, lagged, on_mismatch=config.on_mismatch)
    combined = combine_predictions(predictions, overlap_policy=config.overlap_policy)
    error = return_error(predictions)

    forecasts = None
    combined_forecasts = None
    if config.forecast:
        logger.info("[5/5] Forecasting")
        forecast_data = create_lagged_df(data, mode="forecast", **lag_args)
        predict_model(store, predict_fn, forecast_data)
        forecasts = collect_forecasts(store, on_mismatch=config.on_mismatch)
        combined_forecasts = combine_forecasts(forecasts)
    else:
        logger.info("[5/5] Forecasting skipped")

    return WorkflowResult(
        config=config,
        lagged=lagged,
        windows=windows,
        store=store,
        predictions=predictions,
        combined=combined,
        error=error,
        forecasts=forecasts,
        combined_forecasts=combined_forecasts,
        run_id=run_id,
    )


def save_workflow_outputs(result: WorkflowResult, output_dir: Optional[Path] = None) -> Dict[str, str]:
    """
    Write predictions, forecasts, errors, windows and the prediction plot

    Args:
        result: WorkflowResult from run_workflow
        output_dir: Overrides config.artifacts_dir

    Returns:
        Dictionary of artifact name -> path
    """
    cfg = result.config
    base = Path(output_dir) if output_dir is not None else cfg.artifacts_path()
    ensure_dir(base)

    outputs = {}

    predictions_path = base / cfg.predictions_path().name
    write_table(result.predictions, predictions_path)
    outputs["predictions"] = str(predictions_path)

    if result.combined_forecasts is not None:
        forecasts_path = base / cfg.forecasts_path().name
        write_table(result.combined_forecasts, forecasts_path)
        outputs["forecasts"] = str(forecasts_path)

    error_path = base / cfg.error_path().name
    write_json(
        {name: frame.to_dict(orient="records") for name, frame in result.error.items()},
        error_path,
    )
    outputs["error"] = str(error_path)

    windows_path = base / cfg.windows_path().name
    write_json(serialize_windows(result.windows), windows_path)
    outputs["windows"] = str(windows_path)

    if not result.predictions.empty:
        plot_path = save_figure(plot_predictions(result.predictions), base / cfg.plot_path().name)
        outputs["plot"] = str(plot_path)

    result.outputs.update(outputs)
    logger.info(f"Saved {len(outputs)} outputs to {base}")
    return outputs
