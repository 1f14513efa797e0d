"""
Prediction driver

Pairs each recorded training artifact with a feature slice and calls a
user-supplied prediction function. Validation predictions come from the
window rows of train-mode data; forecasts come from forecast-mode data.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from .exceptions import CallbackFailure, MissingArtifact, ShapeMismatch
from .lagged import LaggedDataset
from .results import PredictionResult, ResultStore
from .windows import Window

logger = logging.getLogger(__name__)

INTERVAL_COLUMNS = ["y_pred", "y_pred_lower", "y_pred_upper"]


def normalize_prediction(
    output: Any,
    horizon: int,
    window_id: int,
    expected_rows: Optional[int] = None
) -> pd.DataFrame:
    """
    Coerce a prediction callback's output into a table

    One column becomes ``y_pred``; three columns become
    ``y_pred, y_pred_lower, y_pred_upper``. Row alignment with the feature
    slice is not checked here (see collect_predictions).

    Raises:
        ShapeMismatch: empty output or an unsupported number of columns
    """
    if isinstance(output, pd.Series):
        table = output.to_frame()
    elif isinstance(output, pd.DataFrame):
        table = output
    else:
        values = np.asarray(output, dtype=float)
        if values.ndim == 1:
            values = values.reshape(-1, 1)
        if values.ndim != 2:
            raise ShapeMismatch(
                horizon, window_id, expected_rows, values.shape[0] if values.ndim else 0,
                detail=f"prediction has {values.ndim} dimensions"
            )
        table = pd.DataFrame(values)

    if table.empty:
        raise ShapeMismatch(horizon, window_id, expected_rows, 0, detail="empty prediction")

    n_cols = table.shape[1]
    if n_cols == 1:
        columns = INTERVAL_COLUMNS[:1]
    elif n_cols == 3:
        columns = INTERVAL_COLUMNS
    else:
        raise ShapeMismatch(
            horizon, window_id, expected_rows, len(table),
            detail=f"expected 1 or 3 columns, got {n_cols}"
        )

    table = table.reset_index(drop=True)
    table.columns = columns
    return table


def _feature_slice(dataset: LaggedDataset, window: Window) -> Tuple[pd.DataFrame, pd.Index]:
    if dataset.mode == "forecast":
        return dataset.features, dataset.date_index
    rows = dataset.rows_between(window.start, window.stop)
    return rows.features, rows.date_index


def _requested_pairs(
    store: ResultStore,
    windows: Optional[Dict[int, List[Window]]]
) -> Iterable[Tuple[int, Window]]:
    if windows is None:
        return list(store.pairs())
    return [(h, w) for h, horizon_windows in windows.items() for w in horizon_windows]


def predict_model(
    store: ResultStore,
    prediction_function: Callable[[Any, pd.DataFrame], Any],
    data: Dict[int, LaggedDataset],
    windows: Optional[Dict[int, List[Window]]] = None
) -> ResultStore:
    """
    Predict with every trained model

    Args:
        store: ResultStore filled by train_model
        prediction_function: Called as prediction_function(artifact, features)
        data: Train-mode datasets (validation predictions) or forecast-mode
            datasets (forecasts) from create_lagged_df
        windows: Pairs to predict; defaults to every pair in the store

    Returns:
        The same ResultStore with predictions (or forecasts) recorded

    Raises:
        MissingArtifact: a requested pair has no training artifact, or its
            horizon is missing from data (checked before any callback runs)
        CallbackFailure: prediction_function raised
        ShapeMismatch: prediction_function returned an empty or malformed table
    """
    if store.n_pairs == 0:
        raise MissingArtifact(next(iter(data), -1))

    pairs = _requested_pairs(store, windows)
    modes = {dataset.mode for dataset in data.values()}
    if len(modes) != 1:
        raise ValueError(f"Mixed dataset modes: {sorted(modes)}")
    mode = modes.pop()

    # Every pair needs an artifact and data before the first callback runs
    for horizon, window in pairs:
        store.artifact(horizon, window.window_id)
        if horizon not in data:
            raise MissingArtifact(horizon, window.window_id)

    logger.info(f"Predicting {len(pairs)} pairs with {store.model_name} [{mode}]")

    for horizon, window in pairs:
        artifact = store.artifact(horizon, window.window_id)
        features, dates = _feature_slice(data[horizon], window)

        start_time = time.time()
        try:
            output = prediction_function(artifact, features)
        except Exception as e:
            logger.error(
                f"Prediction failed on horizon {horizon} window {window.window_id}: {e}"
            )
            raise CallbackFailure(horizon, window.window_id, "predict", store=store) from e
        elapsed = time.time() - start_time

        table = normalize_prediction(output, horizon, window.window_id, expected_rows=len(dates))
        store.record_prediction(
            PredictionResult(
                horizon=horizon,
                window_id=window.window_id,
                mode=mode,
                dates=dates,
                table=table
            ),
            elapsed=elapsed
        )
        logger.debug(
            f"Predicted horizon {horizon} window {window.window_id}: "
            f"{len(table)} rows in {elapsed:.3f}s"
        )

    logger.info(f"Completed predictions: {len(pairs)} pairs")
    return store
