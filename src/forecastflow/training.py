"""
Training driver

Calls a user-supplied training function once per (horizon, window) pair,
horizon-major and window-minor, and records whatever it returns.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from .config import TRAINING_POLICIES
from .exceptions import CallbackFailure
from .lagged import LaggedDataset
from .results import ResultStore
from .windows import Window

logger = logging.getLogger(__name__)


def training_slice(
    dataset: LaggedDataset,
    window: Window,
    training_policy: str = "exclude_window"
) -> LaggedDataset:
    """
    Rows used to train the model for one (horizon, window) pair

    Args:
        dataset: Train-mode dataset for the horizon
        window: Validation window
        training_policy: "exclude_window" drops the window's rows,
            "full" keeps the whole table

    Returns:
        LaggedDataset with the horizon's metadata
    """
    if training_policy == "exclude_window":
        return dataset.rows_outside(window.start, window.stop)
    if training_policy == "full":
        return dataset
    raise ValueError(f"Unknown training_policy: {training_policy}")


def _check_inputs(
    lagged: Dict[int, LaggedDataset],
    windows: Dict[int, List[Window]],
    training_policy: str
) -> None:
    if training_policy not in TRAINING_POLICIES:
        raise ValueError(f"Unknown training_policy: {training_policy}")
    if not lagged:
        raise ValueError("No lagged datasets given")

    for horizon, dataset in lagged.items():
        if dataset.mode != "train":
            raise ValueError(f"Horizon {horizon}: training needs train-mode data")
        if horizon not in windows:
            raise ValueError(f"No windows for horizon {horizon}")
        if not windows[horizon]:
            raise ValueError(f"Empty window list for horizon {horizon}")

        if training_policy == "exclude_window":
            for window in windows[horizon]:
                if training_slice(dataset, window, training_policy).n_rows == 0:
                    raise ValueError(
                        f"Horizon {horizon}, window {window.window_id} covers every row; "
                        f"nothing left to train on (use training_policy='full')"
                    )


def train_model(
    lagged: Dict[int, LaggedDataset],
    windows: Dict[int, List[Window]],
    model_function: Callable[..., Any],
    model_name: str = "model",
    training_policy: str = "exclude_window",
    store: Optional[ResultStore] = None,
    **model_args
) -> ResultStore:
    """
    Train one model per (horizon, window) pair

    Args:
        lagged: Train-mode datasets from create_lagged_df
        windows: Windows per horizon from create_windows
        model_function: Called as model_function(data, **model_args) where
            data is the training LaggedDataset; the return value is stored as is
        model_name: Label carried into the results
        training_policy: "exclude_window" or "full"
        store: Existing store to fill (a fresh one is created if None)
        **model_args: Forwarded verbatim on every call

    Returns:
        ResultStore with one artifact per pair

    Raises:
        CallbackFailure: model_function raised; remaining pairs are not run
    """
    _check_inputs(lagged, windows, training_policy)

    if store is None:
        store = ResultStore(model_name=model_name)

    n_pairs = sum(len(windows[h]) for h in lagged)
    logger.info(
        f"Training {model_name} on {n_pairs} (horizon, window) pairs "
        f"[policy={training_policy}]"
    )

    for horizon, dataset in lagged.items():
        for window in windows[horizon]:
            data = training_slice(dataset, window, training_policy)

            start_time = time.time()
            try:
                artifact = model_function(data, **model_args)
            except Exception as e:
                logger.error(
                    f"Training failed on horizon {horizon} window {window.window_id}: {e}"
                )
                raise CallbackFailure(horizon, window.window_id, "train", store=store) from e
            train_time = time.time() - start_time

            store.record_artifact(horizon, window, artifact, train_time=train_time)
            logger.debug(
                f"Trained horizon {horizon} window {window.window_id} "
                f"on {data.n_rows} rows in {train_time:.3f}s"
            )

    logger.info(f"Completed training: {store.n_pairs} artifacts")
    return store
